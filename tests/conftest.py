"""
Shared fixtures for the API tests.

The environment is set before anything from pogblog is imported so that the
engine points at a throwaway SQLite file and bcrypt/rate limiting stay cheap.
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="pogblog-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
import pytest_asyncio

from pogblog.database import Base, engine
from pogblog.main import app
from pogblog.routes import user_routes

PASSWORD = "secret123"


@pytest_asyncio.fixture(autouse=True)
async def database():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
def outbox(monkeypatch):
    """Capture verification emails instead of talking to SMTP."""
    sent = []

    def fake_send(to_email, code):
        sent.append((to_email, code))

    monkeypatch.setattr(user_routes, "send_verification_code", fake_send)
    return sent


def _client():
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


@pytest_asyncio.fixture
async def client():
    async with _client() as c:
        yield c


@pytest_asyncio.fixture
async def make_client():
    """Factory for extra independent clients (one cookie jar each)."""
    opened = []

    def factory():
        c = _client()
        opened.append(c)
        return c

    yield factory
    for c in opened:
        await c.aclose()


async def register(client, outbox, username, email=None, password=PASSWORD, verify=True):
    email = email or f"{username}@pogmail.com"
    res = await client.post(
        "/users/signup",
        json={"email": email, "password": password, "username": username},
    )
    assert res.status_code == 200, res.text
    if verify:
        code = [c for (to, c) in outbox if to == email][-1]
        res = await client.post("/users/verify-email", json={"email": email, "otp": code})
        assert res.status_code == 200, res.text
    return email


async def login(client, email, password=PASSWORD):
    res = await client.post("/users/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return res


async def signed_in(client, outbox, username, categories=None):
    """Sign up, verify and log in `username` on `client`; returns /users/me."""
    email = await register(client, outbox, username)
    await login(client, email)
    if categories:
        res = await client.patch("/users/categories", json={"categories": categories})
        assert res.status_code == 200, res.text
    return (await client.get("/users/me")).json()


async def publish(client, title, categories=("Technology",), content="<p>Hello</p>", **extra):
    body = {
        "title": title,
        "content": content,
        "description": extra.pop("description", f"About {title}"),
        "image": extra.pop("image", None),
        "categories": list(categories),
    }
    res = await client.post("/blogs/add", json=body)
    assert res.status_code == 201, res.text
    return res.json()
