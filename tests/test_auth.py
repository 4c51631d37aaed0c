"""
Tests for signup, email verification, login and logout.
"""
from datetime import timedelta

from sqlalchemy import select, update

from conftest import PASSWORD, login, register
from pogblog.database import AsyncSessionLocal
from pogblog.models.user_model import User
from pogblog.models.verification_code import VerificationCode
from pogblog.routes import user_routes
from pogblog.utils.time_utils import utcnow


class TestSignup:
    """Tests for POST /users/signup."""

    async def test_signup_sends_code_and_creates_unverified_user(self, client, outbox):
        res = await client.post(
            "/users/signup",
            json={"email": "Ana@PogMail.com", "password": PASSWORD, "username": "ana"},
        )
        assert res.status_code == 200
        assert "verify" in res.json()["message"]

        assert len(outbox) == 1
        to, code = outbox[0]
        assert to == "ana@pogmail.com"
        assert code.isdigit() and len(code) == 6

        async with AsyncSessionLocal() as db:
            user = (await db.execute(select(User).where(User.username == "ana"))).scalar_one()
            assert user.is_verified is False
            assert user.password != PASSWORD

    async def test_verified_email_is_rejected(self, client, outbox):
        await register(client, outbox, "ana")
        res = await client.post(
            "/users/signup",
            json={"email": "ana@pogmail.com", "password": PASSWORD, "username": "other"},
        )
        assert res.status_code == 400
        assert res.json() == {"message": "Email already exists."}

    async def test_unverified_email_can_sign_up_again(self, client, outbox):
        await register(client, outbox, "ana", verify=False)
        res = await client.post(
            "/users/signup",
            json={"email": "ana@pogmail.com", "password": PASSWORD, "username": "ana2"},
        )
        assert res.status_code == 200
        assert len(outbox) == 2

        async with AsyncSessionLocal() as db:
            users = (await db.execute(select(User))).scalars().all()
            assert [u.username for u in users] == ["ana2"]
            codes = (await db.execute(select(VerificationCode))).scalars().all()
            assert len(codes) == 1

    async def test_username_taken(self, client, outbox):
        await register(client, outbox, "ana")
        res = await client.post(
            "/users/signup",
            json={"email": "bob@pogmail.com", "password": PASSWORD, "username": "ana"},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Username already exists."

    async def test_lost_race_for_username(self, client, outbox, monkeypatch):
        await register(client, outbox, "ana")

        async def nothing_yet(db, username, email):
            # as if the other signup committed after our check
            return []

        monkeypatch.setattr(user_routes, "_signup_conflicts", nothing_yet)

        res = await client.post(
            "/users/signup",
            json={"email": "bob@pogmail.com", "password": PASSWORD, "username": "ana"},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Username already exists."

        res = await client.post(
            "/users/signup",
            json={"email": "ana@pogmail.com", "password": PASSWORD, "username": "other"},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Email already exists."

        async with AsyncSessionLocal() as db:
            assert [u.username for u in (await db.execute(select(User))).scalars().all()] == ["ana"]

    async def test_invalid_fields(self, client, outbox):
        res = await client.post(
            "/users/signup",
            json={"email": "not-an-email", "password": PASSWORD, "username": "ana"},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid email"

        res = await client.post(
            "/users/signup",
            json={"email": "ana@pogmail.com", "password": "123", "username": "ana"},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid password"

        res = await client.post(
            "/users/signup",
            json={"email": "ana@pogmail.com", "password": PASSWORD, "username": "blogs"},
        )
        assert res.status_code == 400

        res = await client.post(
            "/users/signup",
            json={"email": "ana@pogmail.com", "password": PASSWORD, "username": "a b"},
        )
        assert res.status_code == 400
        assert outbox == []

    async def test_missing_field(self, client, outbox):
        res = await client.post("/users/signup", json={"email": "ana@pogmail.com", "username": "ana"})
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid password"

    async def test_email_failure_rolls_back(self, client, monkeypatch):
        def broken(to_email, code):
            raise RuntimeError("smtp down")

        monkeypatch.setattr(user_routes, "send_verification_code", broken)
        res = await client.post(
            "/users/signup",
            json={"email": "ana@pogmail.com", "password": PASSWORD, "username": "ana"},
        )
        assert res.status_code == 500

        async with AsyncSessionLocal() as db:
            assert (await db.execute(select(User))).scalars().all() == []


class TestVerifyEmail:
    """Tests for POST /users/verify-email and /users/resend-code."""

    async def test_wrong_code(self, client, outbox):
        await register(client, outbox, "ana", verify=False)
        code = outbox[0][1]
        wrong = "000000" if code != "000000" else "111111"
        res = await client.post("/users/verify-email", json={"email": "ana@pogmail.com", "otp": wrong})
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid verification code"

    async def test_code_is_single_use(self, client, outbox):
        await register(client, outbox, "ana")
        code = outbox[0][1]
        res = await client.post("/users/verify-email", json={"email": "ana@pogmail.com", "otp": code})
        assert res.status_code == 400

    async def test_expired_code(self, client, outbox):
        await register(client, outbox, "ana", verify=False)
        code = outbox[0][1]
        async with AsyncSessionLocal() as db:
            await db.execute(
                update(VerificationCode).values(expiration=utcnow() - timedelta(minutes=1))
            )
            await db.commit()

        res = await client.post("/users/verify-email", json={"email": "ana@pogmail.com", "otp": code})
        assert res.status_code == 400
        assert res.json()["message"] == "Verification code expired"

        async with AsyncSessionLocal() as db:
            assert (await db.execute(select(VerificationCode))).scalars().all() == []

    async def test_resend_code(self, client, outbox):
        await register(client, outbox, "ana", verify=False)
        res = await client.post("/users/resend-code", json={"email": "ana@pogmail.com"})
        assert res.status_code == 200
        assert len(outbox) == 2

        # the old code no longer works, the new one does
        old, new = outbox[0][1], outbox[1][1]
        if old != new:
            res = await client.post("/users/verify-email", json={"email": "ana@pogmail.com", "otp": old})
            assert res.status_code == 400
        res = await client.post("/users/verify-email", json={"email": "ana@pogmail.com", "otp": new})
        assert res.status_code == 200

    async def test_resend_is_generic_for_unknown_email(self, client, outbox):
        res = await client.post("/users/resend-code", json={"email": "ghost@pogmail.com"})
        assert res.status_code == 200
        assert outbox == []


class TestLogin:
    """Tests for POST /users/login and /users/logout."""

    async def test_login_sets_session_cookie(self, client, outbox):
        email = await register(client, outbox, "ana")
        res = await login(client, email)
        assert res.json() == {"message": "Login successful!"}
        assert "auth_session" in res.headers.get("set-cookie", "")

        me = await client.get("/users/me")
        assert me.status_code == 200
        body = me.json()
        assert body["username"] == "ana"
        assert body["email"] == "ana@pogmail.com"
        assert body["hasNoCategories"] is True
        assert "profilePicture" in body

    async def test_unknown_user(self, client, outbox):
        res = await client.post("/users/login", json={"email": "ghost@pogmail.com", "password": PASSWORD})
        assert res.status_code == 400
        assert res.json()["message"] == "User does not exist"

    async def test_wrong_password(self, client, outbox):
        email = await register(client, outbox, "ana")
        res = await client.post("/users/login", json={"email": email, "password": "wrong-pass"})
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid email or password"

    async def test_unverified_cannot_login(self, client, outbox):
        email = await register(client, outbox, "ana", verify=False)
        res = await client.post("/users/login", json={"email": email, "password": PASSWORD})
        assert res.status_code == 403
        assert res.json()["message"] == "Email not verified"

    async def test_already_logged_in(self, client, outbox):
        email = await register(client, outbox, "ana")
        await login(client, email)
        res = await client.post("/users/login", json={"email": email, "password": PASSWORD})
        assert res.status_code == 400
        assert res.json()["message"] == "Already Logged in!"

    async def test_logout(self, client, outbox):
        email = await register(client, outbox, "ana")
        await login(client, email)

        res = await client.post("/users/logout")
        assert res.status_code == 200

        assert (await client.get("/users/me")).status_code == 401

    async def test_me_requires_session(self, client):
        res = await client.get("/users/me")
        assert res.status_code == 401
        assert res.json() == {"message": "Unauthorized"}
