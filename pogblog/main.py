import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pogblog.config import CORS_ORIGINS, LOG_LEVEL, SESSION_COOKIE_NAME
from pogblog.database import AsyncSessionLocal, Base, engine
from pogblog.routes import blog_routes, user_routes
from pogblog.utils.session_utils import (
    set_blank_session_cookie,
    set_session_cookie,
    validate_session,
)

# Rate limiting setup
from pogblog.limiter import limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("pogblog")

app = FastAPI(title="Pog Blog API")

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"message": "Too many requests. Please slow down."}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    # our own field validators raise ValueError with a client-facing message
    if err.get("type") == "value_error" and err.get("ctx", {}).get("error") is not None:
        return str(err["ctx"]["error"])
    loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
    return f"Invalid {loc[-1]}" if loc else "Invalid request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": _validation_message(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Something went wrong!"})


def _sets_session_cookie(response) -> bool:
    prefix = f"{SESSION_COOKIE_NAME}="
    return any(c.startswith(prefix) for c in response.headers.getlist("set-cookie"))


# Session validation on every request
@app.middleware("http")
async def session_middleware(request: Request, call_next):
    request.state.user = None
    request.state.session = None

    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        return await call_next(request)

    async with AsyncSessionLocal() as db:
        session, user, fresh = await validate_session(db, session_id)

    request.state.user = user
    request.state.session = session

    response = await call_next(request)

    # a cookie written by the route (login, logout) is the final word
    if _sets_session_cookie(response):
        return response

    if session is None:
        set_blank_session_cookie(response)
    elif fresh and request.state.session is not None:
        set_session_cookie(response, session.id)
    return response


# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include your routers
app.include_router(user_routes.router)
app.include_router(blog_routes.router)


# Run DB init on startup
@app.on_event("startup")
async def on_startup():
    # Tiny retry so a momentary DB disconnect doesn't crash the app.
    for attempt in range(2):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            break  # success
        except Exception as e:
            if attempt == 0:
                logger.warning("[startup] DB init failed, retrying once: %r", e)
                await asyncio.sleep(0.5)
            else:
                # Tables should already exist from previous runs.
                logger.error("[startup] Skipping DB init due to error: %r", e)
