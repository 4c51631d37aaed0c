import logging
import secrets
from datetime import timedelta
from typing import NamedTuple, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from pogblog.config import (
    IS_PRODUCTION,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SAMESITE,
    SESSION_EXPIRES_DAYS,
)
from pogblog.models.session_model import Session
from pogblog.models.user_model import User
from pogblog.utils.time_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

SESSION_LIFETIME = timedelta(days=SESSION_EXPIRES_DAYS)


class ValidatedSession(NamedTuple):
    session: Optional[Session]
    user: Optional[User]
    # True when the expiry was pushed forward and the cookie must be re-sent
    fresh: bool


def generate_session_id() -> str:
    return secrets.token_hex(20)


async def create_session(db: AsyncSession, user_id: int) -> Session:
    session = Session(
        id=generate_session_id(),
        user_id=user_id,
        expires_at=utcnow() + SESSION_LIFETIME,
    )
    db.add(session)
    await db.commit()
    return session


async def validate_session(db: AsyncSession, session_id: str) -> ValidatedSession:
    """
    Look up a session by id.

    Expired sessions (and sessions whose user is gone) are deleted and reported
    as missing. A valid session with less than half of its lifetime left gets a
    new expiry and comes back with fresh=True.
    """
    session = await db.get(Session, session_id)
    if not session:
        return ValidatedSession(None, None, False)

    now = utcnow()
    expires_at = as_utc(session.expires_at)
    if expires_at <= now:
        await db.delete(session)
        await db.commit()
        return ValidatedSession(None, None, False)

    user = await db.get(User, session.user_id)
    if not user:
        await db.delete(session)
        await db.commit()
        return ValidatedSession(None, None, False)

    fresh = False
    if expires_at - now < SESSION_LIFETIME / 2:
        session.expires_at = now + SESSION_LIFETIME
        await db.commit()
        fresh = True

    return ValidatedSession(session, user, fresh)


async def invalidate_session(db: AsyncSession, session_id: str) -> None:
    await db.execute(delete(Session).where(Session.id == session_id))
    await db.commit()


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        max_age=int(SESSION_LIFETIME.total_seconds()),
        path="/",
        httponly=True,
        secure=IS_PRODUCTION,
        samesite=SESSION_COOKIE_SAMESITE,
    )


def set_blank_session_cookie(response: Response) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        secure=IS_PRODUCTION,
        samesite=SESSION_COOKIE_SAMESITE,
    )
