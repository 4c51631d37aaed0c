# pogblog/deps/auth.py
from typing import Optional

from fastapi import HTTPException, Request, status

from pogblog.models.user_model import User


async def get_current_user_optional(request: Request) -> Optional[User]:
    """
    The user attached by the session middleware, or None for anonymous
    callers. Never raises.
    """
    return getattr(request.state, "user", None)


async def get_current_user(request: Request) -> User:
    """
    Same as get_current_user_optional but rejects anonymous callers
    with 401.
    """
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return user
