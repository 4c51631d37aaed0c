import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pogblog.config import LOGIN_RATE, RESEND_RATE, SIGNUP_RATE, VERIFY_RATE
from pogblog.database import get_async_session
from pogblog.deps.auth import get_current_user, get_current_user_optional
from pogblog.email_service import send_verification_code
from pogblog.limiter import limiter
from pogblog.models.blog_model import Blog
from pogblog.models.user_model import Follow, User, UserCategory
from pogblog.schemas.blog_schemas import BlogPageOut
from pogblog.schemas.common import MessageOut
from pogblog.schemas.user_schemas import (
    CategoriesIn,
    LoginIn,
    MeOut,
    ProfileOut,
    ProfileUpdateIn,
    ResendCodeIn,
    SignupIn,
    VerifyEmailIn,
)
from pogblog.utils.blog_cards import blogs_to_cards
from pogblog.utils.pagination import fetch_page, get_page
from pogblog.utils.password_utils import hash_password, verify_password
from pogblog.utils.session_utils import (
    create_session,
    invalidate_session,
    set_blank_session_cookie,
    set_session_cookie,
)
from pogblog.utils.verification_code_utils import (
    consume_verification_code,
    issue_verification_code,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

GENERIC_RESEND_MESSAGE = "If an unverified account exists, a new code has been sent."


# ------------------------------
# helpers
# ------------------------------
async def _user_categories(db: AsyncSession, user_id: int) -> list:
    rows = await db.execute(
        select(UserCategory.name)
        .where(UserCategory.user_id == user_id)
        .order_by(UserCategory.id.asc())
    )
    return list(rows.scalars().all())


async def _me_out(db: AsyncSession, user: User) -> MeOut:
    categories = await _user_categories(db, user.id)
    return MeOut(
        id=user.id,
        username=user.username,
        email=user.email,
        profile_picture=user.profile_picture,
        biography=user.biography,
        categories=categories,
        has_no_categories=not categories,
    )


async def _count(db: AsyncSession, stmt) -> int:
    return int((await db.execute(stmt)).scalar_one() or 0)


async def _username_taken(db: AsyncSession, username: str, exclude_id: int = None) -> bool:
    stmt = select(User.id).where(User.username == username)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def _signup_conflicts(db: AsyncSession, username: str, email: str) -> list:
    # Check username OR email conflict in a single round-trip
    result = await db.execute(
        select(User).where(
            (User.username == username) | (func.lower(User.email) == email)
        )
    )
    return list(result.scalars().all())


# ------------------------------
# Account lifecycle
# ------------------------------
@router.post("/signup", response_model=MessageOut)
@limiter.limit(SIGNUP_RATE)
async def signup(request: Request, payload: SignupIn, db: AsyncSession = Depends(get_async_session)):
    existing = await _signup_conflicts(db, payload.username, payload.email)

    by_email = next((u for u in existing if (u.email or "").lower() == payload.email), None)
    if by_email is not None and by_email.is_verified:
        raise HTTPException(status_code=400, detail="Email already exists.")

    if any(u.username == payload.username and u is not by_email for u in existing):
        raise HTTPException(status_code=400, detail="Username already exists.")

    hashed = hash_password(payload.password)

    try:
        if by_email is not None:
            # unverified leftover from an earlier attempt: take it over
            by_email.username = payload.username
            by_email.password = hashed
        else:
            db.add(User(
                username=payload.username,
                password=hashed,
                email=payload.email,
                is_verified=False,
                registered_at=datetime.now(timezone.utc),
            ))
        await db.flush()  # Write to DB without committing yet
        code = await issue_verification_code(db, payload.email)
        await run_in_threadpool(send_verification_code, payload.email, code)
        await db.commit()  # Commit only if email sending succeeded
    except IntegrityError:
        # a concurrent signup took the username or email first
        await db.rollback()
        taken_email = (
            await db.execute(select(User.id).where(func.lower(User.email) == payload.email))
        ).first()
        detail = "Email already exists." if taken_email and by_email is None else "Username already exists."
        raise HTTPException(status_code=400, detail=detail)
    except Exception:
        await db.rollback()
        logger.exception("Signup for %s failed", payload.email)
        raise HTTPException(status_code=500, detail="Signup failed during email sending")

    logger.info("Signup: verification code issued for %s", payload.email)
    return MessageOut(message="User created! Please verify your email.")


@router.post("/verify-email", response_model=MessageOut)
@limiter.limit(VERIFY_RATE)
async def verify_email(request: Request, payload: VerifyEmailIn, db: AsyncSession = Depends(get_async_session)):
    await consume_verification_code(db, payload.email, payload.otp)

    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.is_verified = True
    await db.commit()

    return MessageOut(message="Email verification successful")


@router.post("/resend-code", response_model=MessageOut)
@limiter.limit(RESEND_RATE)
async def resend_code(request: Request, payload: ResendCodeIn, db: AsyncSession = Depends(get_async_session)):
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    # Always return a generic message to avoid user-enumeration
    if not user or user.is_verified:
        return MessageOut(message=GENERIC_RESEND_MESSAGE)

    try:
        code = await issue_verification_code(db, payload.email)
        await run_in_threadpool(send_verification_code, payload.email, code)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Resending verification code to %s failed", payload.email)

    return MessageOut(message=GENERIC_RESEND_MESSAGE)


@router.post("/login", response_model=MessageOut)
@limiter.limit(LOGIN_RATE)
async def login(request: Request, payload: LoginIn, db: AsyncSession = Depends(get_async_session)):
    if getattr(request.state, "session", None) is not None:
        raise HTTPException(status_code=400, detail="Already Logged in!")

    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=400, detail="User does not exist")

    if not verify_password(payload.password, user.password):
        raise HTTPException(status_code=400, detail="Invalid email or password")

    if not user.is_verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Email not verified")

    session = await create_session(db, user.id)
    logger.info("Login: user %s", user.id)

    response = JSONResponse({"message": "Login successful!"})
    set_session_cookie(response, session.id)
    return response


@router.post("/logout", response_model=MessageOut)
async def logout(request: Request, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_async_session)):
    session = request.state.session
    await invalidate_session(db, session.id)
    # keep the middleware from re-issuing the cookie on the way out
    request.state.session = None
    logger.info("Logout: user %s", user.id)

    response = JSONResponse({"message": "Logged out"})
    set_blank_session_cookie(response)
    return response


# ------------------------------
# Current user
# ------------------------------
@router.get("/me", response_model=MeOut)
async def me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_async_session)):
    return await _me_out(db, user)


@router.patch("/categories", response_model=MeOut)
async def update_categories(
    payload: CategoriesIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    await db.execute(delete(UserCategory).where(UserCategory.user_id == user.id))
    for name in payload.categories:
        db.add(UserCategory(user_id=user.id, name=name))
    await db.commit()
    return await _me_out(db, user)


@router.patch("/edit/{user_id}", response_model=MeOut)
async def edit_profile(
    user_id: int,
    payload: ProfileUpdateIn,
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    if current.id != user_id:
        raise HTTPException(status_code=403, detail="You can only edit your own profile")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    if "username" in changes and await _username_taken(db, changes["username"], exclude_id=user.id):
        raise HTTPException(status_code=400, detail="Username already exists.")

    for field, value in changes.items():
        setattr(user, field, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Username already exists.")
    await db.refresh(user)
    return await _me_out(db, user)


# ------------------------------
# Follow graph
# ------------------------------
@router.post("/follow/{user_id}", response_model=MessageOut)
async def follow(user_id: int, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_async_session)):
    if user.id == user_id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")

    target = await db.get(User, user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    already = (
        await db.execute(
            select(Follow.id).where(Follow.follower_id == user.id, Follow.followee_id == user_id)
        )
    ).first()
    if already:
        raise HTTPException(status_code=400, detail="You are already following this user")

    db.add(Follow(follower_id=user.id, followee_id=user_id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="You are already following this user")

    return MessageOut(message="Followed successfully")


@router.delete("/unfollow/{user_id}", response_model=MessageOut)
async def unfollow(user_id: int, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_async_session)):
    target = await db.get(User, user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    result = await db.execute(
        delete(Follow).where(Follow.follower_id == user.id, Follow.followee_id == user_id)
    )
    if not result.rowcount:
        raise HTTPException(status_code=400, detail="You are not following this user")
    await db.commit()

    return MessageOut(message="Unfollowed successfully")


# ------------------------------
# Public profiles
# ------------------------------
@router.get("/{user_id}/blogs", response_model=BlogPageOut)
async def list_user_blogs(
    user_id: int,
    page: int = Depends(get_page),
    db: AsyncSession = Depends(get_async_session),
    viewer: User = Depends(get_current_user_optional),
):
    author = await db.get(User, user_id)
    if not author:
        raise HTTPException(status_code=404, detail="User not found")

    stmt = (
        select(Blog)
        .where(Blog.author_id == user_id)
        .order_by(Blog.date_published.desc(), Blog.id.desc())
    )
    blogs, has_more, next_page = await fetch_page(db, stmt, page)

    return BlogPageOut(
        blogs=await blogs_to_cards(db, blogs, viewer),
        has_more=has_more,
        next_page=next_page,
    )


@router.get("/{username}", response_model=ProfileOut)
async def get_profile(
    username: str,
    db: AsyncSession = Depends(get_async_session),
    viewer: User = Depends(get_current_user_optional),
):
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    followers = await _count(db, select(func.count(Follow.id)).where(Follow.followee_id == user.id))
    following = await _count(db, select(func.count(Follow.id)).where(Follow.follower_id == user.id))
    blogs_count = await _count(db, select(func.count(Blog.id)).where(Blog.author_id == user.id))

    is_following = False
    if viewer is not None and viewer.id != user.id:
        is_following = (
            await db.execute(
                select(Follow.id).where(Follow.follower_id == viewer.id, Follow.followee_id == user.id)
            )
        ).first() is not None

    return ProfileOut(
        id=user.id,
        username=user.username,
        profile_picture=user.profile_picture,
        biography=user.biography,
        followers=followers,
        following=following,
        blogs_count=blogs_count,
        is_profile_owner=viewer is not None and viewer.id == user.id,
        is_following=is_following,
    )
