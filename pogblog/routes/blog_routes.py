import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pogblog.categories import normalize_categories
from pogblog.database import get_async_session
from pogblog.deps.auth import get_current_user, get_current_user_optional
from pogblog.models.blog_model import Blog, BlogCategory, BlogLike
from pogblog.models.comment_model import Comment
from pogblog.models.user_model import Follow, User, UserCategory
from pogblog.schemas.blog_schemas import (
    BlogCreateIn,
    BlogCreatedOut,
    BlogDetailOut,
    BlogPageOut,
    BlogUpdateIn,
    CommentIn,
    CommentOut,
    CommentPageOut,
    CommentsCountOut,
    LikedByPageOut,
    LikesOut,
)
from pogblog.utils.blog_cards import author_out, blog_to_detail, blogs_to_cards
from pogblog.utils.pagination import fetch_page, get_page
from pogblog.utils.time_utils import to_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs", tags=["blogs"])

FEED_TYPES = ("for_you", "following")
SEARCH_TYPES = ("most_relevant", "newest", "oldest")

DUPLICATE_TITLE = "You already have a blog with this title"


# ------------------------------
# helpers
# ------------------------------
def _newest_first(stmt):
    return stmt.order_by(Blog.date_published.desc(), Blog.id.desc())


async def _get_blog_or_404(db: AsyncSession, blog_id: int) -> Blog:
    blog = await db.get(Blog, blog_id)
    if not blog:
        raise HTTPException(status_code=404, detail="Blog not found")
    return blog


async def _title_taken(db: AsyncSession, author_id: int, title: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Blog.id).where(Blog.author_id == author_id, Blog.title == title)
    if exclude_id is not None:
        stmt = stmt.where(Blog.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def _like_count(db: AsyncSession, blog_id: int) -> int:
    return int(
        (await db.execute(select(func.count(BlogLike.id)).where(BlogLike.blog_id == blog_id))).scalar_one()
        or 0
    )


async def _page_of_cards(db: AsyncSession, stmt, page: int, viewer: Optional[User]) -> BlogPageOut:
    blogs, has_more, next_page = await fetch_page(db, stmt, page)
    return BlogPageOut(
        blogs=await blogs_to_cards(db, blogs, viewer),
        has_more=has_more,
        next_page=next_page,
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_statement(q: str, categories: list, sort: str):
    stmt = select(Blog)

    if q:
        stmt = stmt.where(Blog.title.ilike(f"%{_escape_like(q)}%", escape="\\"))

    if categories:
        stmt = stmt.where(
            Blog.id.in_(select(BlogCategory.blog_id).where(BlogCategory.name.in_(categories)))
        )

    if sort == "oldest":
        return stmt.order_by(Blog.date_published.asc(), Blog.id.asc())

    if sort == "most_relevant" and q:
        lowered = func.lower(Blog.title)
        needle = q.lower()
        rank = case(
            (lowered == needle, 0),
            (lowered.like(f"{_escape_like(needle)}%", escape="\\"), 1),
            else_=2,
        )
        likes = (
            select(func.count(BlogLike.id))
            .where(BlogLike.blog_id == Blog.id)
            .correlate(Blog)
            .scalar_subquery()
        )
        return stmt.order_by(rank.asc(), likes.desc(), Blog.date_published.desc(), Blog.id.desc())

    return _newest_first(stmt)


# ------------------------------
# Listings
# ------------------------------
@router.get("", response_model=BlogPageOut)
@router.get("/", response_model=BlogPageOut, include_in_schema=False)
async def list_blogs(
    page: int = Depends(get_page),
    db: AsyncSession = Depends(get_async_session),
    viewer: Optional[User] = Depends(get_current_user_optional),
):
    return await _page_of_cards(db, _newest_first(select(Blog)), page, viewer)


@router.get("/feed", response_model=BlogPageOut)
async def feed(
    feed_type: str = Query("for_you", alias="feedType"),
    page: int = Depends(get_page),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    if feed_type not in FEED_TYPES:
        raise HTTPException(status_code=400, detail="Invalid feed type")

    if feed_type == "for_you":
        preferred = select(UserCategory.name).where(UserCategory.user_id == user.id)
        stmt = select(Blog).where(
            Blog.id.in_(select(BlogCategory.blog_id).where(BlogCategory.name.in_(preferred)))
        )
    else:
        followed = select(Follow.followee_id).where(Follow.follower_id == user.id)
        stmt = select(Blog).where(Blog.author_id.in_(followed))

    return await _page_of_cards(db, _newest_first(stmt), page, user)


@router.get("/search", response_model=BlogPageOut)
async def search(
    q: Optional[str] = None,
    sort: str = Query("most_relevant", alias="type"),
    categories: Optional[str] = None,
    page: int = Depends(get_page),
    db: AsyncSession = Depends(get_async_session),
    viewer: Optional[User] = Depends(get_current_user_optional),
):
    q = (q or "").strip()
    if sort not in SEARCH_TYPES:
        raise HTTPException(status_code=400, detail="Invalid search type")

    try:
        cats = normalize_categories((categories or "").split(","))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not q and not cats:
        raise HTTPException(status_code=400, detail="Provide a search query or categories")

    return await _page_of_cards(db, _search_statement(q, cats, sort), page, viewer)


# ------------------------------
# Authoring
# ------------------------------
@router.post("/add", response_model=BlogCreatedOut, status_code=status.HTTP_201_CREATED)
async def add_blog(
    payload: BlogCreateIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    if await _title_taken(db, user.id, payload.title):
        raise HTTPException(status_code=400, detail=DUPLICATE_TITLE)

    blog = Blog(
        title=payload.title,
        content=payload.content,
        description=payload.description or "",
        image=payload.image,
        author_id=user.id,
    )
    db.add(blog)
    try:
        await db.flush()  # get blog.id
        for name in payload.categories:
            db.add(BlogCategory(blog_id=blog.id, name=name))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail=DUPLICATE_TITLE)

    logger.info("Blog %s published by user %s", blog.id, user.id)
    return BlogCreatedOut(message="Blog published!", id=blog.id, title=blog.title)


@router.patch("/edit", response_model=BlogDetailOut)
async def edit_blog(
    payload: BlogUpdateIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    blog = await _get_blog_or_404(db, payload.id)
    if blog.author_id != user.id:
        raise HTTPException(status_code=403, detail="Only the author can edit this blog")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    changes.pop("id", None)
    categories = changes.pop("categories", None)

    if "title" in changes and await _title_taken(db, user.id, changes["title"], exclude_id=blog.id):
        raise HTTPException(status_code=400, detail=DUPLICATE_TITLE)

    for field, value in changes.items():
        setattr(blog, field, value)

    if categories is not None:
        await db.execute(delete(BlogCategory).where(BlogCategory.blog_id == blog.id))
        for name in categories:
            db.add(BlogCategory(blog_id=blog.id, name=name))

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail=DUPLICATE_TITLE)

    await db.refresh(blog)
    return await blog_to_detail(db, blog, user)


# ------------------------------
# Likes
# ------------------------------
@router.post("/like/{blog_id}", response_model=LikesOut)
async def like_blog(
    blog_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_blog_or_404(db, blog_id)

    already = (
        await db.execute(
            select(BlogLike.id).where(BlogLike.blog_id == blog_id, BlogLike.user_id == user.id)
        )
    ).first()
    if already:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You already liked this blog!")

    db.add(BlogLike(blog_id=blog_id, user_id=user.id))
    try:
        await db.commit()
    except IntegrityError:
        # lost a race against a concurrent like from the same user
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You already liked this blog!")

    return LikesOut(likes=await _like_count(db, blog_id))


@router.delete("/like/{blog_id}", response_model=LikesOut)
async def unlike_blog(
    blog_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_blog_or_404(db, blog_id)

    result = await db.execute(
        delete(BlogLike).where(BlogLike.blog_id == blog_id, BlogLike.user_id == user.id)
    )
    if not result.rowcount:
        raise HTTPException(status_code=404, detail="You have not liked this blog")
    await db.commit()

    return LikesOut(likes=await _like_count(db, blog_id))


@router.get("/likedBy/{blog_id}", response_model=LikedByPageOut)
async def liked_by(
    blog_id: int,
    page: int = Depends(get_page),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_blog_or_404(db, blog_id)

    stmt = (
        select(User)
        .join(BlogLike, BlogLike.user_id == User.id)
        .where(BlogLike.blog_id == blog_id)
        .order_by(BlogLike.liked_at.asc(), BlogLike.id.asc())
    )
    users, has_more, next_page = await fetch_page(db, stmt, page)

    return LikedByPageOut(
        users=[author_out(u) for u in users],
        has_more=has_more,
        next_page=next_page,
    )


# ------------------------------
# Comments
# ------------------------------
@router.get("/comments/{blog_id}", response_model=CommentPageOut)
async def list_comments(
    blog_id: int,
    page: int = Depends(get_page),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_blog_or_404(db, blog_id)

    stmt = (
        select(Comment, User)
        .join(User, User.id == Comment.author_id)
        .where(Comment.blog_id == blog_id)
        .order_by(Comment.date_posted.desc(), Comment.id.desc())
    )
    rows, has_more, next_page = await fetch_page(db, stmt, page, scalars=False)

    return CommentPageOut(
        comments=[
            CommentOut(
                id=c.id,
                content=c.content,
                author=author_out(u),
                date_posted=to_iso(c.date_posted),
            )
            for (c, u) in rows
        ],
        has_more=has_more,
        next_page=next_page,
    )


@router.post("/comment/{blog_id}", response_model=CommentsCountOut, status_code=status.HTTP_201_CREATED)
async def add_comment(
    blog_id: int,
    payload: CommentIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_blog_or_404(db, blog_id)

    db.add(Comment(content=payload.content, author_id=user.id, blog_id=blog_id))
    await db.commit()

    total = (
        await db.execute(select(func.count(Comment.id)).where(Comment.blog_id == blog_id))
    ).scalar_one()
    return CommentsCountOut(comments=int(total or 0))


# ------------------------------
# Detail (title may contain "/", keep last)
# ------------------------------
@router.get("/{username}/{title:path}", response_model=BlogDetailOut)
async def get_blog(
    username: str,
    title: str,
    db: AsyncSession = Depends(get_async_session),
    viewer: Optional[User] = Depends(get_current_user_optional),
):
    result = await db.execute(
        select(Blog)
        .join(User, User.id == Blog.author_id)
        .where(User.username == username, Blog.title == title)
    )
    blog = result.scalar_one_or_none()
    if not blog:
        raise HTTPException(status_code=404, detail="Blog not found")

    return await blog_to_detail(db, blog, viewer)
