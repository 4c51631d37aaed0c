# pogblog/utils/blog_cards.py
"""
Turn rows of Blog into the card/detail payloads the client renders.

Listings hydrate a whole page at once: categories, like counts, comment counts
and the viewer's likes are fetched with one grouped query each instead of one
query per blog.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pogblog.models.blog_model import Blog, BlogCategory, BlogLike
from pogblog.models.comment_model import Comment
from pogblog.models.user_model import User
from pogblog.schemas.blog_schemas import BlogCardOut, BlogDetailOut
from pogblog.schemas.common import AuthorOut
from pogblog.utils.time_utils import to_iso


async def _categories_by_blog(db: AsyncSession, blog_ids: Sequence[int]) -> Dict[int, List[str]]:
    out: Dict[int, List[str]] = defaultdict(list)
    rows = await db.execute(
        select(BlogCategory.blog_id, BlogCategory.name)
        .where(BlogCategory.blog_id.in_(blog_ids))
        .order_by(BlogCategory.id.asc())
    )
    for blog_id, name in rows.all():
        out[blog_id].append(name)
    return out


async def _count_by_blog(db: AsyncSession, column, blog_ids: Sequence[int]) -> Dict[int, int]:
    rows = await db.execute(
        select(column, func.count()).where(column.in_(blog_ids)).group_by(column)
    )
    return {blog_id: int(n) for blog_id, n in rows.all()}


async def _liked_by_viewer(db: AsyncSession, blog_ids: Sequence[int], viewer_id: Optional[int]) -> Set[int]:
    if not viewer_id:
        return set()
    rows = await db.execute(
        select(BlogLike.blog_id).where(
            BlogLike.blog_id.in_(blog_ids), BlogLike.user_id == viewer_id
        )
    )
    return set(rows.scalars().all())


async def _authors(db: AsyncSession, author_ids: Set[int]) -> Dict[int, User]:
    rows = await db.execute(select(User).where(User.id.in_(author_ids)))
    return {u.id: u for u in rows.scalars().all()}


def author_out(u: Optional[User]) -> AuthorOut:
    if u is None:
        return AuthorOut(username="[deleted]", profile_picture="")
    return AuthorOut(username=u.username, profile_picture=u.profile_picture)


async def blogs_to_cards(db: AsyncSession, blogs: Sequence[Blog], viewer: Optional[User] = None) -> List[BlogCardOut]:
    if not blogs:
        return []
    ids = [b.id for b in blogs]
    cats = await _categories_by_blog(db, ids)
    likes = await _count_by_blog(db, BlogLike.blog_id, ids)
    comments = await _count_by_blog(db, Comment.blog_id, ids)
    liked = await _liked_by_viewer(db, ids, getattr(viewer, "id", None))
    authors = await _authors(db, {b.author_id for b in blogs})

    return [
        BlogCardOut(
            id=b.id,
            title=b.title,
            description=b.description or "",
            image=b.image,
            likes=likes.get(b.id, 0),
            comments=comments.get(b.id, 0),
            author=author_out(authors.get(b.author_id)),
            date_published=to_iso(b.date_published),
            has_liked=b.id in liked,
            categories=cats.get(b.id, []),
        )
        for b in blogs
    ]


async def blog_to_detail(db: AsyncSession, blog: Blog, viewer: Optional[User] = None) -> BlogDetailOut:
    card = (await blogs_to_cards(db, [blog], viewer))[0]
    return BlogDetailOut(
        **card.model_dump(),
        content=blog.content,
        is_author=bool(viewer is not None and viewer.id == blog.author_id),
    )
