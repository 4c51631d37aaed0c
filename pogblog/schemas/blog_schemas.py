from __future__ import annotations

from typing import List, Optional

from pydantic import field_validator

from pogblog.categories import MAX_BLOG_CATEGORIES, normalize_categories
from pogblog.models.comment_model import MAX_COMMENT_LENGTH
from pogblog.schemas.common import AuthorOut, CamelModel, PageMeta

TITLE_MAX = 150


def _check_title(v: str) -> str:
    title = (v or "").strip()
    if not title:
        raise ValueError("Title is required")
    if len(title) > TITLE_MAX:
        raise ValueError(f"Title must be at most {TITLE_MAX} characters")
    return title


def _check_content(v: str) -> str:
    if not (v or "").strip():
        raise ValueError("Content is required")
    return v


def _check_blog_categories(v: List[str]) -> List[str]:
    cats = normalize_categories(v)
    if not cats:
        raise ValueError("Choose at least 1 category")
    if len(cats) > MAX_BLOG_CATEGORIES:
        raise ValueError(f"Choose at most {MAX_BLOG_CATEGORIES} categories")
    return cats


class BlogCreateIn(CamelModel):
    title: str
    content: str
    description: str = ""
    image: Optional[str] = None
    categories: List[str]

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return _check_title(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return _check_content(v)

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v):
        return _check_blog_categories(v)


class BlogUpdateIn(CamelModel):
    id: int
    # All optional so the client can send only what changed
    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    categories: Optional[List[str]] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return None if v is None else _check_title(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return None if v is None else _check_content(v)

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v):
        return None if v is None else _check_blog_categories(v)


class CommentIn(CamelModel):
    content: str

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        text = (v or "").strip()
        if not text:
            raise ValueError("Comment cannot be empty")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValueError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")
        return text


class BlogCardOut(CamelModel):
    id: int
    title: str
    description: str
    image: Optional[str] = None
    likes: int
    comments: int
    author: AuthorOut
    date_published: str
    has_liked: bool
    categories: List[str]


class BlogDetailOut(BlogCardOut):
    content: str
    is_author: bool


class BlogPageOut(PageMeta):
    blogs: List[BlogCardOut]


class CommentOut(CamelModel):
    id: int
    content: str
    author: AuthorOut
    date_posted: str


class CommentPageOut(PageMeta):
    comments: List[CommentOut]


class LikedByPageOut(PageMeta):
    users: List[AuthorOut]


class LikesOut(CamelModel):
    likes: int


class CommentsCountOut(CamelModel):
    comments: int


class BlogCreatedOut(CamelModel):
    message: str
    id: int
    title: str
