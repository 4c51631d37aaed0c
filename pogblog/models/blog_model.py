from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from pogblog.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Blog(Base):
    __tablename__ = "blogs"
    __table_args__ = (
        # a title can only be used once per author
        UniqueConstraint("author_id", "title", name="uq_blog_author_title"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(150), nullable=False, index=True)
    content = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    image = Column(String, nullable=True)

    author_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date_published = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)


class BlogCategory(Base):
    __tablename__ = "blog_categories"
    __table_args__ = (
        UniqueConstraint("blog_id", "name", name="uq_blog_category"),
    )

    id = Column(Integer, primary_key=True, index=True)
    blog_id = Column(Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False, index=True)


class BlogLike(Base):
    __tablename__ = "blog_likes"
    __table_args__ = (
        UniqueConstraint("user_id", "blog_id", name="uq_blog_like"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    blog_id = Column(Integer, ForeignKey("blogs.id", ondelete="CASCADE"), nullable=False, index=True)
    liked_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
