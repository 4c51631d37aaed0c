from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint, text

from pogblog.config import DEFAULT_PROFILE_PICTURE
from pogblog.database import Base

DEFAULT_BIOGRAPHY = "This user has no biography"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    profile_picture = Column(String, nullable=False, default=DEFAULT_PROFILE_PICTURE)
    biography = Column(Text, nullable=False, default=DEFAULT_BIOGRAPHY)
    is_verified = Column(Boolean, default=False, nullable=False, server_default=text("false"))

    registered_at = Column(DateTime(timezone=True), nullable=True)


class UserCategory(Base):
    """One preferred category of a user."""
    __tablename__ = "user_categories"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_user_category"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)


class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "followee_id", name="uq_follow"),
    )

    id = Column(Integer, primary_key=True, index=True)
    follower_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    followee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
