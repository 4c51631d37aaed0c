from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from pogblog.database import Base


class Session(Base):
    __tablename__ = "sessions"

    # opaque id; the cookie carries nothing else
    id = Column(String(40), primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
