from sqlalchemy import Column, Integer, String, DateTime

from pogblog.database import Base


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False, index=True)
    code = Column(String(6), nullable=False, unique=True)
    expiration = Column(DateTime(timezone=True), nullable=False)
