import secrets
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from pogblog.config import VERIFICATION_CODE_TTL_MINUTES
from pogblog.models.verification_code import VerificationCode
from pogblog.utils.time_utils import as_utc, utcnow

CODE_DIGITS = 6


def _random_code() -> str:
    return str(secrets.randbelow(10 ** CODE_DIGITS)).zfill(CODE_DIGITS)


async def issue_verification_code(db: AsyncSession, email: str) -> str:
    """
    Replace any outstanding code for `email` with a new one. Flushes but does
    not commit, so the caller can roll back if the email cannot be sent.
    """
    await db.execute(delete(VerificationCode).where(VerificationCode.email == email))

    # codes are unique across the table
    code = _random_code()
    while (await db.execute(
        select(VerificationCode.id).where(VerificationCode.code == code)
    )).first() is not None:
        code = _random_code()

    db.add(VerificationCode(
        email=email,
        code=code,
        expiration=utcnow() + timedelta(minutes=VERIFICATION_CODE_TTL_MINUTES),
    ))
    await db.flush()
    return code


async def consume_verification_code(db: AsyncSession, email: str, code: str) -> None:
    """
    Check `code` for `email` and delete it. Raises 400 when the code is
    unknown or expired (expired codes are removed as well).
    """
    row = (
        await db.execute(
            select(VerificationCode).where(
                VerificationCode.email == email,
                VerificationCode.code == code,
            )
        )
    ).scalar_one_or_none()

    if not row:
        raise HTTPException(status_code=400, detail="Invalid verification code")

    if as_utc(row.expiration) <= utcnow():
        await db.delete(row)
        await db.commit()
        raise HTTPException(status_code=400, detail="Verification code expired")

    await db.execute(delete(VerificationCode).where(VerificationCode.email == email))
