import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from pogblog.config import (
    SMTP_HOST,
    SMTP_PORT,
    SMTP_USERNAME,
    SMTP_PASSWORD,
    FROM_EMAIL,
    VERIFICATION_CODE_TTL_MINUTES,
)

logger = logging.getLogger(__name__)


def send_verification_code(to_email: str, code: str):
    subject = "Pog Blog --> Your verification code"
    text = f"""
    Hi there,

    Your Pog Blog verification code is: {code}

    It expires in {VERIFICATION_CODE_TTL_MINUTES} minutes.

    If you didn't sign up, just ignore this email.
    """

    if not SMTP_HOST:
        raise RuntimeError("SMTP_HOST is not configured")

    msg = MIMEMultipart()
    msg["From"] = FROM_EMAIL
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(text, "plain"))

    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
            server.starttls()
            if SMTP_USERNAME:
                server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.sendmail(FROM_EMAIL, to_email, msg.as_string())
    except Exception:
        logger.exception("SMTP send to %s failed", to_email)
        raise
