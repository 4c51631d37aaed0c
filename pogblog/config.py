import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./pogblog.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if o.strip()
]

# Sessions
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "auth_session")
SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "lax")
SESSION_EXPIRES_DAYS = int(os.getenv("SESSION_EXPIRES_DAYS", "14"))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

VERIFICATION_CODE_TTL_MINUTES = int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "15"))

PAGE_SIZE = int(os.getenv("PAGE_SIZE", "20"))

DEFAULT_PROFILE_PICTURE = os.getenv(
    "DEFAULT_PROFILE_PICTURE", "https://picsum.photos/200/300"
)

# Rate limiting
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
SIGNUP_RATE = os.getenv("SIGNUP_RATE", "5/minute")
LOGIN_RATE = os.getenv("LOGIN_RATE", "5/minute")
VERIFY_RATE = os.getenv("VERIFY_RATE", "10/minute")
RESEND_RATE = os.getenv("RESEND_RATE", "3/minute")

# SMTP
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
FROM_EMAIL = os.getenv("FROM_EMAIL", "no-reply@pogblog.local")
