from typing import List, Optional

from email_validator import validate_email, EmailNotValidError
from pydantic import field_validator

from pogblog.categories import MIN_PREFERRED_CATEGORIES, normalize_categories
from pogblog.schemas.common import CamelModel
from pogblog.utils.password_utils import MIN_PASSWORD_LENGTH

USERNAME_MIN = 3
USERNAME_MAX = 30

# usernames double as profile URLs on the client
RESERVED_USERNAMES = {"blogs", "login", "signup", "otp", "feed", "me", "search", "write", "explore"}
DISALLOWED_URL_CHARS = set(" <>#%{}|\\^~[]`/?")


def _check_email(v: str) -> str:
    try:
        return validate_email((v or "").strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise ValueError("Invalid email")


def check_username(v: str) -> str:
    name = (v or "").strip()
    if not (USERNAME_MIN <= len(name) <= USERNAME_MAX):
        raise ValueError(f"Username must be between {USERNAME_MIN} and {USERNAME_MAX} characters")
    if any(ch in DISALLOWED_URL_CHARS for ch in name):
        raise ValueError("Username contains invalid characters")
    if name.lower() in RESERVED_USERNAMES:
        raise ValueError("Username is not allowed")
    return name


class SignupIn(CamelModel):
    email: str
    password: str
    username: str

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v or "") < MIN_PASSWORD_LENGTH:
            raise ValueError("Invalid password")
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        return check_username(v)


class LoginIn(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v or "") < MIN_PASSWORD_LENGTH:
            raise ValueError("Invalid password")
        return v


class VerifyEmailIn(CamelModel):
    email: str
    otp: str

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        return _check_email(v)

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v):
        code = (v or "").strip()
        if not code.isdigit():
            raise ValueError("Invalid verification code")
        return code


class ResendCodeIn(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        return _check_email(v)


class CategoriesIn(CamelModel):
    categories: List[str]

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v):
        cats = normalize_categories(v)
        if len(cats) < MIN_PREFERRED_CATEGORIES:
            raise ValueError(f"Choose at least {MIN_PREFERRED_CATEGORIES} categories!")
        return cats


class ProfileUpdateIn(CamelModel):
    # All optional so the client can send only what changed
    username: Optional[str] = None
    profile_picture: Optional[str] = None
    biography: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        return None if v is None else check_username(v)

    @field_validator("biography")
    @classmethod
    def validate_biography(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Biography must be at most 500 characters")
        return v


class MeOut(CamelModel):
    id: int
    username: str
    email: str
    profile_picture: str
    biography: str
    categories: List[str]
    has_no_categories: bool


class ProfileOut(CamelModel):
    id: int
    username: str
    profile_picture: str
    biography: str
    followers: int
    following: int
    blogs_count: int
    is_profile_owner: bool
    is_following: bool
