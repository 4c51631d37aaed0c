from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialized with camelCase keys; accepts either spelling on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageOut(CamelModel):
    message: str


class AuthorOut(CamelModel):
    username: str
    profile_picture: str


class PageMeta(CamelModel):
    has_more: bool
    next_page: Optional[int] = None
