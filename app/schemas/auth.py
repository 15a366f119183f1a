"""Request/response schemas for auth and account endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.security import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Please include a valid email")
    return v


class CamelModel(BaseModel):
    """Base schema serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RegisterRequest(CamelModel):
    """Payload for POST /auth/register."""

    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < NAME_MIN_LEN:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class LoginRequest(CamelModel):
    """Credentials for POST /auth/login."""

    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class UserPublic(CamelModel):
    """Sanitized user projection: never carries the password hash or refresh token."""

    id: int
    name: str
    email: str
    role: Literal["user", "admin"]
    is_active: bool
    is_email_verified: bool
    last_login: datetime | None = None
    avatar: str = ""
    phone: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionResponse(CamelModel):
    """Body returned by register and login; the refresh token only travels as a cookie."""

    success: bool = True
    message: str
    user: UserPublic
    access_token: str


class RefreshResponse(CamelModel):
    success: bool = True
    access_token: str


class MessageResponse(CamelModel):
    success: bool = True
    message: str


class ErrorResponse(CamelModel):
    """Error envelope shared by every failure response."""

    success: Literal[False] = False
    code: str
    message: str
    should_refresh: bool = False
    should_logout: bool = False
