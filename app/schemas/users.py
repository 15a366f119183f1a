"""Schemas for profile and admin user-management endpoints."""

from typing import Literal

from pydantic import Field, field_validator

from app.core.security import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
)
from app.schemas.auth import CamelModel, UserPublic, _normalize_email

PHONE_PATTERN = r"^([+]*[(]?[0-9]{1,4}[)]?[-\s./0-9]*)?$"


class ProfileResponse(CamelModel):
    success: bool = True
    user: UserPublic


class ProfileUpdateRequest(CamelModel):
    """Fields a user may change on their own account; omitted fields are left as-is."""

    name: str | None = Field(default=None, min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: str | None = Field(default=None, max_length=255)
    password: str | None = Field(
        default=None, min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN
    )
    avatar: str | None = Field(default=None, max_length=1024)
    phone: str | None = Field(default=None, max_length=32, pattern=PHONE_PATTERN)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return None if v is None else _normalize_email(v)


class AdminUserUpdateRequest(CamelModel):
    """Admin update of another account (role and activation included)."""

    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=NAME_MAX_LEN)
    email: str = Field(..., max_length=255)
    role: Literal["user", "admin"] | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class UsersPageResponse(CamelModel):
    """Response for GET /users (admin only)."""

    users: list[UserPublic]
    total_pages: int
    current_page: int
    total_users: int
