"""Pydantic request/response schemas."""

from app.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RefreshResponse,
    RegisterRequest,
    SessionResponse,
    UserPublic,
)
from app.schemas.health import HealthResponse
from app.schemas.users import (
    AdminUserUpdateRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    UsersPageResponse,
)

__all__ = [
    "AdminUserUpdateRequest",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "RefreshResponse",
    "RegisterRequest",
    "SessionResponse",
    "UserPublic",
    "UsersPageResponse",
]
