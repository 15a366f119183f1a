"""Account endpoints: own profile (authenticated) and user management (admin only)."""

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Query

from app.api.deps import AdminUser, CurrentUser, Store
from app.core.errors import DuplicateEmailError, UserNotFoundError, ValidationFailedError
from app.core.security import hash_password
from app.schemas.auth import MessageResponse, UserPublic
from app.schemas.users import (
    AdminUserUpdateRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    UsersPageResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _ensure_email_available(store: Store, email: str, user_id: int) -> None:
    existing = store.find_by_email(email)
    if existing is not None and existing.id != user_id:
        raise DuplicateEmailError("Email already in use")


@router.get("/profile", response_model=ProfileResponse)
def get_profile(current_user: CurrentUser) -> ProfileResponse:
    return ProfileResponse(user=UserPublic.model_validate(current_user))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdateRequest,
    current_user: CurrentUser,
    store: Store,
) -> ProfileResponse:
    """Update name, email, avatar, phone or password of the current user."""
    patch = body.model_dump(exclude_none=True, exclude={"password"})
    if "email" in patch and patch["email"] != current_user.email:
        _ensure_email_available(store, patch["email"], current_user.id)
    if body.password:
        patch["password_hash"] = hash_password(body.password)
    if not patch:
        return ProfileResponse(user=UserPublic.model_validate(current_user))
    user = store.update_fields(current_user.id, patch)
    if user is None:
        raise UserNotFoundError()
    return ProfileResponse(user=UserPublic.model_validate(user))


@router.get("", response_model=UsersPageResponse)
def list_users(
    _admin: AdminUser,
    store: Store,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> UsersPageResponse:
    """List users newest first (admin only)."""
    total = store.count_users()
    users = store.list_users(page=page, limit=limit)
    return UsersPageResponse(
        users=[UserPublic.model_validate(u) for u in users],
        total_pages=math.ceil(total / limit),
        current_page=page,
        total_users=total,
    )


@router.get("/{user_id}", response_model=UserPublic)
def get_user(user_id: int, _admin: AdminUser, store: Store) -> UserPublic:
    user = store.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    return UserPublic.model_validate(user)


@router.put("/{user_id}", response_model=UserPublic)
def update_user(
    user_id: int,
    body: AdminUserUpdateRequest,
    admin: AdminUser,
    store: Store,
) -> UserPublic:
    """
    Update another account, including role and active flag.
    Deactivation blocks future logins; access tokens already issued stay valid until they expire.
    """
    user = store.find_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    if body.email != user.email:
        _ensure_email_available(store, body.email, user_id)
    patch = body.model_dump(exclude_none=True)
    updated = store.update_fields(user_id, patch)
    if updated is None:
        raise UserNotFoundError()
    logger.info(
        "User updated by admin",
        extra={"user_id": user_id, "admin_id": admin.id, "fields": sorted(patch)},
    )
    return UserPublic.model_validate(updated)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, admin: AdminUser, store: Store) -> MessageResponse:
    if user_id == admin.id:
        raise ValidationFailedError("Cannot delete your own account")
    if not store.delete(user_id):
        raise UserNotFoundError()
    logger.info("User deleted by admin", extra={"user_id": user_id, "admin_id": admin.id})
    return MessageResponse(message="User removed")
