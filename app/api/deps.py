"""Shared dependencies: session manager wiring, request authenticator and role gate."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.cookies import ACCESS_COOKIE, LEGACY_COOKIE, CookiePolicy
from app.core.database import get_db
from app.core.errors import ForbiddenError
from app.core.tokens import TokenIssuer
from app.models.user import ROLE_ADMIN, User
from app.services.session import SessionManager
from app.services.user_store import UserStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cookie_policy(request: Request) -> CookiePolicy:
    return request.app.state.cookie_policy


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    return UserStore(db)


def get_session_manager(
    request: Request,
    store: Annotated[UserStore, Depends(get_user_store)],
) -> SessionManager:
    issuer: TokenIssuer = request.app.state.token_issuer
    return SessionManager(store, issuer, request.app.state.settings)


def get_current_user(
    request: Request,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> User:
    """
    Dependency: require a valid access-token cookie and return the sanitized user.

    Raises NoAccessTokenError / AccessTokenExpiredError (client should refresh)
    or AccessTokenInvalidError (client should log out). The resolved user is
    also attached to request.state.user for downstream handlers.
    """
    token = request.cookies.get(ACCESS_COOKIE) or request.cookies.get(LEGACY_COOKIE)
    user = sessions.authenticate(token)
    request.state.user = user
    return user


def is_admin(user: User | None) -> bool:
    return user is not None and getattr(user, "role", None) == ROLE_ADMIN


def require_admin(
    request: Request,
    _user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Dependency: require an attached identity with role 'admin'. Raises 403 otherwise."""
    user = getattr(request.state, "user", None)
    if not is_admin(user):
        raise ForbiddenError()
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
Cookies = Annotated[CookiePolicy, Depends(get_cookie_policy)]
Store = Annotated[UserStore, Depends(get_user_store)]
