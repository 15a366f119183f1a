"""Session manager: registration, login, logout, refresh-token rotation and access checks."""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from app.core.errors import (
    AccessTokenExpiredError,
    AccessTokenInvalidError,
    AccountDeactivatedError,
    DuplicateEmailError,
    InvalidCredentialsError,
    NoAccessTokenError,
    NoRefreshTokenError,
    RefreshTokenInvalidError,
    StoreUnavailableError,
    UserNotFoundError,
)
from app.core.security import dummy_verify, hash_password, verify_password
from app.core.tokens import (
    TokenError,
    TokenExpiredError,
    TokenIssuer,
    TokenKind,
    TokenPair,
)
from app.models.user import ROLE_USER, User
from app.services.user_store import UserStore, normalize_email

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionResult:
    """A sanitized user plus the token pair to hand to the cookie transport."""

    user: User
    tokens: TokenPair

    @property
    def access_token(self) -> str:
        return self.tokens.access_token


def _subject_id(claims: dict) -> int:
    # Raises ValueError for a non-numeric subject; callers treat that as an invalid token.
    return int(claims["sub"])


class SessionManager:
    """
    Orchestrates the session lifecycle for one request.

    At most one refresh token is valid per user: every login and every
    refresh overwrites the stored value, and a refresh is honoured only if
    the presented token equals the stored one exactly.
    """

    def __init__(self, store: UserStore, issuer: TokenIssuer, settings: "Settings") -> None:
        self.store = store
        self.issuer = issuer
        self.settings = settings

    def register(self, name: str, email: str, password: str) -> SessionResult:
        """Create an account and open a session for it."""
        email = normalize_email(email)
        # Checked before hashing so duplicates cost no bcrypt work.
        if self.store.find_by_email(email) is not None:
            logger.info("Registration rejected: email already registered")
            raise DuplicateEmailError()

        user = self.store.insert(
            User(
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=ROLE_USER,
                is_active=True,
                is_email_verified=False,
            )
        )
        verification_token = self.issuer.issue(TokenKind.VERIFICATION, user.id)
        # Email delivery is handled elsewhere; the token is only logged here.
        logger.info("Email verification token issued", extra={"user_id": user.id})
        if not self.settings.is_production:
            logger.debug("Verification token for user %s: %s", user.id, verification_token)

        return self._open_session(user.id, user.role, {})

    def login(self, email: str, password: str) -> SessionResult:
        """
        Verify credentials and open a fresh session.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        The active flag is checked only after the password matched.
        """
        user = self.store.find_by_email(email, with_secrets=True)
        if user is None:
            dummy_verify(password)
            logger.warning("Login failed: invalid credentials")
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            logger.warning("Login failed: invalid credentials")
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.warning("Login refused for deactivated account", extra={"user_id": user.id})
            raise AccountDeactivatedError()

        result = self._open_session(user.id, user.role, {"last_login": datetime.now(UTC)})
        logger.info("Login succeeded", extra={"user_id": user.id})
        return result

    def _open_session(self, user_id: int, role: str, patch: dict) -> SessionResult:
        pair = self.issuer.issue_pair(user_id, role)
        # Overwrites any earlier refresh token, ending other sessions of this user.
        updated = self.store.update_fields(user_id, {**patch, "refresh_token": pair.refresh_token})
        if updated is None:
            raise UserNotFoundError()
        return SessionResult(user=updated, tokens=pair)

    def _logout_subject(self, refresh_token: str | None, access_token: str | None) -> int | None:
        for kind, token in ((TokenKind.REFRESH, refresh_token), (TokenKind.ACCESS, access_token)):
            if not token:
                continue
            try:
                return _subject_id(self.issuer.verify(kind, token))
            except (TokenError, ValueError) as e:
                logger.debug("Logout with undecodable %s token: %s", kind.value, e)
        return None

    def logout(self, refresh_token: str | None, access_token: str | None = None) -> None:
        """
        Best effort: forget the stored refresh token. Never raises.

        The subject comes from the refresh token when it verifies, otherwise
        from a valid access token.
        """
        user_id = self._logout_subject(refresh_token, access_token)
        if user_id is None:
            return
        try:
            if self.store.update_fields(user_id, {"refresh_token": None}) is None:
                logger.debug("Logout for unknown user %s", user_id)
        except StoreUnavailableError:
            logger.warning("Could not clear refresh token on logout", extra={"user_id": user_id})

    def refresh(self, refresh_token: str | None) -> SessionResult:
        """
        Rotate the refresh token and mint a new access token.

        A token superseded by a later login or refresh no longer matches the
        stored value and is rejected even though its signature is still valid.
        """
        if not refresh_token:
            raise NoRefreshTokenError()
        try:
            user_id = _subject_id(self.issuer.verify(TokenKind.REFRESH, refresh_token))
        except (TokenError, ValueError) as e:
            logger.warning("Refresh rejected: %s", e)
            raise RefreshTokenInvalidError() from e

        user = self.store.find_by_id(user_id, with_secrets=True)
        if user is None or not secrets.compare_digest(
            (user.refresh_token or "").encode("utf-8"), refresh_token.encode("utf-8")
        ):
            logger.warning("Refresh rejected: token superseded or revoked", extra={"user_id": user_id})
            raise RefreshTokenInvalidError()

        pair = self.issuer.issue_pair(user.id, user.role)
        if not self.store.swap_refresh_token(user.id, refresh_token, pair.refresh_token):
            # Another request rotated the same token first.
            logger.warning("Refresh rejected: lost rotation race", extra={"user_id": user_id})
            raise RefreshTokenInvalidError()

        updated = self.store.find_by_id(user.id)
        if updated is None:
            raise RefreshTokenInvalidError()
        return SessionResult(user=updated, tokens=pair)

    def authenticate(self, access_token: str | None) -> User:
        """
        Resolve an access token to a sanitized user.

        Expired tokens ask the client to refresh; anything else that fails
        (forged, malformed, wrong kind, deleted subject) asks it to log out.
        The account's active flag is not consulted here.
        """
        if not access_token:
            raise NoAccessTokenError()
        try:
            user_id = _subject_id(self.issuer.verify(TokenKind.ACCESS, access_token))
        except TokenExpiredError as e:
            raise AccessTokenExpiredError() from e
        except (TokenError, ValueError) as e:
            logger.warning("Access token rejected: %s", e)
            raise AccessTokenInvalidError() from e

        user = self.store.find_by_id(user_id)
        if user is None:
            logger.warning("Access token subject no longer exists", extra={"user_id": user_id})
            raise AccessTokenInvalidError()
        return user
