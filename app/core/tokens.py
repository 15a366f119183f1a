"""JWT creation and verification for access, refresh and email-verification tokens."""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

import jwt

if TYPE_CHECKING:
    from app.core.config import Settings


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    VERIFICATION = "verification"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the exp claim has elapsed."""


class TokenInvalidError(TokenError):
    """Bad signature, malformed token, missing claims or wrong token kind."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    """
    Issues and verifies signed, time-bounded tokens.

    Access and verification tokens are signed with JWT_SECRET; refresh tokens
    with REFRESH_TOKEN_SECRET, so a leaked secret cannot forge the other kind.
    Every token carries a ``typ`` claim and a random ``jti``.
    """

    def __init__(self, settings: "Settings") -> None:
        access_secret = settings.JWT_SECRET.get_secret_value()
        refresh_secret = settings.REFRESH_TOKEN_SECRET.get_secret_value()
        if not access_secret or not refresh_secret:
            raise RuntimeError("JWT_SECRET and REFRESH_TOKEN_SECRET must be configured")
        self._algorithm = settings.JWT_ALGORITHM
        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
            TokenKind.VERIFICATION: access_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            TokenKind.REFRESH: timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            TokenKind.VERIFICATION: timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
        }

    def issue(self, kind: TokenKind, subject: str | int, role: str | None = None) -> str:
        """Create a signed token for subject; role is only embedded in access tokens."""
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(subject),
            "typ": kind.value,
            "jti": secrets.token_urlsafe(16),
            "iat": now,
            "exp": now + self._ttls[kind],
        }
        if kind is TokenKind.ACCESS and role is not None:
            payload["role"] = role
        return jwt.encode(payload, self._secrets[kind], algorithm=self._algorithm)

    def issue_pair(self, subject: str | int, role: str) -> TokenPair:
        return TokenPair(
            access_token=self.issue(TokenKind.ACCESS, subject, role=role),
            refresh_token=self.issue(TokenKind.REFRESH, subject),
        )

    def verify(self, kind: TokenKind, token: str) -> dict[str, Any]:
        """
        Decode and validate a token of the given kind; return its claims.
        Raises TokenExpiredError or TokenInvalidError.
        """
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError(f"{kind.value} token expired") from e
        except jwt.PyJWTError as e:
            raise TokenInvalidError(f"invalid {kind.value} token") from e
        if payload.get("typ") != kind.value:
            raise TokenInvalidError(f"token is not a {kind.value} token")
        if not payload.get("sub"):
            raise TokenInvalidError("token has no subject")
        return payload
