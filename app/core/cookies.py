"""Cookie transport for session tokens."""

from typing import TYPE_CHECKING, Any, Literal

from fastapi import Response

from app.core.tokens import TokenPair

if TYPE_CHECKING:
    from app.core.config import Settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
# Older clients stored the access token under this name; it is cleared, never set.
LEGACY_COOKIE = "token"


class CookiePolicy:
    """
    Where and how session tokens travel.

    accessToken is sent on every path; refreshToken only to the refresh
    endpoint. Cookies are HttpOnly everywhere, Secure with SameSite=None
    (cross-site allowed) in production and SameSite=Lax otherwise.
    """

    def __init__(self, settings: "Settings") -> None:
        production = settings.is_production
        self.secure = production
        self.samesite: Literal["lax", "none"] = "none" if production else "lax"
        self.domain = settings.COOKIE_DOMAIN if production else None
        self.refresh_path = settings.refresh_cookie_path
        self.access_max_age = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        self.refresh_max_age = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

    def _base(self) -> dict[str, Any]:
        return {
            "httponly": True,
            "secure": self.secure,
            "samesite": self.samesite,
            "domain": self.domain,
        }

    def set_session_cookies(self, response: Response, pair: TokenPair) -> None:
        response.set_cookie(
            ACCESS_COOKIE,
            pair.access_token,
            max_age=self.access_max_age,
            path="/",
            **self._base(),
        )
        response.set_cookie(
            REFRESH_COOKIE,
            pair.refresh_token,
            max_age=self.refresh_max_age,
            path=self.refresh_path,
            **self._base(),
        )
        response.delete_cookie(LEGACY_COOKIE, path="/", **self._base())

    def clear_session_cookies(self, response: Response) -> None:
        base = self._base()
        response.delete_cookie(ACCESS_COOKIE, path="/", **base)
        response.delete_cookie(REFRESH_COOKIE, path=self.refresh_path, **base)
        response.delete_cookie(LEGACY_COOKIE, path="/", **base)
