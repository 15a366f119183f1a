"""Application errors mapped to HTTP responses by app.api.error_handling.

Every error carries a stable machine-readable ``code`` plus two client
signals: ``should_refresh`` (retry after POST /auth/refresh-token) and
``should_logout`` (discard the session and re-authenticate).
"""


class AppError(Exception):
    """Base class for errors that surface as structured JSON responses."""

    status_code: int = 400
    code: str = "bad_request"
    message: str = "Bad request"
    should_refresh: bool = False
    should_logout: bool = False
    # When True the response also clears every session cookie.
    clear_session: bool = False

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationFailedError(AppError):
    status_code = 400
    code = "validation_error"
    message = "Invalid request"


class DuplicateEmailError(AppError):
    """Raised when an email is already registered (checked and enforced by the store)."""

    status_code = 400
    code = "duplicate_email"
    message = "Email is already registered"


class InvalidCredentialsError(AppError):
    """Unknown email and wrong password share this error so responses are identical."""

    status_code = 401
    code = "invalid_credentials"
    message = "Invalid credentials"


class AccountDeactivatedError(AppError):
    status_code = 403
    code = "account_deactivated"
    message = "Account is deactivated. Please contact support."


class NoAccessTokenError(AppError):
    status_code = 401
    code = "no_access_token"
    message = "No access token provided"
    should_refresh = True


class AccessTokenExpiredError(AppError):
    status_code = 401
    code = "access_token_expired"
    message = "Access token expired"
    should_refresh = True


class AccessTokenInvalidError(AppError):
    """Forged, malformed or orphaned access token; refreshing must not be attempted."""

    status_code = 401
    code = "access_token_invalid"
    message = "Invalid access token"
    should_logout = True


class NoRefreshTokenError(AppError):
    status_code = 401
    code = "no_refresh_token"
    message = "No refresh token provided"
    should_logout = True


class RefreshTokenInvalidError(AppError):
    status_code = 403
    code = "refresh_token_invalid"
    message = "Invalid or expired refresh token"
    should_logout = True
    clear_session = True


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"
    message = "Not authorized as an admin"


class UserNotFoundError(AppError):
    status_code = 404
    code = "not_found"
    message = "User not found"


class PasswordComparisonError(AppError):
    """Opaque hashing failure; never reveals whether the stored hash was malformed."""

    status_code = 500
    code = "server_error"
    message = "Error comparing passwords"


class StoreUnavailableError(AppError):
    status_code = 503
    code = "store_unavailable"
    message = "Credential store is unavailable"
