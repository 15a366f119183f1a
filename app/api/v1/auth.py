"""Cookie-based auth endpoints: register, login, logout, refresh-token and me."""

from fastapi import APIRouter, Request, Response, status

from app.api.deps import Cookies, CurrentUser, Sessions
from app.core.cookies import ACCESS_COOKIE, LEGACY_COOKIE, REFRESH_COOKIE
from app.schemas.auth import (
    LoginRequest,
    MessageResponse,
    RefreshResponse,
    RegisterRequest,
    SessionResponse,
    UserPublic,
)
from app.schemas.users import ProfileResponse

router = APIRouter()


@router.post(
    "/register",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: RegisterRequest,
    response: Response,
    sessions: Sessions,
    cookies: Cookies,
) -> SessionResponse:
    """
    Create an account and start a session.
    Sets the accessToken and refreshToken cookies; the body carries the access token only.
    """
    result = sessions.register(body.name, body.email, body.password)
    cookies.set_session_cookies(response, result.tokens)
    return SessionResponse(
        message="Registration successful. Please check your email to verify your account.",
        user=UserPublic.model_validate(result.user),
        access_token=result.access_token,
    )


@router.post("/login", response_model=SessionResponse)
def login(
    body: LoginRequest,
    response: Response,
    sessions: Sessions,
    cookies: Cookies,
) -> SessionResponse:
    """Authenticate with email and password; rotates the user's refresh token."""
    result = sessions.login(body.email, body.password)
    cookies.set_session_cookies(response, result.tokens)
    return SessionResponse(
        message="Login successful",
        user=UserPublic.model_validate(result.user),
        access_token=result.access_token,
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    sessions: Sessions,
    cookies: Cookies,
) -> MessageResponse:
    """Always succeeds; clears the stored refresh token when possible and all session cookies."""
    sessions.logout(
        request.cookies.get(REFRESH_COOKIE),
        request.cookies.get(ACCESS_COOKIE) or request.cookies.get(LEGACY_COOKIE),
    )
    cookies.clear_session_cookies(response)
    return MessageResponse(message="Logout successful")


@router.post("/refresh-token", response_model=RefreshResponse)
def refresh_token(
    request: Request,
    response: Response,
    sessions: Sessions,
    cookies: Cookies,
) -> RefreshResponse:
    """
    Exchange the refreshToken cookie for a new access token and a rotated refresh token.
    On failure the session cookies are cleared and the client must log in again.
    """
    result = sessions.refresh(request.cookies.get(REFRESH_COOKIE))
    cookies.set_session_cookies(response, result.tokens)
    return RefreshResponse(access_token=result.access_token)


@router.get("/me", response_model=ProfileResponse)
def me(current_user: CurrentUser) -> ProfileResponse:
    """Return the user attached by the access-token cookie."""
    return ProfileResponse(user=UserPublic.model_validate(current_user))
