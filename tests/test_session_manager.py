"""Unit tests for app.services.session: the session lifecycle and refresh rotation."""

import unittest
from unittest.mock import patch

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
)
from app.core.tokens import TokenExpiredError, TokenIssuer, TokenKind
from app.schemas.auth import UserPublic
from app.services.session import SessionManager
from app.services.user_store import UserStore
from tests.support import PASSWORD, fast_bcrypt, make_session_factory, make_settings


class SessionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        fast_bcrypt(self)
        self.settings = make_settings()
        self.issuer = TokenIssuer(self.settings)
        self.factory = make_session_factory()

    def manager(self) -> SessionManager:
        """A manager over a fresh DB session, as a new request would get."""
        db = self.factory()
        self.addCleanup(db.close)
        return SessionManager(UserStore(db), self.issuer, self.settings)

    def stored_refresh_token(self, user_id: int) -> str | None:
        db = self.factory()
        try:
            return UserStore(db).find_by_id(user_id, with_secrets=True).refresh_token
        finally:
            db.close()

    def register(self, email: str = "jane@example.com"):
        return self.manager().register("Jane Doe", email, PASSWORD)


class TestRegister(SessionTestCase):
    def test_register_opens_session_and_persists_refresh_token(self) -> None:
        result = self.register()
        self.assertEqual(result.user.email, "jane@example.com")
        self.assertEqual(result.user.role, "user")
        self.assertFalse(result.user.is_email_verified)
        self.assertEqual(self.stored_refresh_token(result.user.id), result.tokens.refresh_token)
        claims = self.issuer.verify(TokenKind.ACCESS, result.access_token)
        self.assertEqual(claims["sub"], str(result.user.id))
        self.assertEqual(claims["role"], "user")

    def test_projection_has_no_secrets(self) -> None:
        dumped = UserPublic.model_validate(self.register().user).model_dump(by_alias=True)
        self.assertNotIn("passwordHash", dumped)
        self.assertNotIn("refreshToken", dumped)
        self.assertNotIn("password_hash", dumped)

    def test_duplicate_email_case_insensitive(self) -> None:
        self.register("jane@example.com")
        with patch("app.services.session.hash_password") as hasher:
            with self.assertRaises(DuplicateEmailError):
                self.register("JANE@Example.com")
            hasher.assert_not_called()
        db = self.factory()
        self.addCleanup(db.close)
        self.assertEqual(UserStore(db).count_users(), 1)


class TestLogin(SessionTestCase):
    def test_login_rotates_and_stamps_last_login(self) -> None:
        registered = self.register()
        result = self.manager().login("jane@example.com", PASSWORD)
        self.assertIsNotNone(result.user.last_login)
        self.assertNotEqual(result.tokens.refresh_token, registered.tokens.refresh_token)
        self.assertEqual(self.stored_refresh_token(result.user.id), result.tokens.refresh_token)

    def test_unknown_email_and_wrong_password_raise_the_same_error(self) -> None:
        self.register()
        with self.assertRaises(InvalidCredentialsError) as unknown:
            self.manager().login("nobody@example.com", PASSWORD)
        with self.assertRaises(InvalidCredentialsError) as wrong:
            self.manager().login("jane@example.com", "wrong-password")
        self.assertEqual(type(unknown.exception), type(wrong.exception))
        self.assertEqual(unknown.exception.message, wrong.exception.message)

    def test_deactivated_account_checked_after_password(self) -> None:
        user_id = self.register().user.id
        db = self.factory()
        self.addCleanup(db.close)
        UserStore(db).update_fields(user_id, {"is_active": False})
        with self.assertRaises(InvalidCredentialsError):
            self.manager().login("jane@example.com", "wrong-password")
        with self.assertRaises(AccountDeactivatedError):
            self.manager().login("jane@example.com", PASSWORD)

    def test_second_login_invalidates_first_sessions_refresh_token(self) -> None:
        self.register()
        first = self.manager().login("jane@example.com", PASSWORD)
        self.manager().login("jane@example.com", PASSWORD)
        with self.assertRaises(RefreshTokenInvalidError):
            self.manager().refresh(first.tokens.refresh_token)


class TestRefresh(SessionTestCase):
    def test_missing_token(self) -> None:
        with self.assertRaises(NoRefreshTokenError):
            self.manager().refresh(None)

    def test_refresh_rotates_and_old_token_cannot_be_replayed(self) -> None:
        session = self.register()
        rotated = self.manager().refresh(session.tokens.refresh_token)
        self.assertNotEqual(rotated.tokens.refresh_token, session.tokens.refresh_token)
        self.assertEqual(
            self.stored_refresh_token(session.user.id), rotated.tokens.refresh_token
        )
        with self.assertRaises(RefreshTokenInvalidError):
            self.manager().refresh(session.tokens.refresh_token)
        # The rotated token keeps working.
        self.manager().refresh(rotated.tokens.refresh_token)

    def test_access_token_is_not_a_refresh_token(self) -> None:
        session = self.register()
        with self.assertRaises(RefreshTokenInvalidError):
            self.manager().refresh(session.access_token)

    def test_lost_rotation_race(self) -> None:
        session = self.register()
        manager = self.manager()
        with patch.object(manager.store, "swap_refresh_token", return_value=False):
            with self.assertRaises(RefreshTokenInvalidError):
                manager.refresh(session.tokens.refresh_token)


class TestLogout(SessionTestCase):
    def test_logout_clears_stored_refresh_token(self) -> None:
        session = self.register()
        self.manager().logout(session.tokens.refresh_token)
        self.assertIsNone(self.stored_refresh_token(session.user.id))
        with self.assertRaises(RefreshTokenInvalidError):
            self.manager().refresh(session.tokens.refresh_token)

    def test_logout_falls_back_to_access_token_subject(self) -> None:
        session = self.register()
        self.manager().logout(None, session.access_token)
        self.assertIsNone(self.stored_refresh_token(session.user.id))
        with self.assertRaises(RefreshTokenInvalidError):
            self.manager().refresh(session.tokens.refresh_token)

    def test_logout_ignores_refresh_token_passed_as_access_token(self) -> None:
        session = self.register()
        self.manager().logout("garbage", session.tokens.refresh_token)
        self.assertEqual(
            self.stored_refresh_token(session.user.id), session.tokens.refresh_token
        )

    def test_logout_never_raises(self) -> None:
        manager = self.manager()
        manager.logout(None)
        manager.logout("garbage")
        with patch.object(manager.store, "update_fields", side_effect=StoreUnavailableError()):
            manager.logout(self.issuer.issue(TokenKind.REFRESH, 1))


class TestAuthenticate(SessionTestCase):
    def test_valid_access_token(self) -> None:
        session = self.register()
        user = self.manager().authenticate(session.access_token)
        self.assertEqual(user.id, session.user.id)

    def test_missing_token(self) -> None:
        with self.assertRaises(NoAccessTokenError):
            self.manager().authenticate("")

    def test_expired_token_asks_for_refresh(self) -> None:
        session = self.register()
        with patch.object(self.issuer, "verify", side_effect=TokenExpiredError()):
            with self.assertRaises(AccessTokenExpiredError) as ctx:
                self.manager().authenticate(session.access_token)
        self.assertTrue(ctx.exception.should_refresh)
        self.assertFalse(ctx.exception.should_logout)

    def test_deleted_subject_is_invalid(self) -> None:
        session = self.register()
        db = self.factory()
        self.addCleanup(db.close)
        UserStore(db).delete(session.user.id)
        with self.assertRaises(AccessTokenInvalidError) as ctx:
            self.manager().authenticate(session.access_token)
        self.assertTrue(ctx.exception.should_logout)

    def test_deactivation_does_not_revoke_live_access_token(self) -> None:
        session = self.register()
        db = self.factory()
        self.addCleanup(db.close)
        UserStore(db).update_fields(session.user.id, {"is_active": False})
        user = self.manager().authenticate(session.access_token)
        self.assertFalse(user.is_active)


if __name__ == "__main__":
    unittest.main()
