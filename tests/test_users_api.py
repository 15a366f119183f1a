"""HTTP tests for /users: profile management, role gate and admin account management."""

import unittest

from fastapi.testclient import TestClient

from app.api.deps import is_admin
from app.models import User
from tests.support import API, PASSWORD, fast_bcrypt, make_client, seed_user

LOGIN = f"{API}/auth/login"
PROFILE = f"{API}/users/profile"
USERS = f"{API}/users"


class UsersApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        fast_bcrypt(self)
        self.client, self.factory = make_client()
        self.admin_id = seed_user(self.factory, email="admin@example.com", role="admin", name="Admin")
        self.user_id = seed_user(self.factory, email="jane@example.com", name="Jane Doe")

    def logged_in(self, email: str) -> TestClient:
        client = TestClient(self.client.app)
        response = client.post(LOGIN, json={"email": email, "password": PASSWORD})
        self.assertEqual(response.status_code, 200, response.text)
        return client


class TestRoleGate(unittest.TestCase):
    """is_admin is a pure predicate; a missing identity is never an admin."""

    def test_predicate(self) -> None:
        self.assertTrue(is_admin(User(role="admin")))
        self.assertFalse(is_admin(User(role="user")))
        self.assertFalse(is_admin(None))


class TestProfile(UsersApiTestCase):
    def test_get_profile(self) -> None:
        response = self.logged_in("jane@example.com").get(PROFILE)
        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["name"], "Jane Doe")
        self.assertNotIn("passwordHash", user)

    def test_update_profile_and_password(self) -> None:
        client = self.logged_in("jane@example.com")
        response = client.put(
            PROFILE, json={"name": "Janet", "phone": "+1 555 0100", "password": "new-password-1"}
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["user"]["name"], "Janet")
        relogin = TestClient(self.client.app).post(
            LOGIN, json={"email": "jane@example.com", "password": "new-password-1"}
        )
        self.assertEqual(relogin.status_code, 200)

    def test_update_profile_email_taken(self) -> None:
        client = self.logged_in("jane@example.com")
        response = client.put(PROFILE, json={"email": "ADMIN@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "duplicate_email")


class TestAdminEndpoints(UsersApiTestCase):
    def test_non_admin_is_forbidden(self) -> None:
        response = self.logged_in("jane@example.com").get(USERS)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "forbidden")

    def test_anonymous_gets_auth_error_not_forbidden(self) -> None:
        response = TestClient(self.client.app).get(USERS)
        self.assertEqual(response.status_code, 401)

    def test_list_users(self) -> None:
        response = self.logged_in("admin@example.com").get(USERS, params={"limit": 1})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["totalUsers"], 2)
        self.assertEqual(body["totalPages"], 2)
        self.assertEqual(body["currentPage"], 1)
        self.assertEqual(len(body["users"]), 1)

    def test_get_unknown_user(self) -> None:
        response = self.logged_in("admin@example.com").get(f"{USERS}/999")
        self.assertEqual(response.status_code, 404)

    def test_cannot_delete_self(self) -> None:
        response = self.logged_in("admin@example.com").delete(f"{USERS}/{self.admin_id}")
        self.assertEqual(response.status_code, 400)

    def test_delete_user_invalidates_their_access_token(self) -> None:
        jane = self.logged_in("jane@example.com")
        admin = self.logged_in("admin@example.com")
        self.assertEqual(admin.delete(f"{USERS}/{self.user_id}").status_code, 200)
        response = jane.get(PROFILE)
        self.assertEqual(response.status_code, 401)
        self.assertTrue(response.json()["shouldLogout"])

    def test_deactivation_blocks_login_but_not_live_access_token(self) -> None:
        jane = self.logged_in("jane@example.com")
        admin = self.logged_in("admin@example.com")
        response = admin.put(
            f"{USERS}/{self.user_id}",
            json={"name": "Jane Doe", "email": "jane@example.com", "isActive": False},
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertFalse(response.json()["isActive"])

        # Already-issued access token keeps working until it expires.
        self.assertEqual(jane.get(PROFILE).status_code, 200)

        relogin = TestClient(self.client.app).post(
            LOGIN, json={"email": "jane@example.com", "password": PASSWORD}
        )
        self.assertEqual(relogin.status_code, 403)
        self.assertEqual(relogin.json()["code"], "account_deactivated")


if __name__ == "__main__":
    unittest.main()
