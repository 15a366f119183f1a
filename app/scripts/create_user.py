"""
Create a user (e.g. first admin). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD [role] [--name NAME]
  python -m app.scripts.create_user --from-env
Example:
  python -m app.scripts.create_user admin@example.com your-secure-password admin
With --from-env, ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME are read from settings
and an existing account is left untouched.
"""
import argparse
import sys

from app.core.config import get_settings
from app.core.database import get_sessionmaker
from app.core.errors import DuplicateEmailError
from app.core.security import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    hash_password,
)
from app.models.user import ROLE_ADMIN, ROLES, User
from app.schemas.auth import EMAIL_PATTERN
from app.services.user_store import UserStore, normalize_email


def create_user(store: UserStore, name: str, email: str, password: str, role: str) -> User:
    """Validate input and insert the user; raises ValueError or DuplicateEmailError."""
    name = name.strip()
    email = normalize_email(email)
    if not (NAME_MIN_LEN <= len(name) <= NAME_MAX_LEN):
        raise ValueError(f"Name must be {NAME_MIN_LEN}-{NAME_MAX_LEN} characters.")
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address.")
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise ValueError(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters."
        )
    if role not in ROLES:
        raise ValueError(f"Role must be one of: {', '.join(ROLES)}.")
    if store.find_by_email(email) is not None:
        raise DuplicateEmailError(f"User '{email}' already exists.")
    return store.insert(
        User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            is_active=True,
            is_email_verified=role == ROLE_ADMIN,
        )
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an Emporium user (e.g. the first admin).")
    parser.add_argument("email", nargs="?", help="Email address")
    parser.add_argument("password", nargs="?", help="Password (8-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=list(ROLES))
    parser.add_argument("--name", default="Admin", help="Display name (2-50 chars)")
    parser.add_argument(
        "--from-env",
        action="store_true",
        help="Create the admin from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME if missing",
    )
    args = parser.parse_args(argv)

    if args.from_env:
        settings = get_settings()
        if not settings.ADMIN_EMAIL or settings.ADMIN_PASSWORD is None:
            print("ADMIN_EMAIL and ADMIN_PASSWORD must be set.", file=sys.stderr)
            return 1
        name, email = settings.ADMIN_NAME, settings.ADMIN_EMAIL
        password, role = settings.ADMIN_PASSWORD.get_secret_value(), ROLE_ADMIN
    elif args.email and args.password:
        name, email, password, role = args.name, args.email, args.password, args.role
    else:
        parser.error("email and password are required unless --from-env is given")

    db = get_sessionmaker()()
    try:
        user = create_user(UserStore(db), name, email, password, role)
    except DuplicateEmailError as e:
        print(e.message, file=sys.stderr)
        return 0 if args.from_env else 1
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user '{user.email}' with role '{user.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
