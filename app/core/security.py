"""Password hashing and verification for stored credentials."""

from functools import lru_cache

import bcrypt

from app.core.errors import PasswordComparisonError

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for name and password validation.
NAME_MIN_LEN = 2
NAME_MAX_LEN = 50
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128


def _to_bytes(plain_password: str) -> bytes:
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    return plain_password.encode("utf-8")[:72]


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    return bcrypt.hashpw(
        _to_bytes(plain_password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    ).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """
    Verify a plain password against a stored hash.
    Raises PasswordComparisonError if the comparison itself cannot be performed.
    """
    try:
        return bcrypt.checkpw(_to_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError) as e:
        raise PasswordComparisonError() from e


@lru_cache(maxsize=1)
def _dummy_hash() -> bytes:
    return bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=BCRYPT_ROUNDS))


def dummy_verify(plain_password: str) -> None:
    """Spend one bcrypt comparison so unknown-email logins cost the same as real ones."""
    bcrypt.checkpw(_to_bytes(plain_password), _dummy_hash())
