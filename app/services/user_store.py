"""Credential store: user-record persistence behind the session manager."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, defer

from app.core.errors import DuplicateEmailError, StoreUnavailableError
from app.models import User

logger = logging.getLogger(__name__)

# Columns that are never part of a sanitized projection.
SECRET_COLUMNS = (User.password_hash, User.refresh_token)


def normalize_email(email: str) -> str:
    """Emails are stored trimmed and lower-cased so uniqueness is case-insensitive."""
    return (email or "").strip().lower()


class UserStore:
    """
    Lookups and explicit field updates over the users table.

    Reads default to a sanitized projection: password_hash and refresh_token
    are deferred with raiseload, so touching them on such a record raises
    instead of silently loading. Pass with_secrets=True to load them.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Translate driver failures into StoreUnavailableError."""
        try:
            yield
        except IntegrityError:
            self.session.rollback()
            raise
        except DBAPIError as e:
            self.session.rollback()
            logger.error("Credential store error", extra={"error_type": type(e).__name__})
            raise StoreUnavailableError() from e

    def _select(self, with_secrets: bool):
        stmt = select(User).execution_options(populate_existing=True)
        if not with_secrets:
            stmt = stmt.options(*(defer(col, raiseload=True) for col in SECRET_COLUMNS))
        return stmt

    def find_by_email(self, email: str, with_secrets: bool = False) -> User | None:
        stmt = self._select(with_secrets).where(User.email == normalize_email(email))
        with self._guard():
            return self.session.execute(stmt).scalars().first()

    def find_by_id(self, user_id: int, with_secrets: bool = False) -> User | None:
        stmt = self._select(with_secrets).where(User.id == user_id)
        with self._guard():
            return self.session.execute(stmt).scalars().first()

    def insert(self, user: User) -> User:
        """Persist a new user. The unique email index settles concurrent registrations."""
        user.email = normalize_email(user.email)
        try:
            with self._guard():
                self.session.add(user)
                self.session.commit()
        except IntegrityError as e:
            logger.info("Duplicate email rejected by store on insert")
            raise DuplicateEmailError() from e
        with self._guard():
            self.session.refresh(user)
        return user

    def update_fields(
        self, user_id: int, patch: dict[str, Any], with_secrets: bool = False
    ) -> User | None:
        """Apply patch with last-write-wins semantics; return the updated record or None."""
        if "email" in patch:
            patch = {**patch, "email": normalize_email(patch["email"])}
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        try:
            with self._guard():
                result = self.session.execute(stmt)
                self.session.commit()
        except IntegrityError as e:
            raise DuplicateEmailError("Email already in use") from e
        if result.rowcount == 0:
            return None
        return self.find_by_id(user_id, with_secrets=with_secrets)

    def swap_refresh_token(self, user_id: int, expected: str, new: str) -> bool:
        """
        Compare-and-swap the stored refresh token.

        Returns True only if the stored value still equalled expected, so of
        several concurrent rotations presenting the same token exactly one wins.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=new)
            .execution_options(synchronize_session=False)
        )
        with self._guard():
            result = self.session.execute(stmt)
            self.session.commit()
        return result.rowcount == 1

    def list_users(self, page: int, limit: int) -> list[User]:
        stmt = (
            self._select(with_secrets=False)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        with self._guard():
            return list(self.session.execute(stmt).scalars().all())

    def count_users(self) -> int:
        with self._guard():
            return self.session.execute(select(func.count(User.id))).scalar_one()

    def delete(self, user_id: int) -> bool:
        with self._guard():
            result = self.session.execute(
                delete(User)
                .where(User.id == user_id)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
        return result.rowcount == 1
