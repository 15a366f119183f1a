"""ORM model for customer and admin accounts."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func

from app.models.base import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(Base):
    """
    Account used for cookie-based JWT sessions and role checks.

    password_hash and refresh_token are never serialized; at most one
    refresh token is outstanding per user (a new one overwrites the old).
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_USER)
    is_active = Column(Boolean, nullable=False, default=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    avatar = Column(String(1024), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    refresh_token = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
