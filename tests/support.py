"""Shared fixtures: test settings, in-memory SQLite store and an app client."""

from collections.abc import Generator
from unittest import mock

from fastapi import Response
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import get_db
from app.core.security import hash_password
from app.main import create_app
from app.models import Base, User

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"
API = "/api/v1"
PASSWORD = "correct-horse-battery"


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "APP_ENV": "test",
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": ACCESS_SECRET,
        "REFRESH_TOKEN_SECRET": REFRESH_SECRET,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker[Session]:
    """In-memory SQLite shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def fast_bcrypt(test_case) -> None:
    """Lower the bcrypt cost for the duration of a test."""
    patcher = mock.patch("app.core.security.BCRYPT_ROUNDS", 4)
    patcher.start()
    test_case.addCleanup(patcher.stop)


def seed_user(
    factory: sessionmaker[Session],
    email: str = "admin@example.com",
    role: str = "user",
    name: str = "Seeded User",
    password: str = PASSWORD,
    is_active: bool = True,
) -> int:
    db = factory()
    try:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            is_active=is_active,
            is_email_verified=False,
        )
        db.add(user)
        db.commit()
        return user.id
    finally:
        db.close()


def make_client(
    settings: Settings | None = None,
) -> tuple[TestClient, sessionmaker[Session]]:
    factory = make_session_factory()
    app = create_app(settings or make_settings())

    def override_get_db() -> Generator[Session, None, None]:
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app), factory


def set_cookie_headers(response) -> dict[str, str]:
    """Map cookie name -> raw Set-Cookie header for a Starlette or httpx response."""
    if isinstance(response, Response):
        values = response.headers.getlist("set-cookie")
    else:
        values = response.headers.get_list("set-cookie")
    headers = {}
    for raw in values:
        name = raw.split("=", 1)[0]
        headers[name] = raw
    return headers
