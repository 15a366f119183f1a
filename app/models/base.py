"""SQLAlchemy declarative Base and shared model configuration."""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Matches the index/constraint names used by the Alembic migrations (op.f(...)).
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
