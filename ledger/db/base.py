"""
SQLAlchemy Base Configuration and Mixins.

This module provides:
- Async engine and session factory configuration
- Base declarative class for all models
- Reusable mixins (UUID7 primary key, timestamps)
- Portable column types (JSONB on PostgreSQL, JSON elsewhere)

All models in this project should inherit from `Base` and use the provided
mixins for consistency.
"""

import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, MetaData, Uuid, func, inspect
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncAttrs, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from uuid6 import uuid7

from ledger.core.config import settings

# =============================================================================
# DATABASE ENGINE CONFIGURATION
# =============================================================================

# Naming convention for database constraints
# This ensures consistent, predictable names for indexes, foreign keys, etc.
# Critical for Alembic migrations to work correctly across environments
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",                    # Index
    "uq": "uq_%(table_name)s_%(column_0_name)s",      # Unique constraint
    "ck": "ck_%(table_name)s_%(constraint_name)s",    # Check constraint
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # Foreign key
    "pk": "pk_%(table_name)s",                        # Primary key
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

# JSONB on PostgreSQL, plain JSON on other dialects (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Async database engine
# - pool_pre_ping: Validates connections before use (handles stale connections)
# - echo: Logs SQL statements when in development mode
engine = create_async_engine(
    settings.db_url,
    echo=settings.is_development and settings.log_level == "DEBUG",
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

# Async session factory
# - expire_on_commit=False: Objects remain accessible after commit
#   (each pipeline write commits on its own)
# - autoflush=False: explicit control over when writes happen
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


def to_uuid(value: uuid.UUID | str | None) -> uuid.UUID | None:
    """Coerce a UUID or its string form; malformed input yields None."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


# =============================================================================
# BASE CLASS
# =============================================================================

class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Features:
    - DeclarativeBase: Modern SQLAlchemy 2.0 declarative base
    - Custom metadata with naming conventions
    - Automatic __tablename__ generation from class name

    Example:
        class Card(Base):
            # __tablename__ automatically set to "cards"
            title: Mapped[str] = mapped_column(Text)
    """

    metadata = metadata

    __name__: str

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """
        Automatically generate table name from class name.

        Converts CamelCase to snake_case and pluralizes:
        - Entity -> entities
        - IntakeItem -> intake_items
        - Relationship -> relationships
        """
        name = cls.__name__
        snake_case = "".join(
            f"_{char.lower()}" if char.isupper() and i > 0 else char.lower()
            for i, char in enumerate(name)
        )
        if snake_case.endswith("y"):
            return snake_case[:-1] + "ies"      # Entity -> entities
        elif snake_case.endswith("s"):
            return snake_case + "es"
        else:
            return snake_case + "s"             # Card -> cards

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Used for audit snapshots and debugging. Handles:
        - UUID -> string
        - date/datetime -> ISO format string
        - Enum -> value
        """
        result = {}
        for attr in inspect(self).mapper.column_attrs:
            value = getattr(self, attr.key)
            if isinstance(value, uuid.UUID):
                value = str(value)
            elif isinstance(value, date):
                value = value.isoformat()
            elif hasattr(value, "value"):   # Enum
                value = value.value
            result[attr.key] = value
        return result


# =============================================================================
# MIXINS
# =============================================================================

class UUIDMixin:
    """
    Mixin that provides a UUID7 primary key.

    UUID7 values are time-sortable, so ordering by id approximates
    ordering by creation time.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid7,
        sort_order=-100,
    )


class TimestampMixin:
    """
    Mixin that provides created_at and updated_at timestamps.

    Values are set client-side on flush so they are loaded on the instance
    without a refresh round-trip (async sessions cannot lazy-load them).
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        sort_order=100,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
        sort_order=101,
    )


class CreatedAtMixin:
    """
    Mixin that provides only created_at timestamp.

    Use this for append-only records such as audit log entries.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        sort_order=100,
    )


# =============================================================================
# DATABASE LIFECYCLE UTILITIES
# =============================================================================

async def init_db() -> None:
    """
    Initialize the database by creating all tables.

    Note: In production, use Alembic migrations instead.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db() -> None:
    """
    Drop all tables in the database.

    Warning: This is destructive! Only use in testing.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """Dispose of the engine and close all connections."""
    await engine.dispose()
