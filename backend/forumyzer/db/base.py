"""
Database Base Classes and Common Utilities

This module provides the foundation for all database models in the application.

Key Concepts:
--------------
1. DeclarativeBase: SQLAlchemy's base class that enables ORM functionality
2. CommonTableAttributes: Shared columns/methods used across all models
3. orm_registry: Central registry that tracks all models and their metadata
4. JSONType: Portable JSON column (JSONB on PostgreSQL, JSON elsewhere)
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, MetaData, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry


# ================================
# Naming Convention for Constraints
# ================================
# Format examples:
# - ix_message_boards_video_id: Index on 'message_boards' table, 'video_id' column
# - uq_message_boards_share_token: Unique constraint
# - pk_message_boards: Primary key
convention = {
    "ix": "ix_%(column_0_label)s",  # Index
    "uq": "uq_%(table_name)s_%(column_0_name)s",  # Unique constraint
    "ck": "ck_%(table_name)s_%(constraint_name)s",  # Check constraint
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",  # Foreign key
    "pk": "pk_%(table_name)s",  # Primary key
}

metadata = MetaData(naming_convention=convention)

orm_registry = registry(metadata=metadata)


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    """Random UUID4 rendered as a string (used for ids and share tokens)."""
    return str(uuid.uuid4())


# JSONB gives indexable binary JSON on PostgreSQL; SQLite (tests, local runs)
# falls back to the generic JSON type.
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ================================
# Base DeclarativeBase Class
# ================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        class MessageBoard(BaseModel):
            __tablename__ = "message_boards"
    """

    registry = orm_registry
    metadata = metadata

    __tablename__: str


# ================================
# Common Table Attributes Mixin
# ================================
class CommonTableAttributes:
    """
    Mixin that provides common fields and methods to all models.

    Common Fields Added:
    --------------------
    - id: Primary key (random UUID string, generated once, never changes)
    - created_at: When the record was created (set once, never changes)
    - updated_at: When the record was last modified

    Ids are UUIDs rather than sequential integers because they are handed
    out to API consumers and must not be guessable or enumerable.

    Uses timezone-aware UTC timestamps to avoid timezone confusion.
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        comment="Random UUID primary key"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        comment="Timestamp when record was created (UTC)"
    )

    # onupdate covers ORM flushes; services that need an exact value
    # (e.g. page token updates) set it explicitly.
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when record was last updated (UTC)"
    )

    def __repr__(self) -> str:
        """
        String representation of the model for debugging.

        Example output:
            MessageBoard(id=5f0c...)
        """
        return f"{self.__class__.__name__}(id={self.id})"

    def dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Useful for debugging, logging and tests. API responses go through
        the Pydantic schemas instead.
        """
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }


# ================================
# Convenient Base Model
# ================================
class BaseModel(Base, CommonTableAttributes):
    """
    Ready-to-use base class for all application models.

    Combines:
    - Base: SQLAlchemy ORM functionality
    - CommonTableAttributes: id, created_at, updated_at fields
    """

    __abstract__ = True


# ================================
# String Length Constraints
# ================================
String36 = String(36)  # Example: UUIDs
String100 = String(100)  # Example: video ids, page tokens
String255 = String(255)  # Example: titles, channel names
String500 = String(500)  # Example: long titles
