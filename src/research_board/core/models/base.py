"""SQLAlchemy declarative base and shared mixins for all ORM models.

Provides:
- Base: the DeclarativeBase subclass all models inherit from
- StringList: portable list-of-strings column type (JSONB on PostgreSQL)
- UUIDPrimaryKeyMixin: application-generated UUID primary key
- CreatedAtMixin: created_at column with both ORM-side and server-side defaults

Column types are chosen so the same metadata creates an equivalent schema
on PostgreSQL (production) and SQLite (tests).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

StringList = sa.JSON().with_variant(JSONB(), "postgresql")
"""Ordered list of strings.  Stored as JSONB on PostgreSQL, JSON text elsewhere."""


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


class Base(DeclarativeBase):
    """Shared declarative base for all research board models."""

    type_annotation_map = {
        uuid.UUID: sa.Uuid(as_uuid=True),
    }


class UUIDPrimaryKeyMixin:
    """Adds an ``id`` UUID primary key generated in Python.

    Generating the key client-side keeps inserts portable (no
    ``gen_random_uuid()`` on SQLite) and lets services return the new id
    before the flush.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )


class CreatedAtMixin:
    """Adds a created_at column.

    The ORM default fills the value on INSERT so it is available without a
    refresh; the server default covers rows written outside the ORM.
    """

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=sa.func.now(),
    )
