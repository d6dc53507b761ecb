"""
Module: stock_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models and the
    portable column types they share.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Timezone-aware timestamps: UTCDateTime normalizes every datetime to UTC
      on the way in and re-attaches UTC on the way out, so SQLite (which
      drops tzinfo) and PostgreSQL return identical values.  Replay hashes
      depend on this.
    - Large integers: int maps to BigInteger so positions never overflow.
"""

from datetime import UTC, datetime
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as UTC.

    Contract:
        Naive datetimes are rejected on bind; aware datetimes are converted
        to UTC.  Loaded values always carry ``tzinfo=UTC``.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Convert to UTC when storing."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime not allowed: {value!r}")
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        """Re-attach UTC when loading."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """
    Declarative base for all stock kernel models.

    Guarantees:
        - datetime maps to UTCDateTime -- always timezone-aware.
        - int maps to BigInteger -- safe for monotonic positions.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        int: BigInteger,
    }
