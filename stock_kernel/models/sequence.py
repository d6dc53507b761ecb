"""
Sequence counter table.

Each row is a named sequence with its current value.  Row-level locking in
SequenceService keeps allocation monotonic under concurrency.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base


class SequenceCounter(Base):
    """One named, monotonically increasing counter."""

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "stock_event")
    name: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
