"""
Module: stock_kernel.models.stock_event
Responsibility: ORM persistence for appended stock events -- the single source
    of truth every balance is replayed from.
Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only.

Invariants enforced:
    IMMUTABILITY -- ORM before_update / before_delete listeners here, plus the
        database triggers in db/triggers.py.
    POSITION_MONOTONICITY -- event_id is the primary key and is assigned by
        SequenceService, never by the database or by max()+1.

Failure modes:
    - ImmutabilityViolationError on any ORM UPDATE or DELETE of a row.
    - IntegrityError on a duplicate event_id.
"""

from datetime import datetime

from sqlalchemy import BigInteger, Index, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base
from stock_kernel.exceptions import ImmutabilityViolationError


class StockEventRecord(Base):
    """
    One row per appended stock event.

    Contract:
        Once INSERTed, a row is never updated or deleted.  Corrections are
        new Adjustment rows.

    Guarantees:
        - event_id is the log position: unique, strictly increasing, gap-free.
        - payload_hash is SHA-256 of the canonical business fields.
        - chain_hash links this row to its predecessor.
    """

    __tablename__ = "stock_events"

    __table_args__ = (
        Index("idx_stock_event_product_position", "product_id", "event_id"),
        Index("idx_stock_event_reference", "reference_id"),
    )

    event_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )

    product_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    # inbound / outbound / adjustment
    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    # Unsigned for inbound/outbound, signed for adjustment
    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # When the movement happened in the warehouse
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    # When the ledger appended it
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    reference_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    payload_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    chain_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<StockEventRecord {self.event_id} {self.kind} {self.product_id} {self.quantity}>"


# =============================================================================
# ORM-Level Immutability Protection
# =============================================================================


@event.listens_for(StockEventRecord, "before_update")
def prevent_stock_event_update(mapper, connection, target):
    """Raise on any UPDATE flush of a stock event."""
    raise ImmutabilityViolationError(
        "StockEvent", str(target.event_id), "stock events are append-only"
    )


@event.listens_for(StockEventRecord, "before_delete")
def prevent_stock_event_delete(mapper, connection, target):
    """Raise on any DELETE flush of a stock event."""
    raise ImmutabilityViolationError(
        "StockEvent", str(target.event_id), "stock events cannot be deleted"
    )
