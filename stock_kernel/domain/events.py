"""
Stock events -- the immutable facts the ledger is built from.

Responsibility:
    Defines StockEventKind, the StockEventDraft a caller submits, and the
    StockEvent the log hands back once a draft has been appended.  Owns the
    one rule that turns an event into a balance delta: ``signed_quantity``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``StockEvent.from_model`` is a boundary converter called only from the
    service layer.

Invariants enforced:
    - Inbound/Outbound quantities are non-negative integers; Adjustment
      quantities are signed integers.  Violations raise
      InvalidStockEventError at construction.
    - StockEvent is frozen: corrections are new Adjustment events.

Data flow:
    StockEventDraft -> (LedgerEngine decides) -> EventLog.append -> StockEvent
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from stock_kernel.exceptions import InvalidStockEventError
from stock_kernel.utils.hashing import hash_payload

if TYPE_CHECKING:
    from stock_kernel.models.stock_event import StockEventRecord

MAX_PRODUCT_ID_LENGTH = 64
MAX_REFERENCE_LENGTH = 100
MAX_NOTES_LENGTH = 255
# Quantities and balances are stored in 32-bit INTEGER columns.
MAX_QUANTITY = 2**31 - 1


class StockEventKind(str, Enum):
    """What a stock event does to the balance."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"
    ADJUSTMENT = "adjustment"

    @classmethod
    def parse(cls, value: StockEventKind | str) -> StockEventKind:
        """
        Accept an enum member, its value or name, or the legacy
        IN / OUT / ADJUSTMENT transaction codes.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            legacy = {"IN": cls.INBOUND, "OUT": cls.OUTBOUND}
            if key in legacy:
                return legacy[key]
            if key in cls.__members__:
                return cls[key]
        raise InvalidStockEventError("kind", value, "unknown stock event kind")


def signed_quantity(kind: StockEventKind, quantity: int) -> int:
    """
    Balance delta contributed by one event.

    +quantity for Inbound, -quantity for Outbound, and the quantity's own
    sign for Adjustment.
    """
    if kind is StockEventKind.OUTBOUND:
        return -quantity
    return quantity


def _require_product_id(product_id: Any) -> str:
    if not isinstance(product_id, str) or not product_id.strip():
        raise InvalidStockEventError("product_id", product_id, "must be a non-empty string")
    product_id = product_id.strip()
    if len(product_id) > MAX_PRODUCT_ID_LENGTH:
        raise InvalidStockEventError(
            "product_id", product_id, f"longer than {MAX_PRODUCT_ID_LENGTH} characters"
        )
    return product_id


@dataclass(frozen=True)
class StockEventDraft:
    """
    A candidate stock event, not yet decided on or appended.

    ``occurred_at`` defaults to the engine's clock when omitted.
    ``reference_id`` links the event to an outside document (purchase
    order, sales order, count sheet); integers are accepted and stored as
    text.
    """

    product_id: str
    kind: StockEventKind
    quantity: int
    occurred_at: datetime | None = None
    reference_id: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "product_id", _require_product_id(self.product_id))
        object.__setattr__(self, "kind", StockEventKind.parse(self.kind))

        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise InvalidStockEventError("quantity", self.quantity, "must be an integer")
        if abs(self.quantity) > MAX_QUANTITY:
            raise InvalidStockEventError(
                "quantity", self.quantity, f"magnitude exceeds {MAX_QUANTITY}"
            )
        if self.kind is not StockEventKind.ADJUSTMENT and self.quantity < 0:
            raise InvalidStockEventError(
                "quantity",
                self.quantity,
                f"{self.kind.value} quantity must not be negative",
            )

        if self.occurred_at is not None and self.occurred_at.tzinfo is None:
            raise InvalidStockEventError(
                "occurred_at", self.occurred_at, "must be timezone-aware"
            )

        if self.reference_id is not None:
            reference = str(self.reference_id).strip()
            if not reference or len(reference) > MAX_REFERENCE_LENGTH:
                raise InvalidStockEventError(
                    "reference_id",
                    self.reference_id,
                    f"must be 1-{MAX_REFERENCE_LENGTH} characters",
                )
            object.__setattr__(self, "reference_id", reference)

        if self.notes is not None:
            if not isinstance(self.notes, str):
                raise InvalidStockEventError("notes", self.notes, "must be a string")
            if len(self.notes) > MAX_NOTES_LENGTH:
                raise InvalidStockEventError(
                    "notes", self.notes, f"longer than {MAX_NOTES_LENGTH} characters"
                )

    @property
    def signed_quantity(self) -> int:
        return signed_quantity(self.kind, self.quantity)


def event_payload(
    product_id: str,
    kind: StockEventKind,
    quantity: int,
    occurred_at: datetime,
    recorded_at: datetime,
    reference_id: str | None,
    notes: str | None,
) -> dict[str, Any]:
    """The business fields covered by an event's payload hash."""
    return {
        "product_id": product_id,
        "kind": kind.value,
        "quantity": quantity,
        "occurred_at": occurred_at,
        "recorded_at": recorded_at,
        "reference_id": reference_id,
        "notes": notes,
    }


@dataclass(frozen=True)
class StockEvent:
    """
    An appended, immutable stock event.

    ``event_id`` is also the event's log position: strictly increasing,
    gap-free, starting at 1.
    """

    event_id: int
    product_id: str
    kind: StockEventKind
    quantity: int
    occurred_at: datetime
    recorded_at: datetime
    reference_id: str | None
    notes: str | None
    payload_hash: str
    chain_hash: str

    @property
    def position(self) -> int:
        return self.event_id

    @property
    def signed_quantity(self) -> int:
        return signed_quantity(self.kind, self.quantity)

    def payload(self) -> dict[str, Any]:
        return event_payload(
            self.product_id,
            self.kind,
            self.quantity,
            self.occurred_at,
            self.recorded_at,
            self.reference_id,
            self.notes,
        )

    def computed_payload_hash(self) -> str:
        """Recompute the payload hash from the event's fields."""
        return hash_payload(self.payload())

    def to_dict(self) -> dict[str, Any]:
        """Serializable form carrying every stored field."""
        return {
            "event_id": self.event_id,
            "product_id": self.product_id,
            "kind": self.kind.value,
            "quantity": self.quantity,
            "occurred_at": self.occurred_at.isoformat(),
            "recorded_at": self.recorded_at.isoformat(),
            "reference_id": self.reference_id,
            "notes": self.notes,
            "payload_hash": self.payload_hash,
            "chain_hash": self.chain_hash,
        }

    @classmethod
    def from_model(cls, record: StockEventRecord) -> StockEvent:
        """Create a StockEvent from its ORM row."""
        return cls(
            event_id=record.event_id,
            product_id=record.product_id,
            kind=StockEventKind(record.kind),
            quantity=record.quantity,
            occurred_at=record.occurred_at,
            recorded_at=record.recorded_at,
            reference_id=record.reference_id,
            notes=record.notes,
            payload_hash=record.payload_hash,
            chain_hash=record.chain_hash,
        )
