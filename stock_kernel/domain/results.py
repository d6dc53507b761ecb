"""
Submission results -- typed business outcomes of LedgerEngine.submit().

A submission either commits or is rejected.  Rejections are expected
business outcomes (block the sale, raise a backorder, fix the catalog) and
are returned, never raised.  Each reason carries a machine-readable ``code``
in the same style as the kernel's exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from stock_kernel.domain.events import StockEvent


class SubmitStatus(str, Enum):
    """Status of a stock submission."""

    COMMITTED = "committed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class InsufficientStock:
    """The event would drive the product's stock below zero."""

    code: ClassVar[str] = "INSUFFICIENT_STOCK"

    product_id: str
    requested: int
    available: int

    @property
    def message(self) -> str:
        return (
            f"Insufficient stock for {self.product_id}: "
            f"requested {self.requested}, available {self.available}"
        )


@dataclass(frozen=True)
class UnknownProduct:
    """The catalog has no product with this id."""

    code: ClassVar[str] = "UNKNOWN_PRODUCT"

    product_id: str

    @property
    def message(self) -> str:
        return f"Unknown product: {self.product_id}"


@dataclass(frozen=True)
class ZeroQuantity:
    """A zero-quantity event was submitted while the ledger rejects them."""

    code: ClassVar[str] = "ZERO_QUANTITY"

    product_id: str

    @property
    def message(self) -> str:
        return f"Zero-quantity events are not accepted for {self.product_id}"


@dataclass(frozen=True)
class StockLimitExceeded:
    """The event would push the product's stock past the storable maximum."""

    code: ClassVar[str] = "STOCK_LIMIT_EXCEEDED"

    product_id: str
    requested: int
    available: int
    limit: int

    @property
    def message(self) -> str:
        return (
            f"Stock limit exceeded for {self.product_id}: "
            f"adding {self.requested} to {self.available} passes {self.limit}"
        )


RejectionReason = InsufficientStock | UnknownProduct | ZeroQuantity | StockLimitExceeded


@dataclass(frozen=True)
class Committed:
    """The event was appended and the balance updated."""

    event_id: int
    product_id: str
    new_balance: int
    event: StockEvent

    status: ClassVar[SubmitStatus] = SubmitStatus.COMMITTED

    @property
    def is_committed(self) -> bool:
        return True

    @property
    def previous_balance(self) -> int:
        return self.new_balance - self.event.signed_quantity


@dataclass(frozen=True)
class Rejected:
    """Nothing was appended and no balance changed."""

    reason: RejectionReason

    status: ClassVar[SubmitStatus] = SubmitStatus.REJECTED

    @property
    def is_committed(self) -> bool:
        return False

    @property
    def code(self) -> str:
        return self.reason.code

    @property
    def message(self) -> str:
        return self.reason.message


SubmitResult = Committed | Rejected
