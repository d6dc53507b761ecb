"""Pure domain layer: stock events, catalog boundary, results and values."""

from stock_kernel.domain.catalog import Product, ProductCatalog, StaticCatalog
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.events import (
    StockEvent,
    StockEventDraft,
    StockEventKind,
    signed_quantity,
)
from stock_kernel.domain.results import (
    Committed,
    InsufficientStock,
    Rejected,
    RejectionReason,
    StockLimitExceeded,
    SubmitResult,
    SubmitStatus,
    UnknownProduct,
    ZeroQuantity,
)
from stock_kernel.domain.values import Currency, Money

__all__ = [
    "Clock",
    "Committed",
    "Currency",
    "DeterministicClock",
    "InsufficientStock",
    "Money",
    "Product",
    "ProductCatalog",
    "Rejected",
    "RejectionReason",
    "StaticCatalog",
    "StockEvent",
    "StockEventDraft",
    "StockEventKind",
    "StockLimitExceeded",
    "SubmitResult",
    "SubmitStatus",
    "SystemClock",
    "UnknownProduct",
    "ZeroQuantity",
    "signed_quantity",
]
