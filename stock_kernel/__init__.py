"""
Stock Kernel - append-only inventory ledger.

An event-sourced stock ledger with:
- Append-only, hash-chained stock event log
- Atomic per-product balance maintenance
- Non-negative stock invariant enforced at commit
- Derived low-stock alerts and inventory valuation
- Deterministic replay and verification
"""

__version__ = "0.1.0"

from stock_kernel.config import LedgerSettings, ZeroQuantityPolicy, get_settings, load_settings
from stock_kernel.domain import (
    Committed,
    InsufficientStock,
    Product,
    ProductCatalog,
    Rejected,
    StaticCatalog,
    StockEvent,
    StockEventKind,
    StockLimitExceeded,
    UnknownProduct,
    ZeroQuantity,
)
from stock_kernel.ledger import InventoryLedger

__all__ = [
    "Committed",
    "InsufficientStock",
    "InventoryLedger",
    "LedgerSettings",
    "Product",
    "ProductCatalog",
    "Rejected",
    "StaticCatalog",
    "StockEvent",
    "StockEventKind",
    "StockLimitExceeded",
    "UnknownProduct",
    "ZeroQuantity",
    "ZeroQuantityPolicy",
    "get_settings",
    "load_settings",
]
