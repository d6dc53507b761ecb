"""Kernel services: the event log, the engine and its collaborators."""

from stock_kernel.services.balance_store import BalanceSnapshot, BalanceStore
from stock_kernel.services.event_log import EventLog
from stock_kernel.services.ledger_engine import LedgerEngine
from stock_kernel.services.product_locks import ProductLockRegistry
from stock_kernel.services.purchase_order_gateway import (
    OrderLine,
    PurchaseOrderGateway,
    PurchaseOrderStatus,
)
from stock_kernel.services.replay_service import (
    BalanceMismatch,
    ReplayService,
    ReplayStep,
    VerificationReport,
)
from stock_kernel.services.sequence_service import SequenceService

__all__ = [
    "BalanceMismatch",
    "BalanceSnapshot",
    "BalanceStore",
    "EventLog",
    "LedgerEngine",
    "OrderLine",
    "ProductLockRegistry",
    "PurchaseOrderGateway",
    "PurchaseOrderStatus",
    "ReplayService",
    "ReplayStep",
    "SequenceService",
    "VerificationReport",
]
