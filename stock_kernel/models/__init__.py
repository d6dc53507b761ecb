"""ORM models for the stock ledger."""

from stock_kernel.models.balance import StockBalance
from stock_kernel.models.sequence import SequenceCounter
from stock_kernel.models.stock_event import StockEventRecord

__all__ = [
    "SequenceCounter",
    "StockBalance",
    "StockEventRecord",
]
