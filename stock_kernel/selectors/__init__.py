"""Read-only selectors and projections."""

from stock_kernel.selectors.alert_projection import (
    AlertEntry,
    AlertProjection,
    LowStockNotifier,
    ReorderStatus,
)
from stock_kernel.selectors.balance_selector import BalanceSelector
from stock_kernel.selectors.base import BaseSelector
from stock_kernel.selectors.valuation_projection import (
    ValuationLine,
    ValuationProjection,
    ValuationSnapshot,
)

__all__ = [
    "AlertEntry",
    "AlertProjection",
    "BalanceSelector",
    "BaseSelector",
    "LowStockNotifier",
    "ReorderStatus",
    "ValuationLine",
    "ValuationProjection",
    "ValuationSnapshot",
]
