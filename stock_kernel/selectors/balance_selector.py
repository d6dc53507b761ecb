"""
Module: stock_kernel.selectors.balance_selector
Responsibility: Read-only balance queries shared by the projections.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - ``stock_levels`` reads every balance in one statement, so a projection
      built from it sees a single committed state: each event row and its
      balance delta commit together.
"""

from sqlalchemy import select

from stock_kernel.models.balance import StockBalance
from stock_kernel.selectors.base import BaseSelector


class BalanceSelector(BaseSelector[StockBalance]):
    """Queries over ``stock_balances``."""

    def stock_levels(self) -> dict[str, int]:
        """Product id -> current stock for every product that has events."""
        rows = self.session.execute(
            select(StockBalance.product_id, StockBalance.current_stock)
        ).all()
        return {product_id: stock for product_id, stock in rows}

    def stock_level(self, product_id: str) -> int:
        """Current stock of one product; 0 if it has no events."""
        stock = self.session.execute(
            select(StockBalance.current_stock).where(
                StockBalance.product_id == product_id
            )
        ).scalar_one_or_none()
        return stock if stock is not None else 0
