"""
Module: stock_kernel.models.balance
Responsibility: Materialized current stock per product, maintained in the same
    transaction as the event append it reflects.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    NON_NEGATIVE_STOCK -- CHECK constraint current_stock >= 0 backs the
        engine's decision rule at the storage layer.
    BALANCE_MATCHES_LOG -- last_event_id records the newest event folded in;
        ReplayService.rebuild_balances() recreates every row from the log.

Failure modes:
    - IntegrityError if a write would store negative stock.  The engine
      rejects such events first, so this only fires on a bug.
"""

from sqlalchemy import BigInteger, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base


class StockBalance(Base):
    """
    Current stock for one product.

    A product with no row has never had an event and its stock is 0.
    """

    __tablename__ = "stock_balances"

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="chk_stock_balance_non_negative"),
    )

    product_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    current_stock: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Position of the newest event folded into current_stock
    last_event_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    event_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<StockBalance {self.product_id}={self.current_stock} @{self.last_event_id}>"
