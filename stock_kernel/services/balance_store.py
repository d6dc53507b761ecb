"""
BalanceStore -- materialized current stock per product.

Responsibility:
    Reads and writes ``stock_balances`` rows.  Writes happen only inside the
    log-append transaction, driven by LedgerEngine (one event at a time) or
    by ReplayService.rebuild_balances (wholesale, from the log).

Architecture position:
    Kernel > Services.  The only module that mutates StockBalance rows.

Invariants enforced:
    NON_NEGATIVE_STOCK -- ``apply`` refuses to store a negative value; the
        CHECK constraint on the table backs this up.
    BALANCE_MATCHES_LOG -- ``apply`` is always flushed in the same
        transaction as the event it reflects.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import delete, select

from stock_kernel.logging_config import get_logger
from stock_kernel.models.balance import StockBalance
from stock_kernel.services.base import BaseService

logger = get_logger("services.balance_store")


@dataclass(frozen=True)
class BalanceSnapshot:
    """Read-only copy of one balance row."""

    product_id: str
    current_stock: int
    last_event_id: int
    event_count: int

    @classmethod
    def from_model(cls, row: StockBalance) -> "BalanceSnapshot":
        return cls(
            product_id=row.product_id,
            current_stock=row.current_stock,
            last_event_id=row.last_event_id,
            event_count=row.event_count,
        )


class BalanceStore(BaseService):
    """Product id -> current stock, backed by ``stock_balances``."""

    def get(self, product_id: str) -> int:
        """Current stock; 0 for a product that has never had an event."""
        stock = self.session.execute(
            select(StockBalance.current_stock).where(
                StockBalance.product_id == product_id
            )
        ).scalar_one_or_none()
        return stock if stock is not None else 0

    def get_snapshot(self, product_id: str) -> BalanceSnapshot | None:
        row = self.session.get(StockBalance, product_id)
        return BalanceSnapshot.from_model(row) if row is not None else None

    def all(self) -> dict[str, int]:
        """Every stored balance, read in a single query."""
        rows = self.session.execute(
            select(StockBalance.product_id, StockBalance.current_stock)
        ).all()
        return {product_id: stock for product_id, stock in rows}

    def snapshots(self) -> list[BalanceSnapshot]:
        rows = self.session.execute(
            select(StockBalance).order_by(StockBalance.product_id)
        ).scalars()
        return [BalanceSnapshot.from_model(row) for row in rows]

    def apply(self, product_id: str, delta: int, event_id: int) -> int:
        """
        Fold one appended event into the product's balance.

        Returns:
            The new current stock.

        Raises:
            ValueError: If the result would be negative.  LedgerEngine
                decides before appending, so this indicates a bug.
        """
        row = self.session.get(StockBalance, product_id, populate_existing=True)
        if row is None:
            row = StockBalance(
                product_id=product_id,
                current_stock=0,
                last_event_id=0,
                event_count=0,
            )
            self.session.add(row)

        new_stock = row.current_stock + delta
        if new_stock < 0:
            raise ValueError(
                f"Balance for {product_id} would become {new_stock} at event {event_id}"
            )

        row.current_stock = new_stock
        row.last_event_id = event_id
        row.event_count += 1
        self.session.flush()
        return new_stock

    def replace_all(self, snapshots: Iterable[BalanceSnapshot]) -> int:
        """
        Replace every stored balance with ``snapshots``.

        Returns:
            Number of rows written.
        """
        self.session.execute(delete(StockBalance))
        written = 0
        for snapshot in snapshots:
            self.session.add(
                StockBalance(
                    product_id=snapshot.product_id,
                    current_stock=snapshot.current_stock,
                    last_event_id=snapshot.last_event_id,
                    event_count=snapshot.event_count,
                )
            )
            written += 1
        self.session.flush()
        logger.info("balances_replaced", extra={"rows": written})
        return written
