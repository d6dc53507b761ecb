"""
Module: stock_kernel.selectors.alert_projection
Responsibility: The low-stock alert set -- every catalog product whose
    current stock is at or below its reorder point.
Architecture position: Kernel > Selectors.  Pull-on-read: each call reads
    the balances afresh, so an alert is never missed or stale.

Invariants enforced:
    - A product is alerted iff current_stock <= reorder_point.  A product
      with no events has stock 0 and is alerted for every reorder point.
    - Entries are ordered by current_stock ascending, then product_id.

Also provides LowStockNotifier, a LedgerEngine commit listener that logs
the moment a commit takes a product across its reorder point.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope, translate_storage_errors
from stock_kernel.domain.catalog import Product, ProductCatalog
from stock_kernel.domain.results import Committed
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.balance_selector import BalanceSelector

logger = get_logger("selectors.alerts")


class ReorderStatus(str, Enum):
    """Per-product reorder highlight."""

    REORDER_NEEDED = "Reorder Needed"
    SUFFICIENT_STOCK = "Sufficient Stock"


@dataclass(frozen=True)
class AlertEntry:
    """A product at or below its reorder point."""

    product_id: str
    current_stock: int
    reorder_point: int
    name: str | None = None
    sku: str | None = None
    supplier_name: str | None = None

    @property
    def shortfall(self) -> int:
        """Units needed to get back to the reorder point."""
        return self.reorder_point - self.current_stock

    @classmethod
    def for_product(cls, product: Product, current_stock: int) -> "AlertEntry":
        return cls(
            product_id=product.product_id,
            current_stock=current_stock,
            reorder_point=product.reorder_point,
            name=product.name,
            sku=product.sku,
            supplier_name=product.supplier_name,
        )


def is_low_stock(current_stock: int, reorder_point: int) -> bool:
    return current_stock <= reorder_point


class AlertProjection:
    """Derived low-stock view over balances and catalog reorder points."""

    def __init__(self, session_factory: sessionmaker[Session], catalog: ProductCatalog):
        self._session_factory = session_factory
        self._catalog = catalog

    def current_alerts(self) -> list[AlertEntry]:
        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                levels = BalanceSelector(session).stock_levels()

        entries = [
            AlertEntry.for_product(product, levels.get(product.product_id, 0))
            for product in self._catalog.products()
            if is_low_stock(levels.get(product.product_id, 0), product.reorder_point)
        ]
        entries.sort(key=lambda e: (e.current_stock, e.product_id))
        return entries

    def reorder_status(self, product_id: str) -> ReorderStatus | None:
        """Reorder highlight for one product, or None if the catalog lacks it."""
        product = self._catalog.lookup(product_id)
        if product is None:
            return None

        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                stock = BalanceSelector(session).stock_level(product_id)

        if is_low_stock(stock, product.reorder_point):
            return ReorderStatus.REORDER_NEEDED
        return ReorderStatus.SUFFICIENT_STOCK


class LowStockNotifier:
    """
    Commit listener for push-style low-stock alerts.

    Fires when a commit moves a product from above its reorder point to at
    or below it.  Each crossing is logged as ``low_stock_detected`` and
    passed to ``handler`` when one is given.
    """

    def __init__(self, handler: Callable[[AlertEntry], None] | None = None):
        self._handler = handler

    def __call__(self, result: Committed, product: Product) -> None:
        was_low = is_low_stock(result.previous_balance, product.reorder_point)
        now_low = is_low_stock(result.new_balance, product.reorder_point)
        if was_low or not now_low:
            return

        entry = AlertEntry.for_product(product, result.new_balance)
        logger.warning(
            "low_stock_detected",
            extra={
                "product_id": product.product_id,
                "event_id": result.event_id,
                "current_stock": entry.current_stock,
                "reorder_point": entry.reorder_point,
            },
        )
        if self._handler is not None:
            self._handler(entry)
