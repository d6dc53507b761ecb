"""
InventoryLedger -- the public face of the stock kernel.

Responsibility:
    Wires the EventLog, LedgerEngine, projections, ReplayService and
    PurchaseOrderGateway over one session factory and one catalog, and
    exposes the operations callers use.

Usage:
    settings = get_settings("stock_kernel.yaml")
    ledger = InventoryLedger.from_settings(settings, catalog)

    result = ledger.submit("SKU-1", StockEventKind.OUTBOUND, 3)
    if not result.is_committed:
        handle(result.reason)
"""

import threading
from collections.abc import Callable, Iterator
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.config import LedgerSettings, ZeroQuantityPolicy
from stock_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from stock_kernel.domain.catalog import ProductCatalog
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.events import StockEvent, StockEventDraft, StockEventKind
from stock_kernel.domain.results import SubmitResult
from stock_kernel.logging_config import configure_logging, get_logger
from stock_kernel.selectors.alert_projection import (
    AlertEntry,
    AlertProjection,
    LowStockNotifier,
    ReorderStatus,
)
from stock_kernel.selectors.valuation_projection import ValuationProjection, ValuationSnapshot
from stock_kernel.services.event_log import (
    DEFAULT_FOLLOW_POLL_INTERVAL,
    DEFAULT_READ_BATCH_SIZE,
    EventLog,
)
from stock_kernel.services.ledger_engine import LedgerEngine
from stock_kernel.services.product_locks import ProductLockRegistry
from stock_kernel.services.purchase_order_gateway import PurchaseOrderGateway
from stock_kernel.services.replay_service import ReplayService, ReplayStep, VerificationReport

logger = get_logger("ledger")


class InventoryLedger:
    """Single authoritative stock ledger."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        catalog: ProductCatalog,
        *,
        clock: Clock | None = None,
        currency: str = "USD",
        zero_quantity_policy: ZeroQuantityPolicy = ZeroQuantityPolicy.ACCEPT,
        lock_timeout: float | None = None,
        read_batch_size: int = DEFAULT_READ_BATCH_SIZE,
        follow_poll_interval: float = DEFAULT_FOLLOW_POLL_INTERVAL,
        low_stock_handler: Callable[[AlertEntry], None] | None = None,
    ):
        self.clock = clock or SystemClock()
        self.catalog = catalog
        self.event_log = EventLog(
            session_factory,
            clock=self.clock,
            read_batch_size=read_batch_size,
            follow_poll_interval=follow_poll_interval,
        )
        self.engine = LedgerEngine(
            self.event_log,
            catalog,
            locks=ProductLockRegistry(timeout=lock_timeout),
            zero_quantity_policy=zero_quantity_policy,
        )
        self.alerts = AlertProjection(session_factory, catalog)
        self.valuation = ValuationProjection(session_factory, catalog, currency)
        self.replayer = ReplayService(self.event_log)
        self.purchase_orders = PurchaseOrderGateway(self.engine, self.alerts)

        self.engine.add_listener(LowStockNotifier(low_stock_handler))

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings,
        catalog: ProductCatalog,
        *,
        clock: Clock | None = None,
        create_schema: bool = True,
        low_stock_handler: Callable[[AlertEntry], None] | None = None,
    ) -> "InventoryLedger":
        """
        Initialize the database engine from ``settings`` and build a ledger.

        With ``create_schema`` the tables and immutability triggers are
        created if they do not exist yet.
        """
        configure_logging(level=settings.log_level)
        init_engine_from_url(
            settings.database_url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
        )
        if create_schema:
            create_tables()

        logger.info(
            "ledger_started",
            extra={
                "currency": settings.currency,
                "zero_quantity_policy": settings.zero_quantity_policy.value,
                "lock_timeout": settings.lock_timeout,
            },
        )
        return cls(
            get_session_factory(),
            catalog,
            clock=clock,
            currency=settings.currency,
            zero_quantity_policy=settings.zero_quantity_policy,
            lock_timeout=settings.lock_timeout,
            read_batch_size=settings.read_batch_size,
            follow_poll_interval=settings.follow_poll_interval,
            low_stock_handler=low_stock_handler,
        )

    # Writes

    def submit(
        self,
        product_id: str,
        kind: StockEventKind | str,
        quantity: int,
        occurred_at: datetime | None = None,
        reference_id: str | int | None = None,
        notes: str | None = None,
    ) -> SubmitResult:
        """
        Submit one stock event.

        Raises:
            InvalidStockEventError: If the arguments do not form a valid event.
            StorageUnavailable: If the log cannot be written.
        """
        draft = StockEventDraft(
            product_id=product_id,
            kind=kind,
            quantity=quantity,
            occurred_at=occurred_at,
            reference_id=reference_id,
            notes=notes,
        )
        return self.engine.submit(draft)

    def receive_order_line(
        self,
        product_id: str,
        quantity: int,
        order_reference: str | int,
    ) -> SubmitResult:
        return self.purchase_orders.receive_order_line(product_id, quantity, order_reference)

    # Reads

    def get_balance(self, product_id: str) -> int:
        return self.engine.get_balance(product_id)

    def current_alerts(self) -> list[AlertEntry]:
        return self.alerts.current_alerts()

    def reorder_status(self, product_id: str) -> ReorderStatus | None:
        return self.alerts.reorder_status(product_id)

    def current_valuation(self) -> ValuationSnapshot:
        return self.valuation.current_valuation()

    def read_events(
        self,
        position: int = 0,
        *,
        upto: int | None = None,
        follow: bool = False,
        stop: threading.Event | None = None,
    ) -> Iterator[StockEvent]:
        return self.event_log.read_since(position, upto=upto, follow=follow, stop=stop)

    def history(
        self,
        product_id: str,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[StockEvent]:
        return self.event_log.history(product_id, newest_first=newest_first, limit=limit)

    # Audit and recovery

    def replay(self, from_position: int = 0) -> Iterator[ReplayStep]:
        return self.replayer.replay(from_position)

    def verify(self) -> VerificationReport:
        return self.replayer.verify()

    def rebuild_balances(self) -> dict[str, int]:
        return self.replayer.rebuild_balances()
