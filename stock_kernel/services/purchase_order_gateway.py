"""
PurchaseOrderGateway -- boundary to the purchase-order system.

Responsibility:
    Turns received purchase-order lines into Inbound stock events whose
    ``reference_id`` is the order reference, and gives the purchasing side
    read access to balances and low-stock alerts.  The order lifecycle
    itself belongs to the purchasing system; the gateway only reacts to the
    transition into Received.

Architecture position:
    Kernel > Services -- outermost kernel service.  Delegates every write
    to LedgerEngine.submit.

Failure modes:
    - Rejected(UnknownProduct) per line for products the catalog lacks.
    - InvalidStockEventError for negative line quantities.
    - StorageUnavailable propagates; lines already committed stay committed.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from stock_kernel.domain.events import StockEventDraft, StockEventKind
from stock_kernel.domain.results import SubmitResult
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.selectors.alert_projection import AlertEntry, AlertProjection
from stock_kernel.services.ledger_engine import LedgerEngine

logger = get_logger("services.purchase_order_gateway")


class PurchaseOrderStatus(str, Enum):
    """Lifecycle states of a purchase order in the purchasing system."""

    PENDING = "Pending"
    SHIPPED = "Shipped"
    RECEIVED = "Received"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class OrderLine:
    """One product line of a purchase order."""

    product_id: str
    quantity: int


class PurchaseOrderGateway:
    """Receives purchase orders into stock."""

    def __init__(self, engine: LedgerEngine, alerts: AlertProjection):
        self._engine = engine
        self._alerts = alerts

    def receive_order_line(
        self,
        product_id: str,
        quantity: int,
        order_reference: str | int,
    ) -> SubmitResult:
        """Record the receipt of one order line as an Inbound event."""
        draft = StockEventDraft(
            product_id=product_id,
            kind=StockEventKind.INBOUND,
            quantity=quantity,
            reference_id=str(order_reference),
            notes=f"Received on purchase order {order_reference}",
        )
        return self._engine.submit(draft)

    def receive_order(
        self,
        order_reference: str | int,
        lines: Iterable[OrderLine],
    ) -> list[SubmitResult]:
        """
        Receive every line of an order.

        Each line is an independent submission; one rejected line does not
        stop the others.
        """
        with LogContext.bind(reference_id=str(order_reference)):
            results = [
                self.receive_order_line(line.product_id, line.quantity, order_reference)
                for line in lines
            ]
            rejected = [r for r in results if not r.is_committed]
            logger.info(
                "purchase_order_received",
                extra={
                    "lines": len(results),
                    "rejected_lines": len(rejected),
                },
            )
        return results

    def on_status_transition(
        self,
        order_reference: str | int,
        previous: PurchaseOrderStatus | str,
        current: PurchaseOrderStatus | str,
        lines: Sequence[OrderLine],
    ) -> list[SubmitResult]:
        """
        React to a purchase-order status change.

        Only a transition into Received emits receipt events; every other
        transition, including Received -> Received, returns an empty list.
        """
        previous = PurchaseOrderStatus(previous)
        current = PurchaseOrderStatus(current)

        if current is not PurchaseOrderStatus.RECEIVED or previous is PurchaseOrderStatus.RECEIVED:
            logger.debug(
                "purchase_order_transition_ignored",
                extra={
                    "reference_id": str(order_reference),
                    "previous": previous.value,
                    "current": current.value,
                },
            )
            return []

        return self.receive_order(order_reference, lines)

    def get_balance(self, product_id: str) -> int:
        return self._engine.get_balance(product_id)

    def current_alerts(self) -> list[AlertEntry]:
        return self._alerts.current_alerts()
