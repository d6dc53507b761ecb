"""
LedgerEngine -- the single writer of stock balances.

Responsibility:
    Decides each submitted StockEventDraft against the product's current
    stock and, when it is acceptable, appends it to the EventLog and folds
    it into the BalanceStore in one storage transaction.

Architecture position:
    Kernel > Services -- imperative shell around a pure decision:
    ``projected = current_stock + signed_quantity``.

Invariants enforced:
    NON_NEGATIVE_STOCK -- a negative delta that would take stock below
        zero is rejected before anything is appended.
    REJECTION_LEAVES_NO_TRACE -- every rejection returns before the
        log-append transaction opens.
    BALANCE_MATCHES_LOG -- the event row and the balance row commit
        together.

    The read-decide-write sequence runs under the product's lock, so two
    submissions for the same product never decide against the same
    balance.

Failure modes:
    - Rejected(UnknownProduct | ZeroQuantity | InsufficientStock |
      StockLimitExceeded) is returned, never raised.
    - InvalidStockEventError from StockEventDraft construction.
    - LockTimeoutError when a lock timeout is configured and exceeded.
    - StorageUnavailable propagates unchanged; nothing partial remains.

Audit relevance:
    Logs ``stock_committed`` and ``stock_rejected`` for every decision.
"""

import time
from collections.abc import Callable

from stock_kernel.config import ZeroQuantityPolicy
from stock_kernel.db.engine import session_scope, translate_storage_errors
from stock_kernel.domain.catalog import Product, ProductCatalog
from stock_kernel.domain.events import MAX_QUANTITY, StockEventDraft
from stock_kernel.domain.results import (
    Committed,
    InsufficientStock,
    Rejected,
    RejectionReason,
    StockLimitExceeded,
    SubmitResult,
    UnknownProduct,
    ZeroQuantity,
)
from stock_kernel.invariants import KernelInvariant
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.balance_store import BalanceStore
from stock_kernel.services.event_log import EventLog
from stock_kernel.services.product_locks import ProductLockRegistry

logger = get_logger("services.ledger_engine")

CommitListener = Callable[[Committed, Product], None]


class LedgerEngine:
    """
    Applies one stock event at a time under the non-negative invariant.

    Contract:
        ``submit(draft)`` returns Committed or Rejected.  Committed results
        are passed to every registered commit listener after the
        transaction is durable and the product lock is released.
    """

    def __init__(
        self,
        event_log: EventLog,
        catalog: ProductCatalog,
        locks: ProductLockRegistry | None = None,
        zero_quantity_policy: ZeroQuantityPolicy = ZeroQuantityPolicy.ACCEPT,
    ):
        self._event_log = event_log
        self._catalog = catalog
        self._locks = locks or ProductLockRegistry()
        self._zero_quantity_policy = ZeroQuantityPolicy(zero_quantity_policy)
        self._listeners: list[CommitListener] = []

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    @property
    def catalog(self) -> ProductCatalog:
        return self._catalog

    @property
    def zero_quantity_policy(self) -> ZeroQuantityPolicy:
        return self._zero_quantity_policy

    def add_listener(self, listener: CommitListener) -> None:
        """Register a callable invoked with (Committed, Product) after each commit."""
        self._listeners.append(listener)

    def remove_listener(self, listener: CommitListener) -> None:
        self._listeners.remove(listener)

    def get_balance(self, product_id: str) -> int:
        """Current stock; 0 for a product with no events."""
        with translate_storage_errors("read"):
            with session_scope(self._event_log.session_factory) as session:
                return BalanceStore(session).get(product_id)

    def submit(self, draft: StockEventDraft) -> SubmitResult:
        """
        Decide and, if accepted, commit one stock event.

        Preconditions:
            - ``draft`` is a validated StockEventDraft.

        Postconditions:
            - Committed: the event is in the log and the balance equals
              the previous balance plus its signed quantity.
            - Rejected: the log and every balance are unchanged.
        """
        with LogContext.bind(product_id=draft.product_id, reference_id=draft.reference_id):
            product = self._catalog.lookup(draft.product_id)
            if product is None:
                return self._reject(draft, UnknownProduct(draft.product_id))

            if draft.quantity == 0 and self._zero_quantity_policy is ZeroQuantityPolicy.REJECT:
                return self._reject(draft, ZeroQuantity(draft.product_id))

            delta = draft.signed_quantity
            t0 = time.monotonic()

            with self._locks.hold(draft.product_id):
                available = self.get_balance(draft.product_id)
                projected = available + delta

                if delta < 0 and projected < 0:
                    return self._reject(
                        draft,
                        InsufficientStock(
                            product_id=draft.product_id,
                            requested=-delta,
                            available=available,
                        ),
                    )
                if projected > MAX_QUANTITY:
                    return self._reject(
                        draft,
                        StockLimitExceeded(
                            product_id=draft.product_id,
                            requested=delta,
                            available=available,
                            limit=MAX_QUANTITY,
                        ),
                    )

                with self._event_log.transaction() as session:
                    event = self._event_log.append(session, draft)
                    new_balance = BalanceStore(session).apply(
                        draft.product_id, delta, event.event_id
                    )

            assert new_balance == projected, (
                f"{KernelInvariant.BALANCE_MATCHES_LOG.value}: "
                f"stored {new_balance}, decided {projected}"
            )

            result = Committed(
                event_id=event.event_id,
                product_id=draft.product_id,
                new_balance=new_balance,
                event=event,
            )
            logger.info(
                "stock_committed",
                extra={
                    "event_id": event.event_id,
                    "kind": event.kind.value,
                    "quantity": event.quantity,
                    "previous_balance": available,
                    "new_balance": new_balance,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )

        self._notify(result, product)
        return result

    def _reject(self, draft: StockEventDraft, reason: RejectionReason) -> Rejected:
        logger.info(
            "stock_rejected",
            extra={
                "code": reason.code,
                "kind": draft.kind.value,
                "quantity": draft.quantity,
                "reason": reason.message,
            },
        )
        return Rejected(reason)

    def _notify(self, result: Committed, product: Product) -> None:
        for listener in list(self._listeners):
            try:
                listener(result, product)
            except Exception:
                # Commit is already durable.
                logger.error(
                    "commit_listener_failed",
                    extra={
                        "event_id": result.event_id,
                        "listener": getattr(listener, "__qualname__", repr(listener)),
                    },
                    exc_info=True,
                )
