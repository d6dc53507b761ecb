"""
ReplayService -- rebuilds and audits balances from the event log.

Responsibility:
    Folds the event log from position 0 into per-product balances while
    checking every structural guarantee the commit path provides.  Serves
    deterministic replay, verification of the stored balances, and crash
    recovery of ``stock_balances``.

Architecture position:
    Kernel > Services.  Reads through EventLog; writes only through
    EventLog.transaction() and BalanceStore.replace_all().

Invariants checked:
    POSITION_MONOTONICITY -- positions are 1, 2, 3, ... with no gap.
    HASH_CHAIN -- each payload_hash matches the event's fields and each
        chain_hash links to its predecessor.
    NON_NEGATIVE_STOCK -- no prefix of the log drives a product negative.
    BALANCE_MATCHES_LOG -- ``verify`` compares stored to replayed balances.

Failure modes:
    - LedgerCorruption on any failed check.  Never retried.
    - StorageUnavailable from the underlying reads.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from stock_kernel.domain.events import StockEvent
from stock_kernel.exceptions import LedgerCorruption
from stock_kernel.invariants import KernelInvariant
from stock_kernel.logging_config import get_logger
from stock_kernel.services.balance_store import BalanceSnapshot, BalanceStore
from stock_kernel.services.event_log import EventLog
from stock_kernel.utils.hashing import hash_chain_link

logger = get_logger("services.replay")


@dataclass(frozen=True)
class ReplayStep:
    """One replayed event and the product's balance right after it."""

    event: StockEvent
    resulting_balance: int


@dataclass(frozen=True)
class BalanceMismatch:
    """A stored balance that disagrees with the log."""

    product_id: str
    stored: int | None
    replayed: int


@dataclass(frozen=True)
class VerificationReport:
    """Outcome of ReplayService.verify()."""

    events_checked: int
    products_checked: int
    last_position: int
    mismatches: tuple[BalanceMismatch, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.mismatches


class ReplayService:
    """Deterministic fold of the event log into balances."""

    def __init__(self, event_log: EventLog):
        self._event_log = event_log

    def replay(self, from_position: int = 0, upto: int | None = None) -> Iterator[ReplayStep]:
        """
        Replay the log and yield a step for every event after ``from_position``.

        Balances are always re-derived from the start of the log, so the
        ``resulting_balance`` of a step never depends on ``from_position``.

        Raises:
            LedgerCorruption: On the first event that fails a check.
        """
        if from_position < 0:
            raise ValueError(f"from_position must not be negative: {from_position}")

        balances: dict[str, int] = {}
        prev_position = 0
        prev_chain_hash: str | None = None

        for event in self._event_log.read_since(0, upto=upto):
            self._check_event(event, prev_position, prev_chain_hash)

            balance = balances.get(event.product_id, 0) + event.signed_quantity
            if balance < 0:
                raise self._corruption(
                    event,
                    KernelInvariant.NON_NEGATIVE_STOCK,
                    f"balance would become {balance}",
                )
            balances[event.product_id] = balance
            prev_position = event.event_id
            prev_chain_hash = event.chain_hash

            if event.event_id > from_position:
                yield ReplayStep(event=event, resulting_balance=balance)

        logger.info(
            "replay_completed",
            extra={"last_position": prev_position, "products": len(balances)},
        )

    def fold(self, upto: int | None = None) -> dict[str, BalanceSnapshot]:
        """Replay the whole log (or a prefix) into balance snapshots."""
        snapshots: dict[str, BalanceSnapshot] = {}
        for step in self.replay(upto=upto):
            product_id = step.event.product_id
            previous = snapshots.get(product_id)
            snapshots[product_id] = BalanceSnapshot(
                product_id=product_id,
                current_stock=step.resulting_balance,
                last_event_id=step.event.event_id,
                event_count=(previous.event_count if previous else 0) + 1,
            )
        return snapshots

    def verify(self) -> VerificationReport:
        """
        Replay the log and compare the result to ``stock_balances``.

        Appends are paused for the duration so both sides describe the
        same log prefix.

        Raises:
            LedgerCorruption: If the log itself fails a check.
        """
        with self._event_log.transaction("verify") as session:
            replayed = self.fold()
            stored = {
                snap.product_id: snap.current_stock
                for snap in BalanceStore(session).snapshots()
            }

        mismatches: list[BalanceMismatch] = []
        for product_id in sorted(set(replayed) | set(stored)):
            replayed_stock = replayed[product_id].current_stock if product_id in replayed else 0
            stored_stock = stored.get(product_id)
            if stored_stock != replayed_stock and not (
                stored_stock is None and replayed_stock == 0
            ):
                mismatches.append(
                    BalanceMismatch(
                        product_id=product_id,
                        stored=stored_stock,
                        replayed=replayed_stock,
                    )
                )

        report = VerificationReport(
            events_checked=sum(s.event_count for s in replayed.values()),
            products_checked=len(set(replayed) | set(stored)),
            last_position=max((s.last_event_id for s in replayed.values()), default=0),
            mismatches=tuple(mismatches),
        )
        if report.is_valid:
            logger.info(
                "verification_completed",
                extra={
                    "events_checked": report.events_checked,
                    "products_checked": report.products_checked,
                    "last_position": report.last_position,
                },
            )
        else:
            logger.warning(
                "balance_mismatch_detected",
                extra={
                    "invariant": KernelInvariant.BALANCE_MATCHES_LOG.value,
                    "mismatches": [m.product_id for m in mismatches],
                },
            )
        return report

    def rebuild_balances(self) -> dict[str, int]:
        """
        Rewrite ``stock_balances`` from the log.

        Returns:
            The rebuilt product -> stock mapping.
        """
        with self._event_log.transaction("rebuild") as session:
            replayed = self.fold()
            BalanceStore(session).replace_all(replayed.values())

        logger.info("balances_rebuilt", extra={"products": len(replayed)})
        return {product_id: snap.current_stock for product_id, snap in replayed.items()}

    def _check_event(
        self,
        event: StockEvent,
        prev_position: int,
        prev_chain_hash: str | None,
    ) -> None:
        if event.event_id != prev_position + 1:
            raise self._corruption(
                event,
                KernelInvariant.POSITION_MONOTONICITY,
                f"expected position {prev_position + 1}, found {event.event_id}",
            )
        if event.computed_payload_hash() != event.payload_hash:
            raise self._corruption(
                event, KernelInvariant.HASH_CHAIN, "payload hash does not match event fields"
            )
        expected_chain = hash_chain_link(event.event_id, event.payload_hash, prev_chain_hash)
        if expected_chain != event.chain_hash:
            raise self._corruption(
                event, KernelInvariant.HASH_CHAIN, "chain hash does not link to predecessor"
            )

    @staticmethod
    def _corruption(
        event: StockEvent, invariant: KernelInvariant, reason: str
    ) -> LedgerCorruption:
        logger.critical(
            "ledger_corruption_detected",
            extra={
                "invariant": invariant.value,
                "position": event.event_id,
                "product_id": event.product_id,
                "reason": reason,
            },
        )
        return LedgerCorruption(event.product_id, event.event_id, reason)
