"""
EventLog -- the append-only, totally ordered store of stock events.

Responsibility:
    Appends validated drafts as immutable StockEventRecord rows, assigning
    each a position from SequenceService and linking it into the hash chain.
    Serves ordered reads for replay, auditing and follow-mode consumers.

Architecture position:
    Kernel > Services -- imperative shell.  ``transaction()`` is the only
    place in the kernel that opens a write transaction; LedgerEngine and
    ReplayService.rebuild_balances both write through it.

Invariants enforced:
    POSITION_MONOTONICITY -- positions come from the locked counter row and
        the whole transaction (allocate, insert, balance write, commit) runs
        under the append lock, so commit order equals position order and a
        follower never observes position n+1 before n.
    HASH_CHAIN -- every appended row carries payload_hash and a chain_hash
        over its predecessor's chain_hash.
    IMMUTABILITY -- rows are only ever INSERTed here.

Failure modes:
    - StorageUnavailable on any driver-level failure during append or read.
      The transaction is rolled back, so nothing partial is left behind.
    - LedgerCorruption if the predecessor of a freshly allocated position
      is missing (the counter and the log disagree).

Audit relevance:
    ``stock_event_appended`` is logged at INFO with position and hashes.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope, translate_storage_errors
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.events import StockEvent, StockEventDraft, event_payload
from stock_kernel.exceptions import LedgerCorruption
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.stock_event import StockEventRecord
from stock_kernel.services.sequence_service import SequenceService
from stock_kernel.utils.hashing import hash_chain_link, hash_payload

logger = get_logger("services.event_log")

DEFAULT_READ_BATCH_SIZE = 500
DEFAULT_FOLLOW_POLL_INTERVAL = 0.5


class EventLog:
    """
    Append-only stock event log over a SQLAlchemy session factory.

    Contract:
        ``append`` is called with the session yielded by ``transaction()``.
        Reads open their own short-lived sessions.

    Guarantees:
        - Positions start at 1, are strictly increasing and gap-free.
        - Appending never fails because of an event's content.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        read_batch_size: int = DEFAULT_READ_BATCH_SIZE,
        follow_poll_interval: float = DEFAULT_FOLLOW_POLL_INTERVAL,
    ):
        if read_batch_size < 1:
            raise ValueError(f"read_batch_size must be positive: {read_batch_size}")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._read_batch_size = read_batch_size
        self._follow_poll_interval = follow_poll_interval
        self._append_lock = threading.Lock()
        self._appended = threading.Condition()

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self, operation: str = "append") -> Iterator[Session]:
        """
        Run one write transaction under the log-append lock.

        Commits on normal exit and rolls back on error.  Followers are woken
        once the commit is durable.
        """
        with self._append_lock, LogContext.bind(operation=operation):
            with translate_storage_errors(operation):
                with session_scope(self._session_factory) as session:
                    yield session
        with self._appended:
            self._appended.notify_all()

    def append(self, session: Session, draft: StockEventDraft) -> StockEvent:
        """
        Append ``draft`` and return the stored event.

        Preconditions:
            - ``session`` comes from ``transaction()``.
        """
        position = SequenceService(session).next_value(SequenceService.STOCK_EVENT)

        prev_chain_hash: str | None = None
        if position > 1:
            prev_chain_hash = session.execute(
                select(StockEventRecord.chain_hash).where(
                    StockEventRecord.event_id == position - 1
                )
            ).scalar_one_or_none()
            if prev_chain_hash is None:
                raise LedgerCorruption(
                    draft.product_id, position, "predecessor event is missing"
                )

        now = self._clock.now().astimezone(UTC)
        occurred_at = (draft.occurred_at or now).astimezone(UTC)
        payload_hash = hash_payload(
            event_payload(
                draft.product_id,
                draft.kind,
                draft.quantity,
                occurred_at,
                now,
                draft.reference_id,
                draft.notes,
            )
        )

        record = StockEventRecord(
            event_id=position,
            product_id=draft.product_id,
            kind=draft.kind.value,
            quantity=draft.quantity,
            occurred_at=occurred_at,
            recorded_at=now,
            reference_id=draft.reference_id,
            notes=draft.notes,
            payload_hash=payload_hash,
            chain_hash=hash_chain_link(position, payload_hash, prev_chain_hash),
        )
        session.add(record)
        session.flush()

        event = StockEvent.from_model(record)
        logger.info(
            "stock_event_appended",
            extra={
                "position": position,
                "product_id": event.product_id,
                "kind": event.kind.value,
                "quantity": event.quantity,
                "payload_hash": event.payload_hash,
                "chain_hash": event.chain_hash,
            },
        )
        return event

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_since(
        self,
        position: int = 0,
        *,
        upto: int | None = None,
        follow: bool = False,
        stop: threading.Event | None = None,
        batch_size: int | None = None,
    ) -> Iterator[StockEvent]:
        """
        Yield events with ``event_id > position`` in append order.

        Args:
            position: Last position the caller has already seen (0 = all).
            upto: Inclusive upper bound.  The iterator ends once it is
                reached.
            follow: Keep waiting for new appends instead of ending at the
                current tail.
            stop: Ends a follow-mode iteration once set.
            batch_size: Rows fetched per query.

        Raises:
            StorageUnavailable: If a batch cannot be read.
        """
        if position < 0:
            raise ValueError(f"position must not be negative: {position}")
        batch_size = batch_size or self._read_batch_size
        cursor = position

        while True:
            if upto is not None and cursor >= upto:
                return

            batch = self._fetch_batch(cursor, upto, batch_size)
            for event in batch:
                yield event
                cursor = event.event_id

            if len(batch) == batch_size:
                continue
            if not follow:
                return
            if stop is not None and stop.is_set():
                return
            with self._appended:
                self._appended.wait(timeout=self._follow_poll_interval)

    def _fetch_batch(
        self, after: int, upto: int | None, batch_size: int
    ) -> list[StockEvent]:
        query = (
            select(StockEventRecord)
            .where(StockEventRecord.event_id > after)
            .order_by(StockEventRecord.event_id)
            .limit(batch_size)
        )
        if upto is not None:
            query = query.where(StockEventRecord.event_id <= upto)

        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                rows = session.execute(query).scalars().all()
                return [StockEvent.from_model(row) for row in rows]

    def get(self, event_id: int) -> StockEvent | None:
        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                row = session.get(StockEventRecord, event_id)
                return StockEvent.from_model(row) if row is not None else None

    def history(
        self,
        product_id: str,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[StockEvent]:
        """A product's events, newest first by default."""
        order = (
            StockEventRecord.event_id.desc()
            if newest_first
            else StockEventRecord.event_id.asc()
        )
        query = (
            select(StockEventRecord)
            .where(StockEventRecord.product_id == product_id)
            .order_by(order)
        )
        if limit is not None:
            query = query.limit(limit)

        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                rows = session.execute(query).scalars().all()
                return [StockEvent.from_model(row) for row in rows]

    def count(self) -> int:
        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                return session.execute(
                    select(func.count()).select_from(StockEventRecord)
                ).scalar_one()

    def last_position(self) -> int:
        """Position of the newest event, 0 for an empty log."""
        with translate_storage_errors("read"):
            with session_scope(self._session_factory) as session:
                last = session.execute(
                    select(func.max(StockEventRecord.event_id))
                ).scalar_one()
                return last or 0
