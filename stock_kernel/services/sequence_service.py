"""
SequenceService -- monotonic position allocation via a locked counter row.

Responsibility:
    Provides strictly increasing, gap-free positions for the event log.
    Uses the ``sequence_counters`` table with row-level locking
    (``SELECT ... FOR UPDATE``) so the next value never comes from an
    aggregate max()+1 over the events table.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by EventLog.append inside the log-append transaction.

Invariants enforced:
    POSITION_MONOTONICITY -- the locked counter row is the sole source of
        truth for the next position.  The increment is only visible once the
        caller's transaction commits; a rollback returns the value.

Failure modes:
    - IntegrityError if two writers outside EventLog create the same
      counter concurrently.
"""

from sqlalchemy import select

from stock_kernel.logging_config import get_logger
from stock_kernel.models.sequence import SequenceCounter
from stock_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceService(BaseService):
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        with event_log.transaction() as session:
            position = SequenceService(session).next_value(SequenceService.STOCK_EVENT)
    """

    STOCK_EVENT = "stock_event"

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the sequence row (creating it on first use), increment it, and
        return the new value.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously committed for this sequence name.
        """
        # Cached counters are stale when the session is reused with
        # expire_on_commit=False.
        self.session.expire_all()

        counter = self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if counter is None:
            # First use.  Creation cannot race: EventLog holds the append
            # lock around every allocation.
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self.session.add(counter)

        counter.current_value += 1
        assert counter.current_value > 0, "sequence value must be strictly positive"
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence, or None if it was never used."""
        counter = self.session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None
