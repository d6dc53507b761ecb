"""
Injectable time source.

Ledger code never calls ``datetime.now()`` itself: the event log stamps
``recorded_at`` (and defaults ``occurred_at``) from the Clock it was given,
so tests and replays can pin time.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable

DEFAULT_TEST_EPOCH = datetime(2025, 11, 1, 9, 0, 0, tzinfo=timezone.utc)


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        """Current time, timezone-aware."""
        ...


class SystemClock:
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock:
    """
    Clock that only moves when told to.

    ``now()`` keeps returning the same instant until ``advance()`` is called.
    """

    def __init__(self, start: datetime = DEFAULT_TEST_EPOCH):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start time")
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float | timedelta = 1) -> datetime:
        """Move forward and return the new time."""
        step = seconds if isinstance(seconds, timedelta) else timedelta(seconds=seconds)
        if step < timedelta(0):
            raise ValueError("DeterministicClock cannot move backwards")
        self._now += step
        return self._now
