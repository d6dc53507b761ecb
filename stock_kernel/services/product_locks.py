"""
ProductLockRegistry -- one mutual-exclusion lock per product.

Responsibility:
    Serializes the read-decide-write sequence of LedgerEngine.submit per
    product.  Submissions for different products never share a lock and
    proceed in parallel up to the log-append step.

Architecture position:
    Kernel > Services -- in-process concurrency primitive.

Failure modes:
    - LockTimeoutError when ``timeout`` is set and the lock is not acquired
      in time.  Nothing has been read or written at that point.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from stock_kernel.exceptions import LockTimeoutError
from stock_kernel.logging_config import get_logger

logger = get_logger("services.product_locks")


class ProductLockRegistry:
    """Lazily created ``threading.Lock`` per product id."""

    def __init__(self, timeout: float | None = None):
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be positive: {timeout}")
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def lock_for(self, product_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[product_id] = lock
            return lock

    @contextmanager
    def hold(self, product_id: str) -> Iterator[None]:
        """Hold the product's lock for the duration of the block."""
        lock = self.lock_for(product_id)
        if self._timeout is None:
            acquired = lock.acquire()
        else:
            acquired = lock.acquire(timeout=self._timeout)
        if not acquired:
            logger.warning(
                "product_lock_timeout",
                extra={"product_id": product_id, "timeout": self._timeout},
            )
            raise LockTimeoutError(product_id, self._timeout)
        try:
            yield
        finally:
            lock.release()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
