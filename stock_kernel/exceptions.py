"""
Typed exception hierarchy for the stock kernel.

===============================================================================
WHAT IS (AND IS NOT) AN EXCEPTION
===============================================================================

Business outcomes are NOT exceptions. A sale that would drive stock below
zero, a submission for a product the catalog does not know, or a zero
quantity under a strict policy are returned as ``Rejected`` results with a
typed reason (see ``stock_kernel.domain.results``). Every caller handles them
as a normal branch.

Exceptions are reserved for:
  - Infrastructure faults (storage unavailable) -- caller retries.
  - Corruption found on replay -- operator intervention, never retried.
  - Programming errors (malformed drafts, immutability violations,
    invalid configuration).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- EventError
    |   +-- InvalidStockEventError
    |
    +-- StorageError
    |   +-- StorageUnavailable
    |
    +-- IntegrityError
    |   +-- LedgerCorruption
    |
    +-- ConcurrencyError
    |   +-- LockTimeoutError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                   | When Raised
----------------|------------------------|------------------------------------
Event           | INVALID_STOCK_EVENT    | Draft fails structural validation
----------------|------------------------|------------------------------------
Storage         | STORAGE_UNAVAILABLE    | Event log append/read failed
----------------|------------------------|------------------------------------
Integrity       | LEDGER_CORRUPTION      | Replay found negative stock, hash
                |                        | mismatch or out-of-order positions
----------------|------------------------|------------------------------------
Concurrency     | LOCK_TIMEOUT           | Product lock not acquired in time
----------------|------------------------|------------------------------------
Immutability    | IMMUTABILITY_VIOLATION | Update/delete of a stored event
----------------|------------------------|------------------------------------
Configuration   | CONFIGURATION_ERROR    | Settings file or values invalid
===============================================================================
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Event-related exceptions


class EventError(StockKernelError):
    """Base exception for event-related errors."""

    code: str = "EVENT_ERROR"


class InvalidStockEventError(EventError):
    """A stock event draft is structurally invalid."""

    code: str = "INVALID_STOCK_EVENT"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid stock event {field}={value!r}: {reason}")


# Storage-related exceptions


class StorageError(StockKernelError):
    """Base exception for storage-related errors."""

    code: str = "STORAGE_ERROR"


class StorageUnavailable(StorageError):
    """
    The durability medium behind the event log could not be reached.

    Raised for append and read failures. No partial state is left behind:
    the event was either appended and applied, or neither happened.
    """

    code: str = "STORAGE_UNAVAILABLE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage unavailable during {operation}: {detail}")


# Integrity-related exceptions


class IntegrityError(StockKernelError):
    """Base exception for ledger integrity errors."""

    code: str = "INTEGRITY_ERROR"


class LedgerCorruption(IntegrityError):
    """
    Replay detected a state the commit path can never produce.

    Either a balance went negative, a stored hash does not match its
    contents, or positions are out of order. Always indicates a bug or
    tampering; never retried.
    """

    code: str = "LEDGER_CORRUPTION"

    def __init__(self, product_id: str, position: int, reason: str):
        self.product_id = product_id
        self.position = position
        self.reason = reason
        super().__init__(
            f"Ledger corruption for product {product_id} at position {position}: {reason}"
        )


# Concurrency-related exceptions


class ConcurrencyError(StockKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class LockTimeoutError(ConcurrencyError):
    """The per-product critical section could not be entered in time."""

    code: str = "LOCK_TIMEOUT"

    def __init__(self, product_id: str, timeout: float):
        self.product_id = product_id
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout}s waiting for the lock on product {product_id}"
        )


# Immutability-related exceptions


class ImmutabilityError(StockKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a stored stock event."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Configuration exceptions


class ConfigurationError(StockKernelError):
    """Ledger settings are missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for {key!r}: {reason}")
