"""
Kernel Invariants Contract.

These invariants are structural law. No setting or caller option may
override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across LedgerEngine, EventLog, the immutability
listeners and triggers, and ReplayService.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """current_stock >= 0 after every committed event. Enforced by
    LedgerEngine before append and re-checked by ReplayService."""

    BALANCE_MATCHES_LOG = "balance_matches_log"
    """current_stock equals the sum of signed quantities over the product's
    events. Enforced by committing the event row and the balance row in one
    transaction; verified by ReplayService.verify()."""

    REJECTION_LEAVES_NO_TRACE = "rejection_leaves_no_trace"
    """A rejected submission never reaches the event log and never changes a
    balance. Enforced by LedgerEngine deciding before it appends."""

    IMMUTABILITY = "immutability"
    """Stored stock events are append-only. Enforced by ORM listeners
    (stock_kernel.models.stock_event) and database triggers
    (stock_kernel.db.triggers)."""

    POSITION_MONOTONICITY = "position_monotonicity"
    """Log positions are strictly increasing and gap-free. Enforced by
    SequenceService under the log-append lock."""

    HASH_CHAIN = "hash_chain"
    """Each event's chain_hash covers its payload and its predecessor.
    Enforced by EventLog.append and checked by ReplayService."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)
