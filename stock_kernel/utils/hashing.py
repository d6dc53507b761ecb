"""
Deterministic hashing utilities.

All hashing in the stock kernel must be deterministic and reproducible.
This module provides the canonical hashing functions behind the event
log's payload hashes and hash chain.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

GENESIS_HASH = "GENESIS"


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        return str(obj.normalize())
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Produces a deterministic JSON representation:
    - Keys are sorted alphabetically
    - No whitespace
    - Consistent handling of special types (Decimal, datetime, Enum)
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """
    Compute SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_chain_link(event_id: int, payload_hash: str, prev_hash: str | None) -> str:
    """
    Compute the chain hash for one stock event.

    The hash covers the event's position, its payload hash and the previous
    event's chain hash, so removing, editing or reordering any event breaks
    every link after it.

    Args:
        event_id: Log position of the event.
        payload_hash: Hash of the event's business fields.
        prev_hash: Chain hash of the previous event (None for the first).

    Returns:
        Hex-encoded SHA-256 hash.
    """
    components = [
        str(event_id),
        payload_hash,
        prev_hash or GENESIS_HASH,
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
