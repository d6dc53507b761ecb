"""Utility functions for the stock kernel."""

from stock_kernel.utils.hashing import (
    GENESIS_HASH,
    canonicalize_json,
    hash_chain_link,
    hash_payload,
)

__all__ = [
    "GENESIS_HASH",
    "canonicalize_json",
    "hash_chain_link",
    "hash_payload",
]
