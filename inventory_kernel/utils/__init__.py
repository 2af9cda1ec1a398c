"""Utility modules for the inventory kernel."""

from inventory_kernel.utils.hashing import (
    CANONICALIZATION_VERSION,
    HASH_ALGORITHM,
    canonical_bytes,
    canonicalize_json,
    hash_block_header,
    hash_bytes,
    hash_payload,
)

__all__ = [
    "CANONICALIZATION_VERSION",
    "HASH_ALGORITHM",
    "canonical_bytes",
    "canonicalize_json",
    "hash_block_header",
    "hash_bytes",
    "hash_payload",
]
