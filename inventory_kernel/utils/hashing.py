"""
Deterministic hashing utilities.

All hashing in the inventory kernel must be deterministic and reproducible:
the whole tamper-evidence guarantee rests on re-encoding a block producing
byte-identical output to the first encoding.  This module provides the
canonical encoder and the hasher used throughout.

Canonical encoding rules (version 1):
    - JSON object keys are sorted recursively.
    - No insignificant whitespace; separators are "," and ":".
    - Output is UTF-8; non-ASCII characters are emitted as-is.
    - Integers are base-10 integers.  NaN and infinity are rejected.
    - Decimal is emitted as a plain (non-exponent) normalized string.
    - Timestamps are UTC ISO-8601 with microsecond precision,
      e.g. ``2024-01-01T12:00:00.000000+00:00``.
    - UUID as its string form, bytes as lowercase hex, enums by value.

Changing any of these rules changes every hash ever produced; bump
``CANONICALIZATION_VERSION`` if that ever happens.
"""

import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

HASH_ALGORITHM = "sha256"
CANONICALIZATION_VERSION = 1


def format_decimal(value: Decimal) -> str:
    """
    Render a Decimal in its canonical plain form.

    Trailing zeros are removed and exponent notation is never used, so
    ``Decimal("12.50")`` and ``Decimal("1.25E+1")`` both render as ``"12.5"``.
    """
    if not value.is_finite():
        raise ValueError(f"Non-finite decimal cannot be canonicalized: {value}")
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")


def format_timestamp(value: datetime) -> str:
    """
    Render an aware datetime in the canonical UTC ISO-8601 form.

    Raises:
        ValueError: If the datetime is naive.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Timestamp must be timezone-aware: {value!r}")
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse a canonical ISO-8601 timestamp back into an aware datetime."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp is missing a UTC offset: {value!r}")
    return parsed


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Args:
        obj: Object to serialize.

    Returns:
        JSON-serializable representation.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        return format_decimal(obj)
    if isinstance(obj, datetime):
        return format_timestamp(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, (tuple, frozenset, set)):
        return sorted(obj) if isinstance(obj, (frozenset, set)) else list(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """
    Convert data to canonical JSON string.

    Two mappings with the same key/value pairs produce the same string
    regardless of insertion order, at every nesting level.

    Args:
        data: Data to canonicalize.

    Returns:
        Canonical JSON string.

    Raises:
        TypeError: If a value has no canonical representation.
        ValueError: If a float is NaN or infinite, or a datetime is naive.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=_json_serializer,
    )


def canonical_bytes(data: Any) -> bytes:
    """Canonical JSON encoded as UTF-8 bytes."""
    return canonicalize_json(data).encode("utf-8")


def hash_bytes(data: bytes) -> str:
    """
    Compute the SHA-256 digest of raw bytes.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    return hashlib.sha256(data).hexdigest()


def hash_payload(payload: Any) -> str:
    """Compute SHA-256 over the canonical encoding of a payload."""
    return hash_bytes(canonical_bytes(payload))


def hash_block_header(
    index: int,
    timestamp: datetime,
    transaction: Mapping[str, Any],
    previous_hash: str,
) -> str:
    """
    Compute the hash of a block.

    The hash covers exactly the four header attributes; the block's own
    ``hash`` field is never part of its input.

    Args:
        index: Block position in the chain.
        timestamp: When the block was created (aware datetime).
        transaction: Transaction payload mapping (with its type tag).
        previous_hash: Hash of the preceding block, or ``"0"`` for genesis.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    return hash_payload(
        {
            "index": index,
            "timestamp": format_timestamp(timestamp),
            "transaction": transaction,
            "previousHash": previous_hash,
        }
    )
