"""
Chain codec -- the persisted blob layout.

Responsibility:
    Serializes a chain to bytes for the blob store and parses it back.
    This is the one compatibility contract of the ledger: re-decoded
    blocks must re-hash to exactly what was written.

Layout (canonical JSON, UTF-8):

    {"blocks": [<block record>, ...],
     "format": "inventory-ledger",
     "version": 1}

    block record:
    {"hash": "...", "index": 0, "previousHash": "0",
     "timestamp": "2024-01-01T12:00:00.000000+00:00",
     "transaction": {"txType": "GENESIS"}}

Failure modes:
    - CorruptChainError for anything that cannot be decoded: invalid UTF-8,
      invalid JSON, wrong envelope, an empty block list, or a malformed
      block/transaction record.  Decoding never checks hashes; that is the
      chain validator's job.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from inventory_kernel.domain.block import Block
from inventory_kernel.exceptions import CorruptChainError
from inventory_kernel.utils.hashing import canonical_bytes

CHAIN_FORMAT = "inventory-ledger"
CHAIN_FORMAT_VERSION = 1


def encode_chain(blocks: Sequence[Block]) -> bytes:
    """Serialize ``blocks`` to the persisted blob format."""
    return canonical_bytes(
        {
            "format": CHAIN_FORMAT,
            "version": CHAIN_FORMAT_VERSION,
            "blocks": [block.to_record() for block in blocks],
        }
    )


def decode_chain(data: bytes) -> list[Block]:
    """
    Parse a persisted blob back into blocks.

    Raises:
        CorruptChainError: If the blob is not a well-formed chain.
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorruptChainError(f"unparseable blob ({exc})") from exc

    if not isinstance(document, dict):
        raise CorruptChainError("top-level value is not an object")
    if document.get("format") != CHAIN_FORMAT:
        raise CorruptChainError(f"unknown format {document.get('format')!r}")
    if document.get("version") != CHAIN_FORMAT_VERSION:
        raise CorruptChainError(f"unsupported version {document.get('version')!r}")

    records = document.get("blocks")
    if not isinstance(records, list):
        raise CorruptChainError("'blocks' is not a list")
    if not records:
        raise CorruptChainError("chain is empty")

    blocks: list[Block] = []
    for position, record in enumerate(records):
        try:
            blocks.append(Block.from_record(record))
        except (TypeError, ValueError) as exc:
            raise CorruptChainError(f"block {position}: {exc}") from exc
    return blocks
