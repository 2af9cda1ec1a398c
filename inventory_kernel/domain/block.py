"""
Block -- the immutable ledger entry and its construction.

Responsibility:
    Defines the block structure, builds the genesis block and new blocks,
    and converts blocks to and from their persisted record shape.

Architecture position:
    Kernel > Domain.  Pure apart from reading the injected Clock.
    Nothing in this module appends to or mutates a chain; appending is the
    ledger service's job.

Invariants enforced:
    - ``hash == SHA256(canonical({index, timestamp, transaction, previousHash}))``.
    - Block 0 carries ``Genesis`` and ``previous_hash == "0"``.
    - Blocks are frozen.  A "changed" block is a different object whose
      stored hash no longer matches its content.
    - A decoded block hashes and re-persists its transaction exactly as it
      was stored, including keys the typed model does not carry.

Failure modes:
    - TypeError / ValueError from the canonical encoder if the transaction
      cannot be encoded.  A block that cannot be hashed cannot exist, so
      this propagates.
    - ValueError from ``Block.from_record`` on a malformed record.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.transactions import (
    Genesis,
    Transaction,
    transaction_from_payload,
)
from inventory_kernel.utils.hashing import (
    format_timestamp,
    hash_block_header,
    parse_timestamp,
)

GENESIS_PREVIOUS_HASH = "0"


@dataclass(frozen=True)
class Block:
    """One immutable ledger entry."""

    index: int
    timestamp: datetime
    transaction: Transaction
    previous_hash: str
    hash: str
    recorded_transaction: Mapping[str, Any] | None = field(
        default=None, compare=False, repr=False
    )

    @property
    def is_genesis(self) -> bool:
        return self.index == 0

    def header(self) -> dict[str, Any]:
        """The attribute mapping covered by the block hash."""
        return {
            "index": self.index,
            "timestamp": format_timestamp(self.timestamp),
            "transaction": self.transaction_payload(),
            "previousHash": self.previous_hash,
        }

    def transaction_payload(self) -> dict[str, Any]:
        """
        The transaction mapping as it is hashed and persisted.

        For a block read from storage this is the stored mapping, so an
        injected key changes the hash just as it would for any other
        verifier.  If ``transaction`` no longer matches what was stored
        (the block was rebuilt around a different transaction) the typed
        payload is used instead.
        """
        recorded = self.recorded_transaction
        if recorded is not None and transaction_from_payload(recorded) == self.transaction:
            return dict(recorded)
        return self.transaction.to_payload()

    def compute_hash(self) -> str:
        """Recompute the hash from the block's current content."""
        return hash_block_header(
            self.index,
            self.timestamp,
            self.transaction_payload(),
            self.previous_hash,
        )

    def to_record(self) -> dict[str, Any]:
        """Persisted record: the header plus the stored hash."""
        record = self.header()
        record["hash"] = self.hash
        return record

    @classmethod
    def from_record(cls, record: Any) -> Block:
        """
        Rebuild a block from its persisted record.

        The stored hash is taken as-is; checking it is the chain
        validator's job, not the decoder's.
        """
        if not isinstance(record, Mapping):
            raise ValueError("Block record must be an object")
        for key in ("index", "timestamp", "transaction", "previousHash", "hash"):
            if key not in record:
                raise ValueError(f"Block record is missing {key!r}")
        index = record["index"]
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"Block index must be a non-negative integer: {index!r}")
        if not isinstance(record["previousHash"], str) or not isinstance(record["hash"], str):
            raise ValueError(f"Block {index} hashes must be strings")
        if not isinstance(record["timestamp"], str):
            raise ValueError(f"Block {index} timestamp must be a string")
        return cls(
            index=index,
            timestamp=parse_timestamp(record["timestamp"]),
            transaction=transaction_from_payload(record["transaction"]),
            previous_hash=record["previousHash"],
            hash=record["hash"],
            recorded_transaction=record["transaction"],
        )


def create_block(
    index: int,
    transaction: Transaction,
    previous_hash: str,
    clock: Clock | None = None,
) -> Block:
    """
    Build a fully populated block.

    Stamps the current time from ``clock`` and computes the hash over
    ``{index, timestamp, transaction, previousHash}``.

    Args:
        index: Position the block will occupy in the chain.
        transaction: The (recorded) transaction payload.
        previous_hash: Hash of the current chain tail.
        clock: Time source.  Defaults to SystemClock.

    Returns:
        The new block.  The caller is responsible for appending it.
    """
    timestamp = (clock or SystemClock()).now()
    block_hash = hash_block_header(
        index, timestamp, transaction.to_payload(), previous_hash
    )
    return Block(
        index=index,
        timestamp=timestamp,
        transaction=transaction,
        previous_hash=previous_hash,
        hash=block_hash,
    )


def create_genesis_block(clock: Clock | None = None) -> Block:
    """Build block 0: Genesis transaction, previous hash ``"0"``."""
    return create_block(0, Genesis(), GENESIS_PREVIOUS_HASH, clock)
