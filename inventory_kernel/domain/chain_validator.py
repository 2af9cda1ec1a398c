"""
Chain validator -- tamper detection over an ordered sequence of blocks.

Responsibility:
    Walks a chain and certifies that it is anchored by a genesis block and
    that block indices, previous-hash links and content hashes are
    internally consistent.

Architecture position:
    Kernel > Domain.  Read-only; safe to call concurrently with replay.

Invariants enforced:
    Block 0 must have index 0, a ``Genesis`` transaction and previous hash
    ``"0"``.  Then for every block ``i >= 1``, checked in this order:
      1. ``blocks[i].index == i``
      2. ``blocks[i].previous_hash == blocks[i-1].hash``
      3. ``blocks[i].hash`` equals the hash recomputed from its header
    The genesis block anchors the chain and is not itself re-hashed.

Failure modes:
    None raised.  A tampered chain is an expected outcome and is returned
    as a ``ChainVerification`` carrying the first offending index, the kind
    of failure and the expected/actual values.  Each failure is logged at
    CRITICAL as ``chain_tampered``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from inventory_kernel.domain.block import GENESIS_PREVIOUS_HASH, Block
from inventory_kernel.domain.transactions import Genesis, TransactionType
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.chain_validator")


class ChainFailure(str, Enum):
    """Which relation broke first."""

    GENESIS_MISMATCH = "genesis_mismatch"
    INDEX_MISMATCH = "index_mismatch"
    PREVIOUS_HASH_MISMATCH = "previous_hash_mismatch"
    HASH_MISMATCH = "hash_mismatch"


@dataclass(frozen=True)
class ChainVerification:
    """Outcome of walking a chain."""

    is_valid: bool
    block_count: int
    failed_index: int | None = None
    failure: ChainFailure | None = None
    expected: str | None = None
    actual: str | None = None

    @property
    def message(self) -> str:
        if self.is_valid:
            return f"Chain of {self.block_count} block(s) is valid"
        return (
            f"Chain tampered at block {self.failed_index} "
            f"({self.failure.value}): expected {self.expected}, found {self.actual}"
        )


def _failed(
    blocks: Sequence[Block],
    index: int,
    failure: ChainFailure,
    expected: str | None,
    actual: str | None,
) -> ChainVerification:
    result = ChainVerification(
        is_valid=False,
        block_count=len(blocks),
        failed_index=index,
        failure=failure,
        expected=expected,
        actual=actual,
    )
    logger.critical(
        "chain_tampered",
        extra={
            "failed_index": index,
            "failure": failure.value,
            "expected": expected,
            "actual": actual,
            "block_count": len(blocks),
        },
    )
    return result


def check_genesis(blocks: Sequence[Block]) -> ChainVerification | None:
    if not blocks:
        return None
    head = blocks[0]
    if head.index != 0:
        return _failed(blocks, 0, ChainFailure.INDEX_MISMATCH, "0", str(head.index))
    if not isinstance(head.transaction, Genesis):
        return _failed(
            blocks,
            0,
            ChainFailure.GENESIS_MISMATCH,
            TransactionType.GENESIS.value,
            head.transaction.tx_type.value,
        )
    if head.previous_hash != GENESIS_PREVIOUS_HASH:
        return _failed(
            blocks,
            0,
            ChainFailure.PREVIOUS_HASH_MISMATCH,
            GENESIS_PREVIOUS_HASH,
            head.previous_hash,
        )
    return None


def verify_chain(blocks: Sequence[Block]) -> ChainVerification:
    """
    Validate hash linkage and content hashes of a chain.

    Short-circuits on the first mismatch.  An empty chain is trivially
    valid, as is a chain holding only a well-formed genesis block.

    Args:
        blocks: Blocks in chain order.

    Returns:
        ChainVerification describing the outcome.
    """
    anchor = check_genesis(blocks)
    if anchor is not None:
        return anchor

    for i in range(1, len(blocks)):
        current = blocks[i]
        previous = blocks[i - 1]

        if current.index != i:
            return _failed(
                blocks, i, ChainFailure.INDEX_MISMATCH, str(i), str(current.index)
            )

        if current.previous_hash != previous.hash:
            return _failed(
                blocks,
                i,
                ChainFailure.PREVIOUS_HASH_MISMATCH,
                previous.hash,
                current.previous_hash,
            )

        try:
            recomputed = current.compute_hash()
        except (TypeError, ValueError):
            # Content that no longer encodes cannot match its stored hash.
            logger.exception("block_rehash_failed", extra={"block_index": i})
            return _failed(blocks, i, ChainFailure.HASH_MISMATCH, None, current.hash)

        if current.hash != recomputed:
            return _failed(
                blocks, i, ChainFailure.HASH_MISMATCH, recomputed, current.hash
            )

    logger.debug("chain_valid", extra={"block_count": len(blocks)})
    return ChainVerification(is_valid=True, block_count=len(blocks))


def is_valid(blocks: Sequence[Block]) -> bool:
    """Boolean form of ``verify_chain``."""
    return verify_chain(blocks).is_valid
