"""
State reconstruction -- rebuild inventory by replaying the chain.

Responsibility:
    Folds every non-genesis block's transaction, in chain order, through
    the state machine in REPLAY mode, starting from an empty inventory.
    This is the only way the ledger obtains "current inventory"; no
    stored balance is ever trusted.

Architecture position:
    Kernel > Domain.  Read-only with respect to the chain; the returned
    ``InventoryState`` is a fresh value owned by the caller.

Invariants enforced:
    - Deterministic: the same chain always yields an equal state.
    - Replay rejections are logged and skipped, never raised.  An
      internally inconsistent chain is the chain validator's to report.

Failure modes:
    - GenesisPlacementError if a Genesis transaction appears after block 0.
"""

from __future__ import annotations

from collections.abc import Sequence

from inventory_kernel.domain.block import Block
from inventory_kernel.domain.inventory import InventoryState
from inventory_kernel.domain.state_machine import ApplyMode, TransactionStateMachine
from inventory_kernel.exceptions import GenesisPlacementError
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.replay")


def rebuild_inventory(
    blocks: Sequence[Block],
    state_machine: TransactionStateMachine | None = None,
) -> InventoryState:
    """
    Rebuild inventory from scratch by replaying ``blocks[1:]``.

    Args:
        blocks: Full chain including genesis at position 0.
        state_machine: Optional machine instance (a default one is used).

    Returns:
        A new InventoryState.
    """
    machine = state_machine or TransactionStateMachine()
    state = InventoryState()
    skipped = 0

    for position in range(1, len(blocks)):
        block = blocks[position]
        try:
            outcome = machine.apply(block.transaction, state, ApplyMode.REPLAY)
        except GenesisPlacementError as exc:
            logger.error("replay_genesis_misplaced", extra={"block_index": position})
            raise GenesisPlacementError(position) from exc

        if outcome.rejection is not None:
            skipped += 1
            logger.warning(
                "replay_rejection_skipped",
                extra={
                    "block_index": position,
                    "sku": outcome.rejection.sku,
                    "reason": outcome.rejection.code,
                    "detail": outcome.rejection.message,
                },
            )

    logger.debug(
        "inventory_rebuilt",
        extra={
            "block_count": len(blocks),
            "sku_count": len(state),
            "skipped": skipped,
        },
    )
    return state
