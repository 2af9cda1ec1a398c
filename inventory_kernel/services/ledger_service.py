"""
LedgerService -- the single append point of the inventory ledger.

Responsibility:
    Owns the in-memory chain and its reconstructed inventory.  Loads the
    chain from a ChainStore, validates proposed transactions with the state
    machine, appends blocks, persists the chain, and exposes verification
    and replay.

Architecture position:
    Kernel > Services -- imperative shell around the pure domain core
    (state machine, block model, validator, reconstructor, codec).

Invariants enforced:
    - Single writer: ``load``, ``propose``, ``reset`` and ``replace_chain``
      run under one re-entrant lock, so at most one append is in flight.
    - Persist before publish: the new chain is saved first and only then
      swapped in.  A failed save leaves the previous chain visible.
    - The published chain is an immutable tuple replaced in one assignment.
      Readers see the chain before or after an append, never in between.
    - Inventory is always the result of replaying the published chain.

Failure modes:
    - Rejections come back as ``ProposalResult(status=REJECTED)``.
    - ChainPersistenceError when the store refuses a save.
    - ChainStoreError from ``load`` when the store cannot be read.
    - GenesisPlacementError for a Genesis draft or a misplaced genesis
      found during replay.
    - A corrupt persisted blob is NOT an error: it is logged and replaced
      by a fresh genesis-only chain, which is persisted immediately.
"""

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from inventory_kernel.domain.block import Block, create_block, create_genesis_block
from inventory_kernel.domain.chain_validator import (
    ChainVerification,
    check_genesis,
    verify_chain,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.codec import decode_chain, encode_chain
from inventory_kernel.domain.inventory import InventoryState
from inventory_kernel.domain.replay import rebuild_inventory
from inventory_kernel.domain.state_machine import (
    ApplyMode,
    Rejection,
    TransactionStateMachine,
)
from inventory_kernel.domain.transactions import Transaction
from inventory_kernel.exceptions import (
    ChainIntegrityError,
    ChainPersistenceError,
    ChainStoreError,
    CorruptChainError,
    GenesisPlacementError,
    ProposalRejectedError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.chain_store import ChainStore

logger = get_logger("services.ledger")


class ProposalStatus(str, Enum):
    """Status of a proposal."""

    APPENDED = "appended"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ProposalResult:
    """Result of ``LedgerService.propose``."""

    status: ProposalStatus
    block: Block | None = None
    rejection: Rejection | None = None

    @property
    def is_success(self) -> bool:
        return self.status == ProposalStatus.APPENDED


class LedgerService:
    """
    Append-only, hash-chained inventory ledger.

    Contract:
        Accepts transaction drafts (no before/after snapshot) and either
        appends them as a new block or returns the rejection.  Every read
        of inventory is a replay of the chain.

    Guarantees:
        - The chain always starts with a genesis block once loaded.
        - No accepted proposal drives any quantity below zero.
        - ``chain`` and ``inventory`` return snapshots; mutating them does
          not affect the service.

    Non-goals:
        - Does NOT verify the chain on append.  Call ``verify()``.
        - Does NOT coordinate multiple processes writing the same store.
    """

    def __init__(
        self,
        store: ChainStore,
        clock: Clock | None = None,
        state_machine: TransactionStateMachine | None = None,
    ):
        """
        Initialize the ledger.  Nothing is read until ``load()`` (or the
        first proposal) runs.

        Args:
            store: Blob store holding the serialized chain.
            clock: Time source for block timestamps. Defaults to SystemClock.
            state_machine: Transaction validator. A default one is created.
        """
        self._store = store
        self._clock = clock or SystemClock()
        self._machine = state_machine or TransactionStateMachine()
        self._lock = threading.RLock()
        self._chain: tuple[Block, ...] = ()
        self._inventory = InventoryState()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def chain(self) -> tuple[Block, ...]:
        """The published chain (immutable snapshot)."""
        return self._chain

    @property
    def inventory(self) -> InventoryState:
        """A copy of the current reconstructed inventory."""
        with self._lock:
            return self._inventory.copy()

    @property
    def tip_hash(self) -> str | None:
        chain = self._chain
        return chain[-1].hash if chain else None

    @property
    def height(self) -> int:
        """Number of blocks in the published chain, genesis included."""
        return len(self._chain)

    @property
    def is_loaded(self) -> bool:
        return bool(self._chain)

    def rebuild(self) -> InventoryState:
        """Replay the published chain from scratch."""
        return rebuild_inventory(self._chain, self._machine)

    def verify(self) -> ChainVerification:
        """Validate index, link and content hashes of the published chain."""
        return verify_chain(self._chain)

    def is_valid(self) -> bool:
        return self.verify().is_valid

    def assert_valid(self) -> ChainVerification:
        """
        Like ``verify`` but raises on a broken chain.

        Raises:
            ChainIntegrityError: If any block fails validation.
        """
        result = self.verify()
        if not result.is_valid:
            raise ChainIntegrityError(
                failed_index=result.failed_index,
                failure=result.failure.value,
                expected=result.expected,
                actual=result.actual,
            )
        return result

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def load(self) -> tuple[Block, ...]:
        """
        Load the persisted chain and rebuild inventory from it.

        An absent, empty or undecodable blob yields a fresh genesis-only
        chain which is persisted before this returns.

        Returns:
            The published chain.

        Raises:
            ChainStoreError: If the store cannot be read.
            ChainPersistenceError: If a fresh genesis chain cannot be saved.
            GenesisPlacementError: If the stored chain has a misplaced genesis.
        """
        with self._lock:
            data = self._store.load()
            blocks: list[Block] | None = None
            if data:
                try:
                    blocks = decode_chain(data)
                except CorruptChainError as exc:
                    logger.error(
                        "chain_blob_corrupt",
                        extra={"reason": exc.reason, "payload_size": len(data)},
                    )

            if blocks is None:
                blocks = [create_genesis_block(self._clock)]
                self._persist(blocks, 0)
                logger.info("genesis_created", extra={"hash": blocks[0].hash})

            inventory = rebuild_inventory(blocks, self._machine)
            self._publish(tuple(blocks), inventory)

            logger.info(
                "chain_loaded",
                extra={
                    "block_count": len(self._chain),
                    "sku_count": len(inventory),
                    "tip_hash": self.tip_hash,
                },
            )
            return self._chain

    def propose(self, draft: Transaction) -> ProposalResult:
        """
        Validate ``draft`` against current inventory and append it.

        The draft is checked in STRICT mode against a copy of the current
        inventory.  On success the next block is built from the tail hash,
        the extended chain is saved, and only then published.

        Args:
            draft: CreateItem, StockIn, StockOut or Move without a snapshot.

        Returns:
            ProposalResult with the new block or the rejection.

        Raises:
            GenesisPlacementError: If ``draft`` is a Genesis transaction.
            ChainPersistenceError: If the extended chain cannot be saved.
        """
        with self._lock:
            if not self._chain:
                self.load()

            index = len(self._chain)
            actor = getattr(draft, "actor", None)

            with LogContext.bind(
                actor_id=actor.user_id if actor is not None else None,
                sku=draft.sku,
                block_index=index,
            ):
                working = self._inventory.copy()
                try:
                    outcome = self._machine.apply(draft, working, ApplyMode.STRICT)
                except GenesisPlacementError as exc:
                    raise GenesisPlacementError(index) from exc

                if outcome.rejection is not None:
                    logger.info(
                        "proposal_rejected",
                        extra={
                            "tx_type": draft.tx_type.value,
                            "reason": outcome.rejection.code,
                            "detail": outcome.rejection.message,
                        },
                    )
                    return ProposalResult(
                        status=ProposalStatus.REJECTED,
                        rejection=outcome.rejection,
                    )

                block = create_block(
                    index, outcome.applied, self._chain[-1].hash, self._clock
                )
                extended = self._chain + (block,)
                self._persist(extended, index)
                self._publish(extended, rebuild_inventory(extended, self._machine))

                logger.info(
                    "block_appended",
                    extra={
                        "tx_type": draft.tx_type.value,
                        "hash": block.hash,
                        "previous_hash": block.previous_hash,
                    },
                )
                return ProposalResult(status=ProposalStatus.APPENDED, block=block)

    def propose_or_raise(self, draft: Transaction) -> Block:
        """
        ``propose`` for callers that prefer exceptions.

        Raises:
            ProposalRejectedError: If the state machine rejects ``draft``.
        """
        result = self.propose(draft)
        if result.rejection is not None:
            raise ProposalRejectedError(
                reason=result.rejection.code,
                message=result.rejection.message,
                sku=result.rejection.sku,
            )
        return result.block

    def reset(self) -> Block:
        """
        Discard the whole chain and start over from a new genesis block.

        The genesis-only chain is persisted before it is published.

        Returns:
            The new genesis block.
        """
        with self._lock:
            previous_height = len(self._chain)
            genesis = create_genesis_block(self._clock)
            self._persist([genesis], 0)
            self._publish((genesis,), InventoryState())
            logger.warning(
                "chain_reset",
                extra={"discarded_blocks": previous_height, "hash": genesis.hash},
            )
            return genesis

    def replace_chain(self, blocks: Sequence[Block]) -> None:
        """
        Replace the chain wholesale.

        Only the genesis anchor is checked here; links and hashes are
        left to ``verify()``.  Inventory is rebuilt before anything is
        saved, so a chain that cannot be replayed is refused without
        touching the store.

        Raises:
            ValueError: If ``blocks`` is empty.
            ChainIntegrityError: If block 0 is not a well-formed genesis block.
            GenesisPlacementError: If a genesis transaction is misplaced.
            ChainPersistenceError: If the chain cannot be saved.
        """
        if not blocks:
            raise ValueError("Cannot replace the chain with an empty chain")
        with self._lock:
            replacement = tuple(blocks)
            anchor = check_genesis(replacement)
            if anchor is not None:
                raise ChainIntegrityError(
                    failed_index=0,
                    failure=anchor.failure.value,
                    expected=anchor.expected,
                    actual=anchor.actual,
                )
            inventory = rebuild_inventory(replacement, self._machine)
            self._persist(replacement, len(replacement) - 1)
            self._publish(replacement, inventory)
            logger.warning(
                "chain_replaced",
                extra={"block_count": len(replacement), "tip_hash": self.tip_hash},
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist(self, blocks: Sequence[Block], block_index: int) -> None:
        data = encode_chain(blocks)
        try:
            self._store.save(data)
        except ChainStoreError as exc:
            logger.error(
                "chain_persist_failed",
                extra={"block_index": block_index, "reason": exc.reason},
            )
            raise ChainPersistenceError(block_index, exc.reason) from exc

    def _publish(self, chain: tuple[Block, ...], inventory: InventoryState) -> None:
        self._inventory = inventory
        self._chain = chain
