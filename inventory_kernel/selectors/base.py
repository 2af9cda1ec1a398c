"""
Module: inventory_kernel.selectors.base
Responsibility: Abstract base class for read-only views over a chain snapshot.
Architecture position: Kernel > Selectors.  May import from domain/.
    MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only: selectors hold an immutable tuple of blocks and never
      append, replace or persist anything.
    - No stored balances: any inventory figure is either the caller's
      reconstructed state or a fresh replay of the snapshot.
"""

from abc import ABC
from collections.abc import Sequence

from inventory_kernel.domain.block import Block
from inventory_kernel.domain.inventory import InventoryState
from inventory_kernel.domain.replay import rebuild_inventory


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors are built from a chain snapshot (``LedgerService.chain``)
        and optionally the inventory already reconstructed from it.  When no
        state is given the snapshot is replayed once, lazily.
    """

    def __init__(
        self,
        blocks: Sequence[Block],
        state: InventoryState | None = None,
    ):
        self.blocks: tuple[Block, ...] = tuple(blocks)
        self._state = state

    @property
    def state(self) -> InventoryState:
        if self._state is None:
            self._state = rebuild_inventory(self.blocks)
        return self._state
