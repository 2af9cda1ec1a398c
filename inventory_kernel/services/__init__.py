"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.chain_store import (
    ChainStore,
    FileChainStore,
    InMemoryChainStore,
    SqlChainStore,
)
from inventory_kernel.services.ledger_service import (
    LedgerService,
    ProposalResult,
    ProposalStatus,
)

__all__ = [
    "ChainStore",
    "FileChainStore",
    "InMemoryChainStore",
    "LedgerService",
    "ProposalResult",
    "ProposalStatus",
    "SqlChainStore",
]
