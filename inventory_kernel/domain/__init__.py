"""
Pure domain layer.

Blocks, transactions, inventory state, the state machine, replay and
chain validation.  Nothing here touches a database or the filesystem;
time enters only through an injected Clock.
"""

from inventory_kernel.domain.block import (
    GENESIS_PREVIOUS_HASH,
    Block,
    create_block,
    create_genesis_block,
)
from inventory_kernel.domain.chain_validator import (
    ChainFailure,
    ChainVerification,
    is_valid,
    verify_chain,
)
from inventory_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SequentialClock,
    SystemClock,
)
from inventory_kernel.domain.codec import decode_chain, encode_chain
from inventory_kernel.domain.inventory import InventoryState, ProductRecord
from inventory_kernel.domain.replay import rebuild_inventory
from inventory_kernel.domain.state_machine import (
    ApplyMode,
    ApplyOutcome,
    Rejection,
    RejectionReason,
    TransactionStateMachine,
)
from inventory_kernel.domain.transactions import (
    DEFAULT_CATEGORY,
    SCHEMA_VERSION,
    Actor,
    CreateItem,
    Genesis,
    Move,
    QuantityPair,
    StockIn,
    StockOut,
    Transaction,
    TransactionType,
    transaction_from_payload,
)

__all__ = [
    "DEFAULT_CATEGORY",
    "GENESIS_PREVIOUS_HASH",
    "SCHEMA_VERSION",
    "Actor",
    "ApplyMode",
    "ApplyOutcome",
    "Block",
    "ChainFailure",
    "ChainVerification",
    "Clock",
    "CreateItem",
    "DeterministicClock",
    "Genesis",
    "InventoryState",
    "Move",
    "ProductRecord",
    "QuantityPair",
    "Rejection",
    "RejectionReason",
    "SequentialClock",
    "StockIn",
    "StockOut",
    "SystemClock",
    "Transaction",
    "TransactionStateMachine",
    "TransactionType",
    "create_block",
    "create_genesis_block",
    "decode_chain",
    "encode_chain",
    "is_valid",
    "rebuild_inventory",
    "transaction_from_payload",
    "verify_chain",
]
