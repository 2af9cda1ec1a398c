"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHAT IS (AND IS NOT) AN EXCEPTION HERE
===============================================================================

The ledger distinguishes three kinds of "something went wrong":

  1. Validation rejections (duplicate SKU, unknown SKU, insufficient stock,
     same-location move, bad quantity/price).  These are ordinary outcomes
     of proposing a transaction and are returned as ``Rejection`` values
     from the state machine -- they are NOT exceptions.

  2. Integrity failures (hash mismatch, previous-hash mismatch).  These are
     returned as ``ChainVerification`` values from the chain validator --
     also NOT exceptions.  A tampered chain is an expected, reportable
     outcome.

  3. Everything below: persistence failures, programmer errors, and the
     explicit "raise instead of return" helpers (``propose_or_raise``,
     ``assert_valid``).

Every exception carries a class-level ``code`` (machine-readable) and
structured attributes (never parse the message).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- TransactionError
    |   +-- GenesisPlacementError
    |   +-- ProposalRejectedError
    |
    +-- ChainError
    |   +-- ChainIntegrityError
    |
    +-- PersistenceError
    |   +-- ChainStoreError
    |   +-- CorruptChainError
    |   +-- ChainPersistenceError
    |
    +-- ProductError
        +-- ProductNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                    | When Raised
-------------|-------------------------|--------------------------------------------
Transaction  | GENESIS_PLACEMENT       | Genesis applied outside block 0
             | PROPOSAL_REJECTED       | propose_or_raise() got a rejection
-------------|-------------------------|--------------------------------------------
Chain        | CHAIN_INTEGRITY         | assert_valid() found a broken link/hash,
             |                         | or replace_chain() got no genesis anchor
-------------|-------------------------|--------------------------------------------
Persistence  | CHAIN_STORE_ERROR       | Blob store unreachable / write failed
             | CORRUPT_CHAIN           | Persisted blob cannot be decoded
             | CHAIN_PERSISTENCE_FAILED| Append validated but could not be saved
-------------|-------------------------|--------------------------------------------
Product      | PRODUCT_NOT_FOUND       | Report requested for an unknown SKU
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Transaction-related exceptions


class TransactionError(InventoryKernelError):
    """Base exception for transaction-related errors."""

    code: str = "TRANSACTION_ERROR"


class GenesisPlacementError(TransactionError):
    """
    A Genesis transaction was applied somewhere other than block 0.

    This is a caller (programmer) error, not a data error.  It is raised
    loudly rather than reported as a rejection.
    """

    code: str = "GENESIS_PLACEMENT"

    def __init__(self, index: int | None = None):
        self.index = index
        where = f"at index {index}" if index is not None else "outside the genesis block"
        super().__init__(f"Genesis transaction cannot be applied {where}")


class ProposalRejectedError(TransactionError):
    """A proposed transaction was rejected by the state machine."""

    code: str = "PROPOSAL_REJECTED"

    def __init__(self, reason: str, message: str, sku: str | None = None):
        self.reason = reason
        self.sku = sku
        super().__init__(f"Proposal rejected ({reason}): {message}")


# Chain-related exceptions


class ChainError(InventoryKernelError):
    """Base exception for chain-related errors."""

    code: str = "CHAIN_ERROR"


class ChainIntegrityError(ChainError):
    """Chain verification failed and the caller asked for an exception."""

    code: str = "CHAIN_INTEGRITY"

    def __init__(
        self,
        failed_index: int,
        failure: str,
        expected: str | None,
        actual: str | None,
    ):
        self.failed_index = failed_index
        self.failure = failure
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Chain tampered at block {failed_index} ({failure}): "
            f"expected {expected}, found {actual}"
        )


# Persistence-related exceptions


class PersistenceError(InventoryKernelError):
    """Base exception for persistence errors."""

    code: str = "PERSISTENCE_ERROR"


class ChainStoreError(PersistenceError):
    """The blob store could not be read or written."""

    code: str = "CHAIN_STORE_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Chain store {operation} failed: {reason}")


class CorruptChainError(PersistenceError):
    """The persisted chain blob could not be decoded."""

    code: str = "CORRUPT_CHAIN"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Persisted chain is corrupt: {reason}")


class ChainPersistenceError(PersistenceError):
    """
    A validated block could not be persisted.

    The in-memory chain is left unchanged; nothing is published.
    """

    code: str = "CHAIN_PERSISTENCE_FAILED"

    def __init__(self, block_index: int, reason: str):
        self.block_index = block_index
        self.reason = reason
        super().__init__(
            f"Failed to persist chain at block {block_index}: {reason}"
        )


# Product-related exceptions


class ProductError(InventoryKernelError):
    """Base exception for product lookups."""

    code: str = "PRODUCT_ERROR"


class ProductNotFoundError(ProductError):
    """No product with the given SKU exists in the reconstructed inventory."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Product not found: {sku}")
