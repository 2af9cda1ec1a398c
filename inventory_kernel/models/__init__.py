"""ORM models for the inventory kernel."""

from inventory_kernel.models.chain_blob import ChainBlob

__all__ = [
    "ChainBlob",
]
