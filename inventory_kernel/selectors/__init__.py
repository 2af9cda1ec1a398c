"""Read-only selectors over a chain snapshot."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.inventory_selector import (
    InventorySelector,
    InventorySummary,
    LedgerEntry,
    LowStockItem,
    ProductDetail,
    describe_transaction,
)

__all__ = [
    "BaseSelector",
    "InventorySelector",
    "InventorySummary",
    "LedgerEntry",
    "LowStockItem",
    "ProductDetail",
    "describe_transaction",
]
