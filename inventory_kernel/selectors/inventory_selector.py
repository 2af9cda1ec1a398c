"""
Module: inventory_kernel.selectors.inventory_selector
Responsibility: Read-only inventory reports: totals, low-stock list, product
    detail, per-SKU history and the ledger listing.
Architecture position: Kernel > Selectors.  May import from domain/ and
    selectors/base.py.

Failure modes:
    - ProductNotFoundError from product_detail() for an unknown SKU.
    - Everything else returns empty results on a genesis-only chain.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from inventory_kernel.domain.block import Block
from inventory_kernel.domain.inventory import InventoryState
from inventory_kernel.domain.transactions import (
    CreateItem,
    Genesis,
    Move,
    StockIn,
    StockOut,
)
from inventory_kernel.exceptions import ProductNotFoundError
from inventory_kernel.selectors.base import BaseSelector

DEFAULT_LOCATIONS = ("Supplier", "Warehouse", "Retailer")
DEFAULT_LOW_STOCK_THRESHOLD = 20


@dataclass(frozen=True)
class InventorySummary:
    """Headline figures for the whole inventory."""

    sku_count: int
    total_units: int
    total_value: Decimal
    block_count: int


@dataclass(frozen=True)
class LowStockItem:
    """A product whose total stock is at or below the threshold."""

    sku: str
    product_name: str
    total_units: int


@dataclass(frozen=True)
class ProductDetail:
    """One product with its stock at each location."""

    sku: str
    product_name: str
    category: str
    price: Decimal
    locations: tuple[tuple[str, int], ...]

    @property
    def total_units(self) -> int:
        return sum(quantity for _, quantity in self.locations)

    @property
    def total_value(self) -> Decimal:
        return self.price * self.total_units


@dataclass(frozen=True)
class LedgerEntry:
    """A single non-genesis block as shown in the ledger view."""

    index: int
    timestamp: datetime
    tx_type: str
    sku: str
    quantity: int
    description: str
    actor_name: str
    employee_id: str | None
    hash: str
    previous_hash: str


def describe_transaction(block: Block) -> str:
    """One-line human description of a block's transaction."""
    tx = block.transaction
    if isinstance(tx, CreateItem):
        return f"CREATE {tx.quantity} of {tx.name} ({tx.sku}) to {tx.to_location}"
    if isinstance(tx, StockIn):
        return (
            f"STOCK IN {tx.quantity} of {tx.sku} at {tx.location} "
            f"(before {tx.before_quantity}, after {tx.after_quantity})"
        )
    if isinstance(tx, StockOut):
        return (
            f"STOCK OUT {tx.quantity} of {tx.sku} from {tx.location} "
            f"(before {tx.before_quantity}, after {tx.after_quantity})"
        )
    if isinstance(tx, Move):
        text = f"MOVE {tx.quantity} of {tx.sku} from {tx.from_location} to {tx.to_location}"
        if tx.before_quantity is not None and tx.after_quantity is not None:
            text += (
                f" ({tx.from_location} {tx.before_quantity.from_qty}->{tx.after_quantity.from_qty},"
                f" {tx.to_location} {tx.before_quantity.to_qty}->{tx.after_quantity.to_qty})"
            )
        return text
    return "GENESIS"


def _entry(block: Block) -> LedgerEntry:
    tx = block.transaction
    return LedgerEntry(
        index=block.index,
        timestamp=block.timestamp,
        tx_type=tx.tx_type.value,
        sku=tx.sku,
        quantity=tx.quantity,
        description=describe_transaction(block),
        actor_name=tx.actor.name,
        employee_id=tx.actor.employee_id,
        hash=block.hash,
        previous_hash=block.previous_hash,
    )


class InventorySelector(BaseSelector):
    """
    Reports over a chain snapshot and its reconstructed inventory.

    Contract:
        ``locations`` is the configured list of known locations; product
        detail always lists them (zero when empty) and appends any other
        location that holds stock.  Ledger listings are newest first and
        never include the genesis block.
    """

    def __init__(
        self,
        blocks: Sequence[Block],
        state: InventoryState | None = None,
        *,
        locations: Sequence[str] = DEFAULT_LOCATIONS,
        low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    ):
        super().__init__(blocks, state)
        self.locations = tuple(locations)
        self.low_stock_threshold = low_stock_threshold

    def summary(self) -> InventorySummary:
        state = self.state
        return InventorySummary(
            sku_count=len(state),
            total_units=state.total_units,
            total_value=state.total_value,
            block_count=len(self.blocks),
        )

    def low_stock(self, threshold: int | None = None) -> list[LowStockItem]:
        """
        Products with ``0 < total units <= threshold``, lowest stock first.

        Products that are completely out of stock are not listed.
        """
        limit = self.low_stock_threshold if threshold is None else threshold
        items = [
            LowStockItem(
                sku=sku,
                product_name=record.product_name,
                total_units=record.total_units,
            )
            for sku, record in self.state.items()
            if 0 < record.total_units <= limit
        ]
        return sorted(items, key=lambda item: (item.total_units, item.sku))

    def product_detail(self, sku: str) -> ProductDetail:
        record = self.state.get(sku)
        if record is None:
            raise ProductNotFoundError(sku)

        rows = [(location, record.quantity_at(location)) for location in self.locations]
        extra = sorted(
            location
            for location, quantity in record.locations.items()
            if location not in self.locations and quantity > 0
        )
        rows.extend((location, record.quantity_at(location)) for location in extra)

        return ProductDetail(
            sku=sku,
            product_name=record.product_name,
            category=record.category,
            price=record.price,
            locations=tuple(rows),
        )

    def search(self, term: str = "") -> list[ProductDetail]:
        """
        Products whose name or SKU contains ``term``, ignoring case.

        A blank term matches every product.  Results keep creation order.
        """
        needle = term.strip().casefold()
        return [
            self.product_detail(sku)
            for sku, record in self.state.items()
            if not needle
            or needle in sku.casefold()
            or needle in record.product_name.casefold()
        ]

    def ledger_entries(self) -> list[LedgerEntry]:
        return [
            _entry(block)
            for block in reversed(self.blocks)
            if not isinstance(block.transaction, Genesis)
        ]

    def item_history(self, sku: str) -> list[LedgerEntry]:
        return [entry for entry in self.ledger_entries() if entry.sku == sku]

    def recent_activity(self, limit: int = 5) -> list[LedgerEntry]:
        return self.ledger_entries()[:limit]
