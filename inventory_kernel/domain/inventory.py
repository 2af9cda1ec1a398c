"""
InventoryState -- the derived world state of the ledger.

Responsibility:
    Holds, per SKU, the product attributes and the quantity on hand at each
    location.  This is what the state machine mutates and what the
    reconstructor returns.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Quantities are never negative.  ``adjust`` refuses to go below zero.
    - A missing (sku, location) entry is equivalent to quantity 0.
    - The state is never persisted.  It is an owned, disposable value:
      ``rebuild`` returns a fresh one and callers that need isolation
      take ``copy()``.

Failure modes:
    - KeyError from ``product()`` / ``adjust()`` for an unknown SKU.
    - ValueError from ``adjust()`` if a decrement would go negative.
      The state machine checks first, so this only fires on a caller bug.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass
class ProductRecord:
    """One product and its stock by location."""

    product_name: str
    price: Decimal
    category: str
    locations: dict[str, int] = field(default_factory=dict)

    def quantity_at(self, location: str) -> int:
        return self.locations.get(location, 0)

    @property
    def total_units(self) -> int:
        return sum(self.locations.values())

    @property
    def total_value(self) -> Decimal:
        return self.price * self.total_units

    def copy(self) -> ProductRecord:
        return ProductRecord(
            product_name=self.product_name,
            price=self.price,
            category=self.category,
            locations=dict(self.locations),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "productName": self.product_name,
            "price": self.price,
            "category": self.category,
            "locations": dict(sorted(self.locations.items())),
        }


class InventoryState:
    """Mapping of SKU to ``ProductRecord``."""

    def __init__(self, products: dict[str, ProductRecord] | None = None):
        self._products: dict[str, ProductRecord] = dict(products or {})

    def __contains__(self, sku: object) -> bool:
        return sku in self._products

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self) -> Iterator[str]:
        return iter(self._products)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InventoryState):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"InventoryState({self.to_dict()!r})"

    def get(self, sku: str) -> ProductRecord | None:
        return self._products.get(sku)

    def product(self, sku: str) -> ProductRecord:
        return self._products[sku]

    def items(self) -> Iterator[tuple[str, ProductRecord]]:
        return iter(self._products.items())

    def quantity_at(self, sku: str, location: str) -> int:
        record = self._products.get(sku)
        return record.quantity_at(location) if record else 0

    def add_product(
        self,
        sku: str,
        product_name: str,
        price: Decimal,
        category: str,
    ) -> ProductRecord:
        """Insert a new product with no stock.  The SKU must be new."""
        if sku in self._products:
            raise ValueError(f"Product {sku} already exists")
        record = ProductRecord(product_name=product_name, price=price, category=category)
        self._products[sku] = record
        return record

    def adjust(self, sku: str, location: str, delta: int) -> tuple[int, int]:
        """
        Change the quantity of ``sku`` at ``location`` by ``delta``.

        Returns:
            ``(before, after)`` quantities at that location.
        """
        record = self._products[sku]
        before = record.quantity_at(location)
        after = before + delta
        if after < 0:
            raise ValueError(
                f"Quantity of {sku} at {location} would become negative ({after})"
            )
        record.locations[location] = after
        return before, after

    @property
    def total_units(self) -> int:
        return sum(record.total_units for record in self._products.values())

    @property
    def total_value(self) -> Decimal:
        return sum(
            (record.total_value for record in self._products.values()),
            Decimal("0"),
        )

    def copy(self) -> InventoryState:
        return InventoryState(
            {sku: record.copy() for sku, record in self._products.items()}
        )

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Plain, key-sorted view used for comparison and reporting."""
        return {sku: self._products[sku].to_dict() for sku in sorted(self._products)}
