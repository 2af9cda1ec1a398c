"""
TransactionStateMachine -- validates and applies inventory transactions.

Responsibility:
    Given a transaction and an ``InventoryState``, decide whether the
    transaction is acceptable and, if so, apply it in place and return the
    transaction with its before/after quantity snapshot recorded.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Used by the ledger
    service (STRICT mode, against live state) and by the reconstructor
    (REPLAY mode, against a state being rebuilt from scratch).

Invariants enforced:
    - State is mutated only on success; a rejection leaves it untouched.
    - No accepted transaction drives any quantity below zero.
    - REPLAY never rejects a CreateItem for a duplicate SKU: data the
      ledger accepted once is not refused on re-derivation.

Per-variant policy:
    CreateItem  DUPLICATE_SKU (STRICT) / no-op (REPLAY) if the SKU exists;
                else insert the product and set ``locations[to] = quantity``.
    StockIn     UNKNOWN_SKU if absent; else ``+= quantity``.
    StockOut    UNKNOWN_SKU if absent; INSUFFICIENT_STOCK if short;
                else ``-= quantity``.
    Move        UNKNOWN_SKU if absent; SAME_LOCATION if from == to;
                INSUFFICIENT_STOCK if short at ``from``; else transfer.
    Genesis     GenesisPlacementError (caller error, raised).

    Every variant is first checked for a positive integer quantity
    (INVALID_QUANTITY); CreateItem also for a finite, non-negative price
    (INVALID_PRICE).

Failure modes:
    - Rejections are returned as values inside ``ApplyOutcome``.
    - GenesisPlacementError is the only exception raised.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any

from inventory_kernel.domain.inventory import InventoryState
from inventory_kernel.domain.transactions import (
    CreateItem,
    Genesis,
    Move,
    QuantityPair,
    StockIn,
    StockOut,
    Transaction,
    with_snapshot,
)
from inventory_kernel.exceptions import GenesisPlacementError
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.state_machine")


class ApplyMode(str, Enum):
    """STRICT validates new proposals; REPLAY re-derives accepted history."""

    STRICT = "strict"
    REPLAY = "replay"


class RejectionReason(str, Enum):
    """Why a transaction was not applied."""

    DUPLICATE_SKU = "duplicate_sku"
    UNKNOWN_SKU = "unknown_sku"
    INSUFFICIENT_STOCK = "insufficient_stock"
    SAME_LOCATION = "same_location"
    INVALID_QUANTITY = "invalid_quantity"
    INVALID_PRICE = "invalid_price"


@dataclass(frozen=True)
class Rejection:
    """A recoverable, reportable refusal to apply a transaction."""

    reason: RejectionReason
    message: str
    sku: str | None = None
    details: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def code(self) -> str:
        return self.reason.value


@dataclass(frozen=True)
class ApplyOutcome:
    """
    Result of ``TransactionStateMachine.apply``.

    Exactly one of ``applied`` / ``rejection`` is set.  ``noop`` marks a
    REPLAY duplicate CreateItem that succeeded without touching state.
    """

    applied: Transaction | None = None
    rejection: Rejection | None = None
    noop: bool = False

    @property
    def is_success(self) -> bool:
        return self.rejection is None


def _reject(
    reason: RejectionReason,
    message: str,
    sku: str | None,
    **details: Any,
) -> ApplyOutcome:
    return ApplyOutcome(
        rejection=Rejection(
            reason=reason,
            message=message,
            sku=sku,
            details=MappingProxyType(details),
        )
    )


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class TransactionStateMachine:
    """
    Validates each transaction variant against current inventory and
    applies it.

    The machine is stateless; one instance can be shared freely.
    """

    def apply(
        self,
        transaction: Transaction,
        state: InventoryState,
        mode: ApplyMode = ApplyMode.STRICT,
    ) -> ApplyOutcome:
        """
        Validate ``transaction`` against ``state`` and apply it on success.

        Args:
            transaction: Draft (STRICT) or recorded (REPLAY) transaction.
            state: Inventory to validate against; mutated only on success.
            mode: STRICT or REPLAY.

        Returns:
            ApplyOutcome with the snapshot-recorded transaction or a
            Rejection.

        Raises:
            GenesisPlacementError: If ``transaction`` is a Genesis.
        """
        if isinstance(transaction, Genesis):
            raise GenesisPlacementError()

        if not _is_positive_int(transaction.quantity):
            return _reject(
                RejectionReason.INVALID_QUANTITY,
                f"Quantity must be a positive integer, got {transaction.quantity!r}.",
                transaction.sku,
                quantity=transaction.quantity,
            )

        if isinstance(transaction, CreateItem):
            return self._apply_create(transaction, state, mode)

        if transaction.sku not in state:
            return _reject(
                RejectionReason.UNKNOWN_SKU,
                f"Product {transaction.sku} not found.",
                transaction.sku,
            )

        if isinstance(transaction, StockIn):
            return self._apply_stock_in(transaction, state)
        if isinstance(transaction, StockOut):
            return self._apply_stock_out(transaction, state)
        if isinstance(transaction, Move):
            return self._apply_move(transaction, state)

        raise TypeError(f"Unsupported transaction type: {type(transaction).__name__}")

    def _apply_create(
        self,
        tx: CreateItem,
        state: InventoryState,
        mode: ApplyMode,
    ) -> ApplyOutcome:
        try:
            price = Decimal(tx.price)
        except (InvalidOperation, TypeError, ValueError):
            price = None
        if price is None or not price.is_finite() or price < 0:
            return _reject(
                RejectionReason.INVALID_PRICE,
                f"Price must be a non-negative amount, got {tx.price!r}.",
                tx.sku,
                price=str(tx.price),
            )

        if tx.sku in state:
            if mode is ApplyMode.REPLAY:
                logger.debug("replay_duplicate_create_ignored", extra={"sku": tx.sku})
                return ApplyOutcome(applied=tx, noop=True)
            return _reject(
                RejectionReason.DUPLICATE_SKU,
                f"Product SKU {tx.sku} already exists.",
                tx.sku,
            )

        state.add_product(tx.sku, tx.name, price, tx.category)
        before, after = state.adjust(tx.sku, tx.to_location, tx.quantity)
        return ApplyOutcome(applied=with_snapshot(tx, before, after))

    def _apply_stock_in(self, tx: StockIn, state: InventoryState) -> ApplyOutcome:
        before, after = state.adjust(tx.sku, tx.location, tx.quantity)
        return ApplyOutcome(applied=with_snapshot(tx, before, after))

    def _apply_stock_out(self, tx: StockOut, state: InventoryState) -> ApplyOutcome:
        available = state.quantity_at(tx.sku, tx.location)
        if available < tx.quantity:
            return _reject(
                RejectionReason.INSUFFICIENT_STOCK,
                f"Insufficient stock at {tx.location}. Only {available} available.",
                tx.sku,
                location=tx.location,
                available=available,
                requested=tx.quantity,
            )
        before, after = state.adjust(tx.sku, tx.location, -tx.quantity)
        return ApplyOutcome(applied=with_snapshot(tx, before, after))

    def _apply_move(self, tx: Move, state: InventoryState) -> ApplyOutcome:
        if tx.from_location == tx.to_location:
            return _reject(
                RejectionReason.SAME_LOCATION,
                "Cannot move item to its current location.",
                tx.sku,
                location=tx.from_location,
            )
        available = state.quantity_at(tx.sku, tx.from_location)
        if available < tx.quantity:
            return _reject(
                RejectionReason.INSUFFICIENT_STOCK,
                f"Insufficient stock at {tx.from_location}. Only {available} available.",
                tx.sku,
                location=tx.from_location,
                available=available,
                requested=tx.quantity,
            )
        from_before, from_after = state.adjust(tx.sku, tx.from_location, -tx.quantity)
        to_before, to_after = state.adjust(tx.sku, tx.to_location, tx.quantity)
        return ApplyOutcome(
            applied=with_snapshot(
                tx,
                QuantityPair(from_qty=from_before, to_qty=to_before),
                QuantityPair(from_qty=from_after, to_qty=to_after),
            )
        )
