"""
Transactions -- the tagged union of inventory mutations.

Responsibility:
    Defines the five transaction variants that can appear in a block
    (Genesis, CreateItem, StockIn, StockOut, Move), the provenance types
    they carry (Actor, QuantityPair), and the conversion to and from the
    persisted payload shape.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Each variant is a frozen dataclass with a class-level ``tx_type``
      discriminator; a wrong-shaped payload cannot be constructed.
    - Non-genesis payloads carry ``schemaVersion``.  Only version 1 (the
      rich CreateItem with name, price and category) is understood.
    - ``before_quantity`` / ``after_quantity`` are None on a draft and are
      filled in by the state machine at apply time.  Once recorded they
      are part of the hashed payload.

Failure modes:
    - ValueError from ``transaction_from_payload`` on a missing field,
      wrong field type, unknown ``txType`` or unsupported schema version.

Payload shape (one canonical schema; keys are camelCase on the wire):

    {"txType": "MOVE", "schemaVersion": 1, "sku": "SKU-1", "quantity": 4,
     "fromLocation": "Warehouse", "toLocation": "Retailer",
     "beforeQuantity": {"from": 10, "to": 0},
     "afterQuantity": {"from": 6, "to": 4},
     "actor": {"userId": "u-1", "employeeId": "E-7", "name": "Dana"},
     "at": "2024-01-01T12:00:00.000000+00:00"}
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar

from inventory_kernel.utils.hashing import format_decimal, format_timestamp, parse_timestamp

SCHEMA_VERSION = 1
DEFAULT_CATEGORY = "Uncategorized"


class TransactionType(str, Enum):
    """Discriminator values used in the ``txType`` payload field."""

    GENESIS = "GENESIS"
    CREATE_ITEM = "CREATE_ITEM"
    STOCK_IN = "STOCK_IN"
    STOCK_OUT = "STOCK_OUT"
    MOVE = "MOVE"


# ---------------------------------------------------------------------------
# Payload field helpers
# ---------------------------------------------------------------------------


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"Missing field {key!r}")
    return data[key]


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = _require(data, key)
    if not isinstance(value, str):
        raise ValueError(f"Field {key!r} must be a string, got {type(value).__name__}")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"Field {key!r} must be a string, got {type(value).__name__}")
    return value


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Field {key!r} must be an integer, got {type(value).__name__}")
    return value


def _require_int(data: Mapping[str, Any], key: str) -> int:
    return _as_int(_require(data, key), key)


def _optional_int(data: Mapping[str, Any], key: str) -> int | None:
    value = data.get(key)
    return None if value is None else _as_int(value, key)


def _require_decimal(data: Mapping[str, Any], key: str) -> Decimal:
    value = _require(data, key)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"Field {key!r} must be a decimal string, got {type(value).__name__}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Field {key!r} is not a valid decimal: {value!r}") from exc


def _require_timestamp(data: Mapping[str, Any], key: str) -> datetime:
    return parse_timestamp(_require_str(data, key))


def _check_schema_version(data: Mapping[str, Any]) -> int:
    version = _require_int(data, "schemaVersion")
    if version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported transaction schema version {version}")
    return version


# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Actor:
    """Who performed a transaction: identity plus display name."""

    user_id: str
    name: str
    employee_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "employeeId": self.employee_id,
            "name": self.name,
        }

    @classmethod
    def from_payload(cls, data: Any) -> Actor:
        if not isinstance(data, Mapping):
            raise ValueError("Field 'actor' must be an object")
        return cls(
            user_id=_require_str(data, "userId"),
            name=_require_str(data, "name"),
            employee_id=_optional_str(data, "employeeId"),
        )


@dataclass(frozen=True)
class QuantityPair:
    """Quantities at the source and destination of a Move."""

    from_qty: int
    to_qty: int

    def to_payload(self) -> dict[str, int]:
        return {"from": self.from_qty, "to": self.to_qty}

    @classmethod
    def from_payload(cls, data: Any, key: str) -> QuantityPair:
        if not isinstance(data, Mapping):
            raise ValueError(f"Field {key!r} must be a from/to object")
        return cls(
            from_qty=_require_int(data, "from"),
            to_qty=_require_int(data, "to"),
        )


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Genesis:
    """Anchor transaction of block 0.  Carries no payload."""

    tx_type: ClassVar[TransactionType] = TransactionType.GENESIS
    sku: ClassVar[str | None] = None

    def to_payload(self) -> dict[str, Any]:
        return {"txType": self.tx_type.value}

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> Genesis:
        return cls()


@dataclass(frozen=True)
class CreateItem:
    """Establish a new product with its opening stock at ``to_location``."""

    tx_type: ClassVar[TransactionType] = TransactionType.CREATE_ITEM

    sku: str
    name: str
    quantity: int
    to_location: str
    price: Decimal
    actor: Actor
    at: datetime
    category: str = DEFAULT_CATEGORY
    before_quantity: int | None = None
    after_quantity: int | None = None
    schema_version: int = SCHEMA_VERSION

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "txType": self.tx_type.value,
            "schemaVersion": self.schema_version,
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "toLocation": self.to_location,
            "price": format_decimal(Decimal(self.price)),
            "category": self.category,
            "actor": self.actor.to_payload(),
            "at": format_timestamp(self.at),
        }
        if self.before_quantity is not None:
            payload["beforeQuantity"] = self.before_quantity
        if self.after_quantity is not None:
            payload["afterQuantity"] = self.after_quantity
        return payload

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> CreateItem:
        return cls(
            schema_version=_check_schema_version(data),
            sku=_require_str(data, "sku"),
            name=_require_str(data, "name"),
            quantity=_require_int(data, "quantity"),
            to_location=_require_str(data, "toLocation"),
            price=_require_decimal(data, "price"),
            category=_require_str(data, "category"),
            actor=Actor.from_payload(_require(data, "actor")),
            at=_require_timestamp(data, "at"),
            before_quantity=_optional_int(data, "beforeQuantity"),
            after_quantity=_optional_int(data, "afterQuantity"),
        )


@dataclass(frozen=True)
class StockIn:
    """Receive ``quantity`` units of an existing product at ``location``."""

    tx_type: ClassVar[TransactionType] = TransactionType.STOCK_IN

    sku: str
    quantity: int
    location: str
    actor: Actor
    at: datetime
    before_quantity: int | None = None
    after_quantity: int | None = None
    schema_version: int = SCHEMA_VERSION

    def to_payload(self) -> dict[str, Any]:
        return _location_payload(self)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> StockIn:
        return cls(**_location_fields(data))


@dataclass(frozen=True)
class StockOut:
    """Issue ``quantity`` units of an existing product from ``location``."""

    tx_type: ClassVar[TransactionType] = TransactionType.STOCK_OUT

    sku: str
    quantity: int
    location: str
    actor: Actor
    at: datetime
    before_quantity: int | None = None
    after_quantity: int | None = None
    schema_version: int = SCHEMA_VERSION

    def to_payload(self) -> dict[str, Any]:
        return _location_payload(self)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> StockOut:
        return cls(**_location_fields(data))


@dataclass(frozen=True)
class Move:
    """Transfer ``quantity`` units of one product between two locations."""

    tx_type: ClassVar[TransactionType] = TransactionType.MOVE

    sku: str
    quantity: int
    from_location: str
    to_location: str
    actor: Actor
    at: datetime
    before_quantity: QuantityPair | None = None
    after_quantity: QuantityPair | None = None
    schema_version: int = SCHEMA_VERSION

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "txType": self.tx_type.value,
            "schemaVersion": self.schema_version,
            "sku": self.sku,
            "quantity": self.quantity,
            "fromLocation": self.from_location,
            "toLocation": self.to_location,
            "actor": self.actor.to_payload(),
            "at": format_timestamp(self.at),
        }
        if self.before_quantity is not None:
            payload["beforeQuantity"] = self.before_quantity.to_payload()
        if self.after_quantity is not None:
            payload["afterQuantity"] = self.after_quantity.to_payload()
        return payload

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> Move:
        before = data.get("beforeQuantity")
        after = data.get("afterQuantity")
        return cls(
            schema_version=_check_schema_version(data),
            sku=_require_str(data, "sku"),
            quantity=_require_int(data, "quantity"),
            from_location=_require_str(data, "fromLocation"),
            to_location=_require_str(data, "toLocation"),
            actor=Actor.from_payload(_require(data, "actor")),
            at=_require_timestamp(data, "at"),
            before_quantity=(
                None if before is None else QuantityPair.from_payload(before, "beforeQuantity")
            ),
            after_quantity=(
                None if after is None else QuantityPair.from_payload(after, "afterQuantity")
            ),
        )


Transaction = Genesis | CreateItem | StockIn | StockOut | Move


def _location_payload(tx: StockIn | StockOut) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "txType": tx.tx_type.value,
        "schemaVersion": tx.schema_version,
        "sku": tx.sku,
        "quantity": tx.quantity,
        "location": tx.location,
        "actor": tx.actor.to_payload(),
        "at": format_timestamp(tx.at),
    }
    if tx.before_quantity is not None:
        payload["beforeQuantity"] = tx.before_quantity
    if tx.after_quantity is not None:
        payload["afterQuantity"] = tx.after_quantity
    return payload


def _location_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "schema_version": _check_schema_version(data),
        "sku": _require_str(data, "sku"),
        "quantity": _require_int(data, "quantity"),
        "location": _require_str(data, "location"),
        "actor": Actor.from_payload(_require(data, "actor")),
        "at": _require_timestamp(data, "at"),
        "before_quantity": _optional_int(data, "beforeQuantity"),
        "after_quantity": _optional_int(data, "afterQuantity"),
    }


_VARIANTS: dict[TransactionType, type] = {
    TransactionType.GENESIS: Genesis,
    TransactionType.CREATE_ITEM: CreateItem,
    TransactionType.STOCK_IN: StockIn,
    TransactionType.STOCK_OUT: StockOut,
    TransactionType.MOVE: Move,
}


def transaction_from_payload(data: Any) -> Transaction:
    """
    Rebuild a typed transaction from its persisted payload.

    Raises:
        ValueError: If the payload is not a mapping, has an unknown
            ``txType``, or any variant field is missing or mistyped.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Transaction payload must be an object")
    try:
        tx_type = TransactionType(_require_str(data, "txType"))
    except ValueError as exc:
        raise ValueError(f"Unknown transaction type: {data.get('txType')!r}") from exc
    return _VARIANTS[tx_type].from_payload(data)


def with_snapshot(
    transaction: CreateItem | StockIn | StockOut | Move,
    before: int | QuantityPair,
    after: int | QuantityPair,
) -> CreateItem | StockIn | StockOut | Move:
    """Return a copy of ``transaction`` with its before/after snapshot recorded."""
    return dataclasses.replace(
        transaction, before_quantity=before, after_quantity=after
    )
