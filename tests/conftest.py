"""
Pytest fixtures for the inventory kernel test suite.

Provides:
- Structured logging capture
- Deterministic clocks and actors
- In-memory, file and SQLite-backed chain stores
- A ready-to-use LedgerService and draft factories

No external database is required: SQL tests run against in-memory SQLite.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from inventory_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.transactions import (
    Actor,
    CreateItem,
    Move,
    StockIn,
    StockOut,
)
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.services.chain_store import InMemoryChainStore, SqlChainStore
from inventory_kernel.services.ledger_service import LedgerService

FIXED_AT = datetime(2024, 1, 1, 9, 30, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.propose(...)
            logs = captured_logs()
            assert any(r["message"] == "block_appended" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock / actor fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def actor() -> Actor:
    return Actor(user_id="u-100", name="Dana Reyes", employee_id="E-7")


# =============================================================================
# Draft factories
# =============================================================================


@pytest.fixture
def make_create(actor):
    def _make(
        sku: str = "SKU-1",
        quantity: int = 10,
        location: str = "Warehouse",
        price: Decimal | str = Decimal("2.50"),
        name: str = "Widget",
        category: str = "Hardware",
    ) -> CreateItem:
        return CreateItem(
            sku=sku,
            name=name,
            quantity=quantity,
            to_location=location,
            price=Decimal(price),
            category=category,
            actor=actor,
            at=FIXED_AT,
        )

    return _make


@pytest.fixture
def make_stock_in(actor):
    def _make(sku: str = "SKU-1", quantity: int = 5, location: str = "Warehouse") -> StockIn:
        return StockIn(sku=sku, quantity=quantity, location=location, actor=actor, at=FIXED_AT)

    return _make


@pytest.fixture
def make_stock_out(actor):
    def _make(sku: str = "SKU-1", quantity: int = 5, location: str = "Warehouse") -> StockOut:
        return StockOut(sku=sku, quantity=quantity, location=location, actor=actor, at=FIXED_AT)

    return _make


@pytest.fixture
def make_move(actor):
    def _make(
        sku: str = "SKU-1",
        quantity: int = 4,
        from_location: str = "Warehouse",
        to_location: str = "Retailer",
    ) -> Move:
        return Move(
            sku=sku,
            quantity=quantity,
            from_location=from_location,
            to_location=to_location,
            actor=actor,
            at=FIXED_AT,
        )

    return _make


# =============================================================================
# Store / ledger fixtures
# =============================================================================


@pytest.fixture
def store() -> InMemoryChainStore:
    return InMemoryChainStore()


@pytest.fixture
def ledger(store, deterministic_clock) -> LedgerService:
    """A loaded ledger holding only the genesis block."""
    service = LedgerService(store, clock=deterministic_clock)
    service.load()
    return service


@pytest.fixture
def sqlite_session_factory():
    """In-memory SQLite engine with the kernel tables created."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def sql_store(sqlite_session_factory, deterministic_clock) -> SqlChainStore:
    return SqlChainStore(sqlite_session_factory, chain_key="test", clock=deterministic_clock)
