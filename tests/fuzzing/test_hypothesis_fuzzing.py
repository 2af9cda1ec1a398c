"""
Hypothesis-based property tests.

Properties checked:
- Canonical encoding ignores mapping insertion order at every depth.
- Any sequence of proposals leaves every quantity non-negative, and a
  rejected proposal changes nothing.
- Replaying the persisted chain reproduces the live inventory.
- Editing any recorded quantity is caught at exactly that block.
"""

import dataclasses
import random
from datetime import datetime, timezone
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from inventory_kernel.domain.chain_validator import ChainFailure, verify_chain
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.codec import decode_chain
from inventory_kernel.domain.replay import rebuild_inventory
from inventory_kernel.domain.transactions import (
    Actor,
    CreateItem,
    Move,
    StockIn,
    StockOut,
)
from inventory_kernel.services.chain_store import InMemoryChainStore
from inventory_kernel.services.ledger_service import LedgerService
from inventory_kernel.utils.hashing import canonical_bytes

AT = datetime(2024, 1, 1, tzinfo=timezone.utc)
ACTOR = Actor(user_id="fuzz", name="Fuzzer")
SKUS = ["A", "B", "C"]
LOCATIONS = ["Supplier", "Warehouse", "Retailer"]

json_scalars = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(min_value=-(10**12), max_value=10**12),
    st.text(max_size=12),
    st.decimals(allow_nan=False, allow_infinity=False, places=4),
)
json_values = st.recursive(
    json_scalars,
    lambda children: st.one_of(
        st.lists(children, max_size=4),
        st.dictionaries(st.text(max_size=6), children, max_size=4),
    ),
    max_leaves=20,
)


def _shuffled(value, rng: random.Random):
    """Same data, different dict insertion order at every level."""
    if isinstance(value, dict):
        items = list(value.items())
        rng.shuffle(items)
        return {k: _shuffled(v, rng) for k, v in items}
    if isinstance(value, list):
        return [_shuffled(v, rng) for v in value]
    return value


quantities = st.integers(min_value=-2, max_value=40)
drafts = st.one_of(
    st.builds(
        lambda sku, qty, loc: CreateItem(
            sku=sku, name=f"Item {sku}", quantity=qty, to_location=loc,
            price=Decimal("1.50"), actor=ACTOR, at=AT,
        ),
        st.sampled_from(SKUS), quantities, st.sampled_from(LOCATIONS),
    ),
    st.builds(
        lambda sku, qty, loc: StockIn(sku=sku, quantity=qty, location=loc, actor=ACTOR, at=AT),
        st.sampled_from(SKUS), quantities, st.sampled_from(LOCATIONS),
    ),
    st.builds(
        lambda sku, qty, loc: StockOut(sku=sku, quantity=qty, location=loc, actor=ACTOR, at=AT),
        st.sampled_from(SKUS), quantities, st.sampled_from(LOCATIONS),
    ),
    st.builds(
        lambda sku, qty, src, dst: Move(
            sku=sku, quantity=qty, from_location=src, to_location=dst, actor=ACTOR, at=AT,
        ),
        st.sampled_from(SKUS), quantities, st.sampled_from(LOCATIONS), st.sampled_from(LOCATIONS),
    ),
)


def _fresh_ledger() -> tuple[LedgerService, InMemoryChainStore]:
    store = InMemoryChainStore()
    ledger = LedgerService(store, clock=DeterministicClock())
    ledger.load()
    return ledger, store


class TestCanonicalEncoding:
    @given(value=json_values, seed=st.integers(min_value=0, max_value=2**16))
    @settings(max_examples=200)
    def test_insertion_order_never_matters(self, value, seed):
        assert canonical_bytes(value) == canonical_bytes(_shuffled(value, random.Random(seed)))


class TestLedgerProperties:
    @given(sequence=st.lists(drafts, max_size=25))
    @settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_quantities_never_negative(self, sequence):
        ledger, _ = _fresh_ledger()

        for draft in sequence:
            before = ledger.inventory
            result = ledger.propose(draft)
            if not result.is_success:
                assert ledger.inventory == before

        for _, record in ledger.inventory.items():
            assert all(quantity >= 0 for quantity in record.locations.values())

    @given(sequence=st.lists(drafts, max_size=25))
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_persisted_chain_replays_to_live_state(self, sequence):
        ledger, store = _fresh_ledger()
        for draft in sequence:
            ledger.propose(draft)

        blocks = decode_chain(store.load())

        assert verify_chain(blocks).is_valid
        assert rebuild_inventory(blocks) == ledger.inventory

    @given(
        sequence=st.lists(drafts, min_size=1, max_size=15),
        bump=st.integers(min_value=1, max_value=5),
        data=st.data(),
    )
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_quantity_edit_detected_at_that_block(self, sequence, bump, data):
        ledger, _ = _fresh_ledger()
        for draft in sequence:
            ledger.propose(draft)
        if ledger.height < 2:
            return

        chain = list(ledger.chain)
        position = data.draw(st.integers(min_value=1, max_value=len(chain) - 1))
        block = chain[position]
        chain[position] = dataclasses.replace(
            block,
            transaction=dataclasses.replace(
                block.transaction, quantity=block.transaction.quantity + bump
            ),
        )

        result = verify_chain(chain)

        assert result.failed_index == position
        assert result.failure is ChainFailure.HASH_MISMATCH
