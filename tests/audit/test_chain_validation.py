"""
Chain validation and tamper detection.

Any change to a recorded block must be detectable: editing its content
breaks its own hash, and recomputing the hash to hide the edit breaks the
link from the next block.
"""

import dataclasses
import json
from decimal import Decimal

import pytest

from inventory_kernel.domain.block import create_block, create_genesis_block
from inventory_kernel.domain.chain_validator import (
    ChainFailure,
    is_valid,
    verify_chain,
)
from inventory_kernel.domain.codec import decode_chain
from inventory_kernel.domain.transactions import Actor
from inventory_kernel.exceptions import ChainIntegrityError
from inventory_kernel.services.chain_store import InMemoryChainStore
from inventory_kernel.services.ledger_service import LedgerService


@pytest.fixture
def five_block_chain(ledger, make_create, make_stock_in, make_move, make_stock_out):
    """Genesis plus four accepted transactions."""
    for draft in (make_create(), make_stock_in(), make_move(), make_stock_out(quantity=2)):
        assert ledger.propose(draft).is_success
    assert ledger.height == 5
    return list(ledger.chain)


def _retamper(block, **changes):
    """Replace transaction fields but keep the stored hash."""
    return dataclasses.replace(
        block, transaction=dataclasses.replace(block.transaction, **changes)
    )


class TestValidChains:
    def test_empty_chain_is_valid(self):
        result = verify_chain([])
        assert result.is_valid
        assert result.block_count == 0

    def test_genesis_only_is_valid(self, deterministic_clock):
        assert is_valid([create_genesis_block(deterministic_clock)])

    def test_proposed_chain_is_valid(self, five_block_chain):
        result = verify_chain(five_block_chain)
        assert result.is_valid
        assert result.failed_index is None
        assert result.message == "Chain of 5 block(s) is valid"


class TestScenarioD:
    def test_overwritten_hash_detected_at_that_block(self, five_block_chain):
        chain = list(five_block_chain)
        chain[3] = dataclasses.replace(chain[3], hash="f" * 64)

        result = verify_chain(chain)

        # Block 4 still points at the untouched hash, but block 3 is checked first.
        assert not result.is_valid
        assert result.failed_index == 3
        assert result.failure is ChainFailure.HASH_MISMATCH
        assert result.expected == five_block_chain[3].hash
        assert result.actual == "f" * 64

    def test_broken_link_detected_at_next_block(self, five_block_chain):
        chain = list(five_block_chain)
        chain[4] = dataclasses.replace(chain[4], previous_hash="0" * 64)

        result = verify_chain(chain)

        assert result.failed_index == 4
        assert result.failure is ChainFailure.PREVIOUS_HASH_MISMATCH
        assert result.expected == five_block_chain[3].hash
        assert result.actual == "0" * 64


class TestFieldTampering:
    @pytest.mark.parametrize(
        "position,changes",
        [
            (1, {"quantity": 1000}),
            (1, {"price": Decimal("0.01")}),
            (1, {"name": "Gadget"}),
            (2, {"location": "Retailer"}),
            (2, {"after_quantity": 99}),
            (3, {"to_location": "Supplier"}),
            (3, {"actor": Actor(user_id="intruder", name="Mallory")}),
            (4, {"sku": "SKU-9"}),
        ],
    )
    def test_content_edit_fails_at_that_index(self, five_block_chain, position, changes):
        chain = list(five_block_chain)
        chain[position] = _retamper(chain[position], **changes)

        result = verify_chain(chain)

        assert result.failed_index == position
        assert result.failure is ChainFailure.HASH_MISMATCH

    def test_rehashed_edit_breaks_following_link(self, five_block_chain):
        chain = list(five_block_chain)
        edited = _retamper(chain[2], quantity=500)
        chain[2] = dataclasses.replace(edited, hash=edited.compute_hash())

        result = verify_chain(chain)

        assert result.failed_index == 3
        assert result.failure is ChainFailure.PREVIOUS_HASH_MISMATCH

    def test_reordered_blocks_fail_index_check(self, five_block_chain):
        chain = list(five_block_chain)
        chain[2], chain[3] = chain[3], chain[2]

        result = verify_chain(chain)

        assert result.failed_index == 2
        assert result.failure is ChainFailure.INDEX_MISMATCH

    def test_timestamp_edit_detected(self, five_block_chain):
        chain = list(five_block_chain)
        block = chain[1]
        chain[1] = dataclasses.replace(
            block, timestamp=block.timestamp.replace(year=2020)
        )
        assert verify_chain(chain).failed_index == 1

    def test_validator_never_mutates(self, five_block_chain):
        chain = list(five_block_chain)
        chain[3] = dataclasses.replace(chain[3], hash="f" * 64)
        snapshot = list(chain)

        verify_chain(chain)

        assert chain == snapshot


class TestTamperReporting:
    def test_failure_logged_critical(self, five_block_chain, captured_logs):
        chain = list(five_block_chain)
        chain[3] = dataclasses.replace(chain[3], hash="f" * 64)

        verify_chain(chain)

        records = [r for r in captured_logs() if r["message"] == "chain_tampered"]
        assert len(records) == 1
        assert records[0]["level"] == "CRITICAL"
        assert records[0]["failed_index"] == 3
        assert records[0]["failure"] == "hash_mismatch"

    def test_service_verify_and_assert_valid(self, ledger, five_block_chain):
        chain = list(five_block_chain)
        chain[3] = dataclasses.replace(chain[3], hash="f" * 64)
        ledger.replace_chain(chain)

        assert not ledger.is_valid()
        with pytest.raises(ChainIntegrityError) as exc_info:
            ledger.assert_valid()
        assert exc_info.value.failed_index == 3
        assert exc_info.value.failure == "hash_mismatch"


def _edit_stored_transaction(blob: bytes, position: int, edit) -> bytes:
    """Apply ``edit`` to one stored transaction mapping, leaving hashes alone."""
    document = json.loads(blob)
    edit(document["blocks"][position]["transaction"])
    return json.dumps(document).encode("utf-8")


class TestStoredPayload:
    def test_injected_keys_detected_at_that_block(self, five_block_chain, store):
        def inject(transaction):
            transaction["memo"] = "backdated"
            transaction["actor"]["role"] = "admin"

        blocks = decode_chain(_edit_stored_transaction(store.load(), 2, inject))

        result = verify_chain(blocks)

        assert not result.is_valid
        assert result.failed_index == 2
        assert result.failure is ChainFailure.HASH_MISMATCH

    def test_injected_pair_key_detected(self, five_block_chain, store):
        def inject(transaction):
            transaction["afterQuantity"]["via"] = "Dock"

        blocks = decode_chain(_edit_stored_transaction(store.load(), 3, inject))

        assert verify_chain(blocks).failed_index == 3

    def test_decoded_chain_verifies(self, five_block_chain, store):
        assert verify_chain(decode_chain(store.load())).is_valid

    def test_append_keeps_stored_transaction_bytes(
        self, five_block_chain, store, deterministic_clock, make_stock_in
    ):
        tampered = _edit_stored_transaction(
            store.load(), 2, lambda transaction: transaction.update(memo="backdated")
        )
        tampered_store = InMemoryChainStore(tampered)
        reopened = LedgerService(tampered_store, clock=deterministic_clock)
        reopened.load()

        assert reopened.propose(make_stock_in()).is_success

        document = json.loads(tampered_store.load())
        assert document["blocks"][2]["transaction"]["memo"] == "backdated"
        assert reopened.verify().failed_index == 2


class TestGenesisAnchor:
    def test_non_genesis_head_fails_at_zero(self, five_block_chain):
        result = verify_chain(five_block_chain[1:])

        assert result.failed_index == 0
        assert result.failure is ChainFailure.INDEX_MISMATCH

    def test_head_with_wrong_transaction_fails_at_zero(
        self, deterministic_clock, make_create
    ):
        head = create_block(0, make_create(), "0", deterministic_clock)

        result = verify_chain([head])

        assert result.failed_index == 0
        assert result.failure is ChainFailure.GENESIS_MISMATCH
        assert result.expected == "GENESIS"
        assert result.actual == "CREATE_ITEM"

    def test_genesis_with_wrong_previous_hash(self, deterministic_clock):
        genesis = create_genesis_block(deterministic_clock)
        moved = dataclasses.replace(genesis, previous_hash="a" * 64)

        result = verify_chain([moved])

        assert result.failed_index == 0
        assert result.failure is ChainFailure.PREVIOUS_HASH_MISMATCH

    def test_replace_chain_refuses_unanchored_chain(
        self, ledger, store, deterministic_clock, make_create
    ):
        saves = store.save_count
        head = create_block(0, make_create(), "0", deterministic_clock)

        with pytest.raises(ChainIntegrityError) as exc_info:
            ledger.replace_chain([head])

        assert exc_info.value.failed_index == 0
        assert exc_info.value.failure == "genesis_mismatch"
        assert store.save_count == saves
        assert ledger.height == 1
