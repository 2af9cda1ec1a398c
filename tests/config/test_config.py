"""Tests for inventory_config: loading, validation, checksum and bridges."""

import logging
from pathlib import Path

import pytest
import yaml

from inventory_config import DEFAULT_CONFIG_PATH, LedgerConfig, get_active_config
from inventory_config.bridges import (
    build_chain_store,
    build_inventory_selector,
    logging_level,
)
from inventory_config.loader import compute_checksum, load_yaml_file, parse_config
from inventory_kernel.services.chain_store import SqlChainStore

VALID = {
    "ledger": {"chain_key": "store-7", "database_url": "sqlite://"},
    "inventory": {
        "locations": ["Dock", "Shelf"],
        "default_category": "Misc",
        "low_stock_threshold": 5,
    },
    "logging": {"level": "debug"},
}


def _write(tmp_path: Path, data) -> Path:
    path = tmp_path / "ledger.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_bundled_defaults(self):
        config = get_active_config()

        assert config.chain_key == "default"
        assert config.locations == ("Supplier", "Warehouse", "Retailer")
        assert config.default_category == "Uncategorized"
        assert config.low_stock_threshold == 20
        assert config.log_level == "INFO"
        assert len(config.checksum) == 64

    def test_defaults_file_ships_with_package(self):
        assert DEFAULT_CONFIG_PATH.exists()

    def test_trace_logged(self, captured_logs):
        get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["chain_key"] == "default"
        assert traces[0]["locations"] == ["Supplier", "Warehouse", "Retailer"]


class TestParse:
    def test_custom_file(self, tmp_path):
        config = get_active_config(_write(tmp_path, VALID))

        assert config == LedgerConfig(
            chain_key="store-7",
            database_url="sqlite://",
            locations=("Dock", "Shelf"),
            default_category="Misc",
            low_stock_threshold=5,
            log_level="DEBUG",
            checksum=compute_checksum(VALID),
        )

    def test_optional_sections_default(self):
        config = parse_config(
            {
                "ledger": {"chain_key": "k", "database_url": "sqlite://"},
                "inventory": {"locations": ["A"]},
            }
        )
        assert config.low_stock_threshold == 20
        assert config.log_level == "INFO"

    def test_missing_required_key(self):
        with pytest.raises(KeyError):
            parse_config({"ledger": {"chain_key": "k"}, "inventory": {"locations": ["A"]}})

    @pytest.mark.parametrize(
        "inventory",
        [
            {"locations": []},
            {"locations": "Warehouse"},
            {"locations": ["A", "A"]},
            {"locations": ["A"], "low_stock_threshold": -1},
            {"locations": ["A"], "low_stock_threshold": "twenty"},
        ],
    )
    def test_invalid_inventory_section(self, inventory):
        data = {"ledger": VALID["ledger"], "inventory": inventory}
        with pytest.raises(ValueError):
            parse_config(data)

    def test_invalid_log_level(self):
        data = dict(VALID, logging={"level": "LOUD"})
        with pytest.raises(ValueError):
            parse_config(data)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_empty_yaml_loads_as_empty_dict(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}


class TestChecksum:
    def test_deterministic_and_order_independent(self):
        reordered = {"logging": VALID["logging"], "inventory": VALID["inventory"], "ledger": VALID["ledger"]}
        assert compute_checksum(VALID) == compute_checksum(reordered)

    def test_changes_with_content(self):
        changed = dict(VALID, ledger={"chain_key": "other", "database_url": "sqlite://"})
        assert compute_checksum(VALID) != compute_checksum(changed)


class TestBridges:
    def test_selector_uses_config(self, ledger):
        config = parse_config(VALID)
        selector = build_inventory_selector(config, ledger.chain, ledger.inventory)

        assert selector.locations == ("Dock", "Shelf")
        assert selector.low_stock_threshold == 5

    def test_chain_store_uses_chain_key(self, sqlite_session_factory):
        store = build_chain_store(parse_config(VALID), sqlite_session_factory)
        assert isinstance(store, SqlChainStore)
        assert store.chain_key == "store-7"

    def test_logging_level(self):
        assert logging_level(parse_config(VALID)) == logging.DEBUG

    def test_database_url_override(self):
        config = parse_config(VALID).with_database_url("sqlite:///other.db")
        assert config.database_url == "sqlite:///other.db"
        assert config.chain_key == "store-7"
