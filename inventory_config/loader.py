"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML ledger configuration file and parses it into a frozen
``LedgerConfig``.  The single public entry point for runtime config is
``inventory_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range or mistyped values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import LOG_LEVELS, LedgerConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_locations(value: Any) -> tuple[str, ...]:
    """Parse the location list; it must be non-empty and free of duplicates."""
    if not isinstance(value, list) or not value:
        raise ValueError("inventory.locations must be a non-empty list")
    locations = tuple(str(item) for item in value)
    if len(set(locations)) != len(locations):
        raise ValueError(f"inventory.locations contains duplicates: {list(locations)}")
    return locations


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a ``LedgerConfig`` from a loaded YAML document.

    ``ledger.chain_key``, ``ledger.database_url`` and
    ``inventory.locations`` are required.  Everything else has a default.

    Raises:
        KeyError: if a required key is missing.
        ValueError: if a value is out of range.
    """
    ledger = data["ledger"]
    inventory = data["inventory"]
    logging_section = data.get("logging", {})

    threshold = inventory.get("low_stock_threshold", 20)
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        raise ValueError(
            f"inventory.low_stock_threshold must be a non-negative integer, got {threshold!r}"
        )

    level = str(logging_section.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {LOG_LEVELS}, got {level!r}")

    return LedgerConfig(
        chain_key=str(ledger["chain_key"]),
        database_url=str(ledger["database_url"]),
        locations=parse_locations(inventory["locations"]),
        default_category=str(inventory.get("default_category", "Uncategorized")),
        low_stock_threshold=threshold,
        log_level=level,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
