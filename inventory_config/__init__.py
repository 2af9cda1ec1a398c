"""
inventory_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  Returns a frozen ``LedgerConfig``.

Architecture position:
    Configuration.  This package sits above ``inventory_kernel``; the
    kernel MUST NEVER import from ``inventory_config``.  ``bridges``
    translates the config into kernel-compatible inputs.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``KeyError`` / ``ValueError`` -- schema failures in the YAML.

Every successful ``get_active_config()`` call emits a
``LEDGER_CONFIG_TRACE`` log entry with the chain key, locations and
checksum, tying the ledger's behaviour to the exact configuration file.
"""

from __future__ import annotations

import logging
from pathlib import Path

from inventory_config.loader import load_yaml_file, parse_config
from inventory_config.schema import LedgerConfig

_logger = logging.getLogger("inventory_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the bundled
            ``defaults.yaml``.

    Returns:
        The parsed, frozen LedgerConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_path": str(path),
            "chain_key": config.chain_key,
            "locations": list(config.locations),
            "low_stock_threshold": config.low_stock_threshold,
            "checksum": config.checksum,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "get_active_config",
]
