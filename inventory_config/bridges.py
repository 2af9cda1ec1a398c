"""
Bridges from ``LedgerConfig`` to kernel inputs.

The kernel never imports ``inventory_config``; these helpers translate the
configuration into the plain arguments kernel classes accept.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session, sessionmaker

from inventory_config.schema import LedgerConfig
from inventory_kernel.domain.block import Block
from inventory_kernel.domain.inventory import InventoryState
from inventory_kernel.selectors.inventory_selector import InventorySelector
from inventory_kernel.services.chain_store import SqlChainStore


def build_inventory_selector(
    config: LedgerConfig,
    blocks: Sequence[Block],
    state: InventoryState | None = None,
) -> InventorySelector:
    """Selector using the configured locations and low-stock threshold."""
    return InventorySelector(
        blocks,
        state,
        locations=config.locations,
        low_stock_threshold=config.low_stock_threshold,
    )


def build_chain_store(
    config: LedgerConfig,
    session_factory: sessionmaker[Session],
) -> SqlChainStore:
    """SQL blob store for the configured chain key."""
    return SqlChainStore(session_factory, chain_key=config.chain_key)


def logging_level(config: LedgerConfig) -> int:
    """Numeric stdlib logging level for ``config.log_level``."""
    return logging.getLevelName(config.log_level)
