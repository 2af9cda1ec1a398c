"""
LedgerConfig schema.

The frozen runtime view of a ledger configuration file.  YAML documents are
parsed into this type by the loader; nothing else in the system reads
configuration files.
"""

from __future__ import annotations

from dataclasses import dataclass

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger storage, location list and reporting settings."""

    chain_key: str
    database_url: str
    locations: tuple[str, ...]
    default_category: str = "Uncategorized"
    low_stock_threshold: int = 20
    log_level: str = "INFO"
    checksum: str = ""

    def with_database_url(self, database_url: str) -> LedgerConfig:
        """Copy with a different database URL (command-line override)."""
        return LedgerConfig(
            chain_key=self.chain_key,
            database_url=database_url,
            locations=self.locations,
            default_category=self.default_category,
            low_stock_threshold=self.low_stock_threshold,
            log_level=self.log_level,
            checksum=self.checksum,
        )
