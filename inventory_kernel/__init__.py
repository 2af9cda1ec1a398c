"""
Inventory Kernel - hash-chained inventory ledger

A single-writer, append-only inventory ledger with:
- Tamper-evident block chain (SHA-256 over canonical JSON)
- Typed inventory transactions (create, stock-in, stock-out, move)
- Deterministic state reconstruction by replay
- Pluggable blob persistence (memory, file, SQL)
"""

__version__ = "0.1.0"
