"""
Module: inventory_kernel.models.chain_blob
Responsibility: ORM persistence for the serialized ledger chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

The whole chain is stored as one opaque blob per ``chain_key``.  The row is
rewritten on every successful append; the blob's own hash links carry the
tamper evidence, so the table does not try to be append-only.

Failure modes:
    - IntegrityError if two rows are inserted for the same chain_key.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class ChainBlob(Base):
    """
    One persisted chain.

    ``payload`` is the codec output (canonical JSON bytes).  ``payload_size``
    is kept for diagnostics only and is never trusted on load.
    """

    __tablename__ = "chain_blobs"

    chain_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    payload: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    payload_size: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<ChainBlob {self.chain_key} ({self.payload_size} bytes)>"
