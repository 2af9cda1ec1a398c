"""
ChainStore -- opaque blob persistence for the serialized chain.

Responsibility:
    Loads and saves the bytes produced by the chain codec.  Stores know
    nothing about blocks or hashes; they move one blob in and out.

Architecture position:
    Kernel > Services -- imperative shell.  Consumed by LedgerService.

Implementations:
    InMemoryChainStore  -- process-local, for tests and ephemeral ledgers.
    FileChainStore      -- one file, written atomically (temp file + rename).
    SqlChainStore       -- one ``chain_blobs`` row per chain key.

Failure modes:
    - ChainStoreError from ``load`` / ``save`` / ``clear`` when the backend
      is unreachable or the write fails.  Backend exceptions (OSError,
      SQLAlchemyError) never leak past this module.
"""

import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.engine import session_scope
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import ChainStoreError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.chain_blob import ChainBlob

logger = get_logger("services.chain_store")


class ChainStore(ABC):
    """
    Abstract blob store.

    Contract:
        ``load()`` returns the last saved bytes, or None if nothing was
        ever saved (or the store was cleared).  ``save()`` replaces the
        stored blob in full; a failed save leaves the previous blob intact.
    """

    @abstractmethod
    def load(self) -> bytes | None:
        """Return the persisted blob, or None if absent."""
        ...

    @abstractmethod
    def save(self, data: bytes) -> None:
        """Replace the persisted blob with ``data``."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove the persisted blob."""
        ...


class InMemoryChainStore(ChainStore):
    """Blob store backed by a bytes attribute."""

    def __init__(self, initial: bytes | None = None):
        self._data = initial
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> bytes | None:
        with self._lock:
            return self._data

    def save(self, data: bytes) -> None:
        with self._lock:
            self._data = bytes(data)
            self.save_count += 1

    def clear(self) -> None:
        with self._lock:
            self._data = None


class FileChainStore(ChainStore):
    """
    Blob store backed by a single file.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so a crash mid-write never leaves a partial
    blob behind.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def load(self) -> bytes | None:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("chain_store_load_failed", extra={"path": str(self.path)})
            raise ChainStoreError("load", str(exc)) from exc

    def save(self, data: bytes) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            logger.error("chain_store_save_failed", extra={"path": str(self.path)})
            raise ChainStoreError("save", str(exc)) from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise ChainStoreError("clear", str(exc)) from exc


class SqlChainStore(ChainStore):
    """
    Blob store backed by the ``chain_blobs`` table.

    Each call runs in its own ``session_scope`` so a save is committed
    before it returns.  Several ledgers can share one database by using
    distinct ``chain_key`` values.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        chain_key: str = "default",
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self.chain_key = chain_key
        self._clock = clock or SystemClock()

    def load(self) -> bytes | None:
        try:
            with session_scope(self._session_factory) as session:
                row = session.execute(
                    select(ChainBlob.payload).where(ChainBlob.chain_key == self.chain_key)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise ChainStoreError("load", str(exc)) from exc
        return None if row is None else bytes(row)

    def save(self, data: bytes) -> None:
        now: datetime = self._clock.now()
        try:
            with session_scope(self._session_factory) as session:
                blob = session.execute(
                    select(ChainBlob).where(ChainBlob.chain_key == self.chain_key)
                ).scalar_one_or_none()
                if blob is None:
                    session.add(
                        ChainBlob(
                            chain_key=self.chain_key,
                            payload=data,
                            payload_size=len(data),
                            updated_at=now,
                        )
                    )
                else:
                    blob.payload = data
                    blob.payload_size = len(data)
                    blob.updated_at = now
        except SQLAlchemyError as exc:
            raise ChainStoreError("save", str(exc)) from exc

        logger.debug(
            "chain_blob_saved",
            extra={"chain_key": self.chain_key, "payload_size": len(data)},
        )

    def clear(self) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.execute(
                    delete(ChainBlob).where(ChainBlob.chain_key == self.chain_key)
                )
        except SQLAlchemyError as exc:
            raise ChainStoreError("clear", str(exc)) from exc
