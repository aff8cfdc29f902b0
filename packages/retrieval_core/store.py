from __future__ import annotations

import logging
import os
import tempfile
import threading
from enum import Enum
from pathlib import Path
from typing import Dict, Sequence

from .errors import DimensionMismatchError, StoreCorruption, StoreTimeoutError
from .models import Segment, Store

_log = logging.getLogger(__name__)

# One lock per store file, shared by every VectorStore instance in the process.
_PATH_LOCKS: Dict[str, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _PATH_LOCKS[key] = lock
        return lock


class StoreMode(str, Enum):
    """Durability of a VectorStore."""

    PERSISTENT = "persistent"
    EPHEMERAL = "ephemeral"


def _check_dimensions(vectors: Sequence[Sequence[float]], expected: int | None = None) -> None:
    for idx, vec in enumerate(vectors):
        if expected is None:
            expected = len(vec)
        elif len(vec) != expected:
            raise DimensionMismatchError(
                f"Vector {idx} has dimension {len(vec)}, store expects {expected}"
            )


class VectorStore:
    """
    Durable collection of (segment, vector) pairs kept in a single JSON file.

    In ephemeral mode nothing touches the disk: `load` is always empty and
    `replace`/`append` only return the in-memory result for the current request.
    """

    def __init__(
        self,
        path: Path,
        mode: StoreMode = StoreMode.PERSISTENT,
        lock_timeout: float = 10.0,
    ) -> None:
        self.path = Path(path)
        self.mode = StoreMode(mode)
        self.lock_timeout = lock_timeout
        self._lock = _lock_for(self.path)

    @property
    def is_ephemeral(self) -> bool:
        return self.mode is StoreMode.EPHEMERAL

    def _read(self) -> Store:
        if not self.path.exists():
            return Store()
        try:
            raw = self.path.read_text(encoding="utf-8")
            return Store.model_validate_json(raw)
        except (OSError, ValueError) as exc:
            raise StoreCorruption(f"Cannot read vector store {self.path}: {exc}") from exc

    def _write(self, store: Store) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(store.model_dump_json())
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _acquire(self) -> None:
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise StoreTimeoutError(
                f"Timed out after {self.lock_timeout}s waiting for store lock on {self.path}"
            )

    def load(self) -> Store:
        """Return the persisted store, or an empty one if missing or unreadable."""
        if self.is_ephemeral:
            return Store()
        try:
            return self._read()
        except StoreCorruption as exc:
            _log.warning("Treating vector store as empty: %s", exc)
            return Store()

    def replace(self, new_store: Store) -> Store:
        """Overwrite the whole persisted state with `new_store`."""
        _check_dimensions(new_store.vectors)
        if self.is_ephemeral:
            return new_store

        self._acquire()
        try:
            self._write(new_store)
        finally:
            self._lock.release()
        _log.info("Replaced vector store %s with %d segments", self.path, len(new_store.documents))
        return new_store

    def append(self, new_documents: Sequence[Segment], new_vectors: Sequence[Sequence[float]]) -> Store:
        """Concatenate new segments/vectors onto the stored ones and persist."""
        if len(new_documents) != len(new_vectors):
            raise ValueError(
                f"Cannot append {len(new_documents)} documents with {len(new_vectors)} vectors"
            )

        if self.is_ephemeral:
            _check_dimensions(new_vectors)
            return Store(documents=list(new_documents), vectors=[list(v) for v in new_vectors])

        self._acquire()
        try:
            current = self.load()
            _check_dimensions(new_vectors, expected=current.dimension)
            merged = Store(
                documents=[*current.documents, *new_documents],
                vectors=[*current.vectors, *(list(v) for v in new_vectors)],
            )
            self._write(merged)
        finally:
            self._lock.release()

        _log.info(
            "Appended %d segments to vector store %s (total=%d)",
            len(new_documents),
            self.path,
            len(merged.documents),
        )
        return merged


__all__ = ["VectorStore", "StoreMode"]
