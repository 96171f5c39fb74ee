"""File-backed JSON collections with serialized read-modify-write.

Each collection is a single JSON array on disk. Every mutation reads the
whole array, changes it in memory and rewrites the whole file. The
collection holds one asyncio.Lock so overlapping writers inside the process
are serialized, and the rewrite goes through a temp file plus os.replace so
a crash mid-write never leaves a half-written file behind.
"""
from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from core.exceptions import StorageError
from core.logging_config import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

Document = Dict[str, Any]
Mutator = Callable[[List[Document]], Optional[T]]


class JsonCollection:
    """
    A flat list of JSON documents stored in one file.

    Missing or corrupt files are treated as an empty collection and the file
    is reset to ``[]``. Corruption means the data is lost; the reset is logged
    at WARNING so it is never silent.
    """

    def __init__(self, path: Path, name: Optional[str] = None):
        self.path = Path(path)
        self.name = name or self.path.stem
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Disk access (blocking; always called through asyncio.to_thread)
    # -------------------------------------------------------------------------

    def _write_sync(self, documents: List[Document]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(documents, handle, indent=2, ensure_ascii=False)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, self.path)

    def _read_sync(self) -> List[Document]:
        if not self.path.exists():
            self._write_sync([])
            return []

        raw = self.path.read_text(encoding="utf-8")
        try:
            data = json.loads(raw) if raw.strip() else []
        except json.JSONDecodeError as e:
            LOGGER.warning(
                f"Collection '{self.name}' is corrupt ({e}); resetting to empty",
                extra={"extra_data": {"collection": self.name, "path": str(self.path)}},
            )
            self._write_sync([])
            return []

        if not isinstance(data, list):
            LOGGER.warning(
                f"Collection '{self.name}' does not hold a list; resetting to empty",
                extra={"extra_data": {"collection": self.name, "path": str(self.path)}},
            )
            self._write_sync([])
            return []

        return [doc for doc in data if isinstance(doc, dict)]

    async def _read(self) -> List[Document]:
        try:
            return await asyncio.to_thread(self._read_sync)
        except OSError as e:
            raise StorageError(f"Failed to read collection '{self.name}': {e}") from e

    async def _write(self, documents: List[Document]) -> None:
        try:
            await asyncio.to_thread(self._write_sync, documents)
        except OSError as e:
            raise StorageError(f"Failed to write collection '{self.name}': {e}") from e

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def read_all(self) -> List[Document]:
        """Snapshot of every document in the collection."""
        async with self._lock:
            return await self._read()

    async def update(self, mutator: Mutator) -> Optional[T]:
        """
        Run ``mutator`` against the current documents under the collection lock.

        The mutator edits the list in place. When it returns a value other than
        None, the list is persisted and the value is returned. Returning None
        leaves the file untouched. Exceptions raised by the mutator propagate
        and nothing is written.
        """
        async with self._lock:
            documents = await self._read()
            result = mutator(documents)
            if result is not None:
                await self._write(documents)
            return result

    async def replace_all(self, documents: List[Document]) -> None:
        async with self._lock:
            await self._write(list(documents))


__all__ = ["JsonCollection", "Document"]
