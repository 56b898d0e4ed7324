"""Async key-value stores backing sites, credentials and chat history.

The engine treats persistence as an async key-value substrate. Values are
JSON-compatible. Any read or write failure surfaces as ``StorageError``.
"""

import asyncio
import copy
import hashlib
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pagepolish.domains.shared.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = Path.home() / ".pagepolish" / "store"


@runtime_checkable
class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if the key is absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store; values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileKeyValueStore:
    """One JSON file per key under a storage directory.

    Writes go to a temp file that is atomically renamed over the target.
    File I/O runs in a worker thread so the event loop is never blocked.

    Example:
        store = JsonFileKeyValueStore(Path("/tmp/polish"))
        await store.set("polish_site::https://example.com", {...})
    """

    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

    def __init__(self, storage_dir: Optional[Path] = None):
        self.storage_dir = Path(storage_dir) if storage_dir else DEFAULT_STORE_DIR

    def _path_for(self, key: str) -> Path:
        readable = self._UNSAFE_CHARS.sub("_", key)[:80]
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        return self.storage_dir / f"{readable}-{digest}.json"

    async def get(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    def _read(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {key!r}", detail=str(e)) from e
        return payload.get("value")

    def _write(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        temp_path = path.with_suffix(".json.tmp")
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump({"_key": key, "value": value}, f, indent=2)
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {key!r}", detail=str(e)) from e
        logger.debug("Stored %s at %s", key, path)

    def _delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key!r}", detail=str(e)) from e
