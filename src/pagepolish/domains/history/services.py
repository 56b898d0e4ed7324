"""History Domain Services.

All origins share one table stored under ``polish_chat_history``, mapping
the normalized origin to its list of records. Lists are capped; the oldest
records are evicted first.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from pagepolish.storage.kv_store import KeyValueStore
from pagepolish.domains.shared.errors import StorageError
from pagepolish.domains.shared.kernel import OriginKey
from .entities import ChatRecord

logger = logging.getLogger(__name__)

HISTORY_KEY = "polish_chat_history"
MAX_RECORDS = 100


class HistoryLog:
    """Append-only, capped, per-origin interaction log."""

    def __init__(self, store: KeyValueStore, max_records: int = MAX_RECORDS):
        if max_records <= 0:
            raise ValueError("max_records must be positive")
        self.store = store
        self.max_records = max_records
        self._lock = asyncio.Lock()

    async def _read_table(self) -> Dict[str, List[Dict[str, Any]]]:
        table = await self.store.get(HISTORY_KEY)
        return table if isinstance(table, dict) else {}

    async def append(self, origin: OriginKey, record: ChatRecord) -> int:
        """Append ``record`` and return the origin's record count.

        Raises:
            StorageError: if the table cannot be read or written.
        """
        key = str(origin)
        async with self._lock:
            table = await self._read_table()
            entries = list(table.get(key) or [])
            entries.append(record.to_dict())
            if len(entries) > self.max_records:
                entries = entries[-self.max_records:]
            table[key] = entries
            await self.store.set(HISTORY_KEY, table)
        return len(entries)

    async def load(self, origin: OriginKey) -> List[ChatRecord]:
        """Return the origin's records, oldest first; [] if unreadable."""
        try:
            table = await self._read_table()
        except StorageError as e:
            logger.warning("Chat history unavailable for %s: %s", origin, e)
            return []
        records: List[ChatRecord] = []
        for raw in table.get(str(origin)) or []:
            record = self._parse(raw)
            if record is not None:
                records.append(record)
        return records

    async def clear(self, origin: OriginKey) -> None:
        async with self._lock:
            table = await self._read_table()
            if table.pop(str(origin), None) is not None:
                await self.store.set(HISTORY_KEY, table)
        logger.info("Cleared chat history for %s", origin)

    @staticmethod
    def _parse(raw: Any) -> Optional[ChatRecord]:
        try:
            return ChatRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Dropping malformed chat record: %s", e)
            return None
