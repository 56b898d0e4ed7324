"""History Domain - capped per-origin log of interaction turns."""

from .entities import ChatRecord, ChatRole
from .services import HISTORY_KEY, MAX_RECORDS, HistoryLog

__all__ = ["ChatRecord", "ChatRole", "HISTORY_KEY", "MAX_RECORDS", "HistoryLog"]
