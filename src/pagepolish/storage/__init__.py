"""Persistence substrate for the editing engine."""

from .kv_store import (
    DEFAULT_STORE_DIR,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)

__all__ = [
    "DEFAULT_STORE_DIR",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
]
