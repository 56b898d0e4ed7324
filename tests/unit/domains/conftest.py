"""Pytest fixtures for domain tests.

Shared by the versioning, history and session contexts, which all sit on the
async key-value store and publish domain events.
"""

from __future__ import annotations

import pytest

from pagepolish.domains.shared import EventCollector
from pagepolish.storage import InMemoryKeyValueStore


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    """Fresh in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def events() -> EventCollector:
    """Collector for published domain events."""
    return EventCollector()
