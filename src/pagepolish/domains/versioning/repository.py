"""Site record repository on top of the key-value store."""

import logging
from typing import Union

from pagepolish.storage.kv_store import KeyValueStore
from pagepolish.domains.shared.kernel import OriginKey
from .entities import SiteRecord

logger = logging.getLogger(__name__)

SITE_KEY_PREFIX = "polish_site::"


def site_key(origin: Union[OriginKey, str]) -> str:
    return f"{SITE_KEY_PREFIX}{origin}"


class SiteRepository:
    """Loads and persists one :class:`SiteRecord` per origin."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def load(self, origin: OriginKey) -> SiteRecord:
        data = await self.store.get(site_key(origin))
        return SiteRecord.from_dict(str(origin), data)

    async def save(self, record: SiteRecord) -> None:
        await self.store.set(site_key(record.origin), record.to_dict())
        logger.debug(
            "Persisted site record %s (%d projects)", record.origin, len(record.projects)
        )
