"""Versioning Domain - per-origin baseline and named project snapshots.

- Entities: DocumentSnapshot, Project, SiteRecord
- Repository: SiteRepository (one record per origin key)
- Services: VersionStore (baseline, CRUD, save, switch, discard)
- Domain Events: BaselineCaptured, ProjectChanged, DocumentRestored
"""

from .entities import DocumentSnapshot, Project, SiteRecord, baseline_summary
from .events import BaselineCaptured, DocumentRestored, ProjectChanged
from .repository import SITE_KEY_PREFIX, SiteRepository, site_key
from .services import VersionStore, as_origin, capture

__all__ = [
    "DocumentSnapshot",
    "Project",
    "SiteRecord",
    "baseline_summary",
    "BaselineCaptured",
    "DocumentRestored",
    "ProjectChanged",
    "SITE_KEY_PREFIX",
    "SiteRepository",
    "site_key",
    "VersionStore",
    "as_origin",
    "capture",
]
