"""Versioning Domain Services.

VersionStore manages the per-origin baseline and named projects. Every
operation takes an origin (raw URL or normalized key) and normalizes it
through :class:`OriginKey`, so storage is never keyed by a raw URL.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Union

from pagepolish.dom.document import LiveDocument
from pagepolish.storage.kv_store import KeyValueStore
from pagepolish.domains.shared.errors import BaselineImmutableError, ProjectNotFoundError
from pagepolish.domains.shared.events import EventPublisherProtocol
from pagepolish.domains.shared.kernel import BASELINE_ID, BASELINE_NAME, OriginKey, now_millis
from .entities import DocumentSnapshot, Project, SiteRecord
from .events import BaselineCaptured, DocumentRestored, ProjectChanged
from .repository import SiteRepository

logger = logging.getLogger(__name__)

OriginLike = Union[OriginKey, str]


def as_origin(origin: OriginLike) -> OriginKey:
    return origin if isinstance(origin, OriginKey) else OriginKey.from_url(origin)


def capture(document: LiveDocument) -> DocumentSnapshot:
    """Snapshot the document with the control surface stripped."""
    return DocumentSnapshot(html=document.serialize(strip_control=True))


class VersionStore:
    """Durable per-origin snapshot management.

    Example:
        store = VersionStore(InMemoryKeyValueStore())
        await store.ensure_baseline(url, document)
        project = await store.create_project(url, "Hero tweaks", capture(document))
        await store.switch_to(url, BASELINE_ID, document)
    """

    def __init__(
        self,
        store: KeyValueStore,
        event_publisher: Optional[EventPublisherProtocol] = None,
    ):
        self.repository = SiteRepository(store)
        self.event_publisher = event_publisher
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, origin: OriginKey) -> asyncio.Lock:
        return self._locks.setdefault(str(origin), asyncio.Lock())

    # ------------------------------------------------------------------
    # Baseline
    # ------------------------------------------------------------------

    async def ensure_baseline(self, origin: OriginLike, document: LiveDocument) -> DocumentSnapshot:
        """Capture the baseline for ``origin`` if none exists yet."""
        key = as_origin(origin)
        async with self._lock(key):
            record = await self.repository.load(key)
            if record.baseline is not None:
                return record.baseline
            record.baseline = capture(document)
            await self.repository.save(record)
        logger.info("Captured baseline for %s", key)
        self._publish(BaselineCaptured(origin=str(key)))
        return record.baseline

    async def get_baseline(self, origin: OriginLike) -> Optional[DocumentSnapshot]:
        record = await self.repository.load(as_origin(origin))
        return record.baseline

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self, origin: OriginLike) -> List[Project]:
        record = await self.repository.load(as_origin(origin))
        return list(record.projects)

    async def get_project(self, origin: OriginLike, project_id: str) -> Project:
        record = await self.repository.load(as_origin(origin))
        return self._require(record, project_id)

    async def create_project(
        self,
        origin: OriginLike,
        name: Optional[str] = None,
        document_snapshot: Optional[DocumentSnapshot] = None,
        source_project_id: Optional[str] = None,
    ) -> Project:
        key = as_origin(origin)
        async with self._lock(key):
            record = await self.repository.load(key)
            project_id = Project.generate_id()
            while record.find(project_id) is not None:
                project_id = Project.generate_id()
            now = now_millis()
            project = Project(
                id=project_id,
                name=(name or "").strip() or Project.default_name(),
                document_snapshot=document_snapshot,
                created_at=now,
                updated_at=now,
                source_project_id=source_project_id,
            )
            record.projects.append(project)
            await self.repository.save(record)
        self._publish(ProjectChanged(str(key), project.id, "created", project.name))
        return project

    async def rename_project(self, origin: OriginLike, project_id: str, name: str) -> Project:
        if project_id == BASELINE_ID:
            raise BaselineImmutableError("The live website baseline cannot be renamed")
        if not name or not name.strip():
            raise ValueError("Project name cannot be empty")
        key = as_origin(origin)
        async with self._lock(key):
            record = await self.repository.load(key)
            project = self._require(record, project_id)
            project.name = name.strip()
            project.updated_at = now_millis()
            await self.repository.save(record)
        self._publish(ProjectChanged(str(key), project.id, "renamed", project.name))
        return project

    async def duplicate_project(self, origin: OriginLike, project_id: str) -> Project:
        """Copy a project (or the baseline) into a new project named ``Copy of ...``."""
        key = as_origin(origin)
        record = await self.repository.load(key)
        if project_id == BASELINE_ID:
            if record.baseline is None:
                raise ProjectNotFoundError(f"No baseline captured for {key}")
            source_name, snapshot = BASELINE_NAME, record.baseline
        else:
            source = self._require(record, project_id)
            source_name, snapshot = source.name, source.document_snapshot
        if snapshot is not None:
            snapshot = DocumentSnapshot(html=snapshot.html)
        copy = await self.create_project(
            key, f"Copy of {source_name}", snapshot, source_project_id=project_id
        )
        self._publish(ProjectChanged(str(key), copy.id, "duplicated", copy.name))
        return copy

    async def delete_project(self, origin: OriginLike, project_id: str) -> None:
        if project_id == BASELINE_ID:
            raise BaselineImmutableError("The live website baseline cannot be deleted")
        key = as_origin(origin)
        async with self._lock(key):
            record = await self.repository.load(key)
            project = self._require(record, project_id)
            record.projects = [p for p in record.projects if p.id != project_id]
            await self.repository.save(record)
        self._publish(ProjectChanged(str(key), project_id, "deleted", project.name))

    async def save(
        self,
        origin: OriginLike,
        project_id: str,
        document: Union[LiveDocument, DocumentSnapshot],
    ) -> Project:
        """Store the current document into an existing project.

        The control surface is stripped before persisting. ``createdAt`` and
        ``sourceProjectId`` are preserved across re-saves.
        """
        if project_id == BASELINE_ID:
            raise BaselineImmutableError("The live website baseline cannot be saved over")
        snapshot = capture(document) if isinstance(document, LiveDocument) else document
        key = as_origin(origin)
        async with self._lock(key):
            record = await self.repository.load(key)
            project = self._require(record, project_id)
            project.document_snapshot = snapshot
            project.updated_at = snapshot.captured_at
            await self.repository.save(record)
        logger.info("Saved project %s (%s) for %s", project.name, project.id, key)
        self._publish(ProjectChanged(str(key), project.id, "saved", project.name))
        return project

    # ------------------------------------------------------------------
    # Restoring the live document
    # ------------------------------------------------------------------

    async def switch_to(
        self, origin: OriginLike, project_id: str, document: LiveDocument
    ) -> Optional[Project]:
        """Load a project's (or the baseline's) body into the live document.

        Returns the project switched to, or None for the baseline.
        """
        key = as_origin(origin)
        record = await self.repository.load(key)
        project = None if project_id == BASELINE_ID else self._require(record, project_id)
        source = self._restore(record, project, document)
        self._publish(DocumentRestored(str(key), project_id, source, "switch"))
        return project

    async def discard(
        self, origin: OriginLike, project_id: str, document: LiveDocument
    ) -> str:
        """Revert the live body to the project's last save, else the baseline.

        Returns ``"project"`` or ``"baseline"`` depending on what was restored.
        """
        key = as_origin(origin)
        record = await self.repository.load(key)
        project = None
        if project_id != BASELINE_ID:
            project = record.find(project_id)
        source = self._restore(record, project, document)
        self._publish(DocumentRestored(str(key), project_id, source, "discard"))
        return source

    def _restore(
        self, record: SiteRecord, project: Optional[Project], document: LiveDocument
    ) -> str:
        if project is not None and project.document_snapshot is not None:
            document.replace_body_content(project.document_snapshot.body_markup())
            return "project"
        if record.baseline is None:
            raise ProjectNotFoundError(f"No baseline captured for {record.origin}")
        document.replace_body_content(record.baseline.body_markup())
        return "baseline"

    @staticmethod
    def _require(record: SiteRecord, project_id: str) -> Project:
        project = record.find(project_id)
        if project is None:
            raise ProjectNotFoundError(
                f"Project {project_id!r} not found for {record.origin}"
            )
        return project

    def _publish(self, event: object) -> None:
        if self.event_publisher:
            self.event_publisher.publish(event)
