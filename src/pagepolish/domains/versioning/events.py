"""Versioning Domain Events."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class BaselineCaptured:
    origin: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "BaselineCaptured",
            "origin": self.origin,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ProjectChanged:
    """Emitted on create, save, rename, duplicate and delete.

    Attributes:
        origin: Normalized origin of the site.
        project_id: The affected project.
        action: One of created, saved, renamed, duplicated, deleted.
        name: Project name after the change.
    """

    origin: str
    project_id: str
    action: str
    name: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "ProjectChanged",
            "origin": self.origin,
            "project_id": self.project_id,
            "action": self.action,
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class DocumentRestored:
    """Emitted when the live body is replaced by a stored snapshot."""

    origin: str
    project_id: str
    source: str  # "project" or "baseline"
    reason: str  # "switch" or "discard"
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "DocumentRestored",
            "origin": self.origin,
            "project_id": self.project_id,
            "source": self.source,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }
