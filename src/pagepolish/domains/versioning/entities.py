"""Versioning Domain Entities.

Records are stored as plain dictionaries; ``to_dict``/``from_dict`` define
the persisted shape.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pagepolish.dom.document import body_markup_of
from pagepolish.domains.shared.kernel import BASELINE_ID, BASELINE_NAME, now_millis, random_suffix


@dataclass(frozen=True)
class DocumentSnapshot:
    """Serialized full document with the control surface already removed."""

    html: str
    captured_at: int = field(default_factory=now_millis)

    def body_markup(self) -> str:
        return body_markup_of(self.html)

    def to_dict(self) -> Dict[str, Any]:
        return {"html": self.html, "savedAt": self.captured_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentSnapshot":
        return cls(html=data.get("html", ""), captured_at=int(data.get("savedAt", 0)))


@dataclass
class Project:
    """A named snapshot of a site.

    A project without a ``document_snapshot`` has never been saved; it shows
    the baseline until its first save.
    """

    id: str
    name: str
    document_snapshot: Optional[DocumentSnapshot] = None
    created_at: int = field(default_factory=now_millis)
    updated_at: int = field(default_factory=now_millis)
    source_project_id: Optional[str] = None

    @property
    def is_saved(self) -> bool:
        return self.document_snapshot is not None

    @staticmethod
    def generate_id() -> str:
        return f"project_{now_millis()}_{random_suffix()}"

    @staticmethod
    def default_name(when: Optional[datetime] = None) -> str:
        when = when or datetime.now()
        hour = when.hour % 12 or 12
        meridiem = "AM" if when.hour < 12 else "PM"
        return f"Project {when.strftime('%b')} {when.day}, {hour:02d}:{when.minute:02d} {meridiem}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "html": self.document_snapshot.html if self.document_snapshot else None,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "isLive": False,
            "sourceProjectId": self.source_project_id,
        }

    def to_summary(self, current: bool = False) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "saved": self.is_saved,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "sourceProjectId": self.source_project_id,
            "current": current,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        html = data.get("html")
        updated_at = int(data.get("updatedAt", 0))
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            document_snapshot=DocumentSnapshot(html, updated_at) if html is not None else None,
            created_at=int(data.get("createdAt", 0)),
            updated_at=updated_at,
            source_project_id=data.get("sourceProjectId"),
        )


def baseline_summary(baseline: Optional[DocumentSnapshot], current: bool = False) -> Dict[str, Any]:
    return {
        "id": BASELINE_ID,
        "name": BASELINE_NAME,
        "saved": baseline is not None,
        "createdAt": baseline.captured_at if baseline else None,
        "updatedAt": baseline.captured_at if baseline else None,
        "sourceProjectId": None,
        "isLive": True,
        "current": current,
    }


@dataclass
class SiteRecord:
    """Per-origin persisted record: ``{baseline, projects}``."""

    origin: str
    baseline: Optional[DocumentSnapshot] = None
    projects: List[Project] = field(default_factory=list)

    def find(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseline": self.baseline.to_dict() if self.baseline else None,
            "projects": [p.to_dict() for p in self.projects],
        }

    @classmethod
    def from_dict(cls, origin: str, data: Optional[Dict[str, Any]]) -> "SiteRecord":
        data = data or {}
        baseline = data.get("baseline")
        return cls(
            origin=origin,
            baseline=DocumentSnapshot.from_dict(baseline) if baseline else None,
            projects=[Project.from_dict(p) for p in data.get("projects") or []],
        )
