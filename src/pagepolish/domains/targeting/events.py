"""Targeting Domain Events."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class SelectionModeEntered:
    document_url: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "SelectionModeEntered",
            "document_url": self.document_url,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class SelectionModeExited:
    document_url: str
    committed: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "SelectionModeExited",
            "document_url": self.document_url,
            "committed": self.committed,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TargetCommitted:
    """Emitted when the operator commits a safe node as the target."""

    address: str
    tag: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "TargetCommitted",
            "address": self.address,
            "tag": self.tag,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TargetRejected:
    """Emitted when a commit on a protected node is refused."""

    tag: Optional[str]
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "TargetRejected",
            "tag": self.tag,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TargetCleared:
    address: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "TargetCleared",
            "address": self.address,
            "timestamp": self.timestamp.isoformat(),
        }
