"""Patching Domain Events."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class PatchApplied:
    """Emitted after a patch has been applied to the live document."""

    address: str
    declarations_applied: int
    declarations_skipped: int
    content_replaced: bool
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "PatchApplied",
            "address": self.address,
            "declarations_applied": self.declarations_applied,
            "declarations_skipped": self.declarations_skipped,
            "content_replaced": self.content_replaced,
            "timestamp": self.timestamp.isoformat(),
        }
