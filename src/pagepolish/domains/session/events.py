"""Session Domain Events."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class SessionStateChanged:
    session_id: str
    previous: str
    current: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "SessionStateChanged",
            "session_id": self.session_id,
            "previous": self.previous,
            "current": self.current,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class InstructionCompleted:
    """Emitted once per submitted instruction that reached the service.

    Attributes:
        session_id: Session that submitted the instruction.
        mode: "edit" or "chat".
        success: Whether the turn succeeded.
        error_code: Error code of the failure, if any.
        address: Target address for edit turns.
    """

    session_id: str
    mode: str
    success: bool
    error_code: Optional[str] = None
    address: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "InstructionCompleted",
            "session_id": self.session_id,
            "mode": self.mode,
            "success": self.success,
            "error_code": self.error_code,
            "address": self.address,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class SubmissionRejected:
    """Emitted when a submission is refused locally without a service call."""

    session_id: str
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "event_type": "SubmissionRejected",
            "session_id": self.session_id,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }
