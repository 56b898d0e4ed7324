"""History Domain Entities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from pagepolish.domains.shared.kernel import InteractionMode, now_millis, random_suffix


class ChatRole(str, Enum):
    OPERATOR = "operator"
    SYSTEM = "system"


@dataclass(frozen=True)
class ChatRecord:
    """One interaction turn.

    Attributes:
        id: Unique message id (``msg_<millis>_<suffix>``).
        timestamp: Epoch milliseconds.
        role: Who produced the text.
        text: Instruction, rationale, answer or error message.
        mode: Edit or chat.
        target_ref: ``{"tagName", "selector"}`` of the target, if any.
        patch: The applied patch as ``{"styleChanges", ...}``, if any.
    """

    role: ChatRole
    text: str
    mode: InteractionMode = InteractionMode.EDIT
    target_ref: Optional[Dict[str, str]] = None
    patch: Optional[Dict[str, Any]] = None
    id: str = field(default_factory=lambda: f"msg_{now_millis()}_{random_suffix(5)}")
    timestamp: int = field(default_factory=now_millis)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "role": self.role.value,
            "text": self.text,
            "mode": self.mode.value,
            "targetRef": self.target_ref,
            "patch": self.patch,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatRecord":
        return cls(
            id=data["id"],
            timestamp=int(data["timestamp"]),
            role=ChatRole(data["role"]),
            text=data.get("text", ""),
            mode=InteractionMode(data.get("mode", InteractionMode.EDIT.value)),
            target_ref=data.get("targetRef"),
            patch=data.get("patch"),
        )
