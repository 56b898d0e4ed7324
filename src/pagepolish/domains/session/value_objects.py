"""Session Domain Value Objects."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pagepolish.domains.shared.kernel import InteractionMode, random_suffix


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_CREDENTIAL = "awaiting_credential"
    READY = "ready"
    SELECTING = "selecting"
    TARGETED = "targeted"
    REQUESTING = "requesting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class OperationBudget:
    """Timeout budget of one message-contract operation."""

    name: str
    seconds: float

    def __post_init__(self) -> None:
        if self.seconds <= 0:
            raise ValueError(f"Budget for {self.name} must be positive")


FAST_BUDGET_SECONDS = 5.0
SUBMIT_BUDGET_SECONDS = 60.0

OPERATION_BUDGETS: Dict[str, OperationBudget] = {
    name: OperationBudget(name, seconds)
    for name, seconds in (
        ("toggle_selection_mode", FAST_BUDGET_SECONDS),
        ("set_selection_mode", FAST_BUDGET_SECONDS),
        ("get_selection_status", FAST_BUDGET_SECONDS),
        ("get_target_info", FAST_BUDGET_SECONDS),
        ("pointer_event", FAST_BUDGET_SECONDS),
        ("deselect_target", FAST_BUDGET_SECONDS),
        ("set_mode", FAST_BUDGET_SECONDS),
        ("dismiss_notice", FAST_BUDGET_SECONDS),
        ("submit_instruction", SUBMIT_BUDGET_SECONDS),
    )
}


@dataclass(frozen=True)
class Notice:
    """Transient, dismissible message surfaced to the operator."""

    message: str
    level: str = "error"
    code: Optional[str] = None
    id: str = field(default_factory=lambda: f"notice_{random_suffix(8)}")

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "level": self.level, "message": self.message, "code": self.code}


@dataclass(frozen=True)
class RelevanceAnalysis:
    """First step of chat mode: which parts of the page matter."""

    relevant_selectors: Tuple[str, ...] = ()
    relevant_sections: Tuple[str, ...] = ()
    needs_css: bool = False
    needs_js: bool = False
    reasoning: str = ""


@dataclass
class SubmissionResult:
    """Outcome of one submitted instruction, success or not."""

    success: bool
    mode: InteractionMode
    state: SessionState
    message: str = ""
    error_code: Optional[str] = None
    patch: Optional[Dict[str, Any]] = None
    applied: Optional[Dict[str, Any]] = None
    answer: Optional[str] = None
    notice: Optional[Notice] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "mode": self.mode.value,
            "state": self.state.value,
            "message": self.message,
        }
        if self.error_code:
            data["error_code"] = self.error_code
        if self.patch is not None:
            data["patch"] = self.patch
        if self.applied is not None:
            data["applied"] = self.applied
        if self.answer is not None:
            data["answer"] = self.answer
        if self.notice is not None:
            data["notice"] = self.notice.to_dict()
        return data
