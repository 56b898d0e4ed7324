"""Patching Domain Value Objects."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bs4 import Tag


@dataclass(frozen=True)
class Patch:
    """A proposed change returned by the generative service.

    ``content_text`` may be empty for a style-only change.
    """

    style_text: str = ""
    content_text: str = ""
    rationale: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.style_text.strip() and not self.content_text.strip()

    def to_dict(self) -> dict:
        return {
            "styleChanges": self.style_text,
            "contentChanges": self.content_text,
            "rationale": self.rationale,
        }


@dataclass(frozen=True)
class SkippedDeclaration:
    text: str
    reason: str

    def __str__(self) -> str:
        return f"{self.text!r}: {self.reason}"


@dataclass
class PatchResult:
    """Outcome of applying a patch to the live target."""

    rationale: str
    applied_declarations: List[str] = field(default_factory=list)
    skipped_declarations: List[SkippedDeclaration] = field(default_factory=list)
    content_replaced: bool = False
    node: Optional[Tag] = field(default=None, repr=False)

    @property
    def warnings(self) -> Tuple[str, ...]:
        return tuple(f"Skipped style declaration {s}" for s in self.skipped_declarations)

    def to_dict(self) -> dict:
        return {
            "rationale": self.rationale,
            "applied_declarations": list(self.applied_declarations),
            "skipped_declarations": [
                {"text": s.text, "reason": s.reason} for s in self.skipped_declarations
            ],
            "content_replaced": self.content_replaced,
        }
