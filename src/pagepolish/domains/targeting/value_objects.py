"""Targeting Domain Value Objects."""

from dataclasses import dataclass
from typing import Optional

from pagepolish.dom.layout import BoundingBox


@dataclass(frozen=True)
class Address:
    """Selector string that re-resolves to one node of the document.

    Either an id fast path (``#title``) or a chain of per-level selectors
    (``main section.card:nth-child(2) button.cta``).
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Address cannot be empty")

    @property
    def is_id_address(self) -> bool:
        return self.value.startswith("#") and " " not in self.value

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HighlightStyle:
    """Visual style of a highlight overlay."""

    name: str
    border_width: int
    border_color: str
    background: str

    def css(self, box: Optional[BoundingBox]) -> str:
        """Inline style positioning the overlay over ``box`` (viewport coords)."""
        parts = [
            "position: fixed",
            "pointer-events: none",
            "z-index: 2147483646",
            "box-sizing: border-box",
            f"border: {self.border_width}px solid {self.border_color}",
            f"background: {self.background}",
        ]
        if box is None:
            parts.append("display: none")
        else:
            parts.extend([
                f"top: {box.y:g}px",
                f"left: {box.x:g}px",
                f"width: {box.width:g}px",
                f"height: {box.height:g}px",
            ])
        return "; ".join(parts)


HOVER_HIGHLIGHT = HighlightStyle(
    name="hover",
    border_width=2,
    border_color="#3b82f6",
    background="rgba(59, 130, 246, 0.1)",
)

SELECTED_HIGHLIGHT = HighlightStyle(
    name="selected",
    border_width=3,
    border_color="#10b981",
    background="rgba(16, 185, 129, 0.15)",
)
