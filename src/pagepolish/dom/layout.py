"""Layout geometry for the in-memory document.

A :class:`LayoutProvider` reports the bounding box of an element in document
coordinates. Hosts with a real renderer plug in their own provider;
:class:`FlowLayoutProvider` is a deterministic estimate that stacks elements
in document order, good enough to position highlights without a renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from bs4 import Tag


@dataclass(frozen=True)
class BoundingBox:
    """Rectangle in document coordinates (pixels)."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("BoundingBox dimensions cannot be negative")

    def to_viewport(self, scroll_x: float, scroll_y: float) -> "BoundingBox":
        """Translate into viewport coordinates for fixed positioning."""
        return BoundingBox(self.x - scroll_x, self.y - scroll_y, self.width, self.height)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


class LayoutProvider(Protocol):
    def bounding_box(self, node: Tag) -> Optional[BoundingBox]:
        """Return the node's box, or None if it is not rendered."""
        ...


class FlowLayoutProvider:
    """Estimate boxes by stacking body elements one line each."""

    def __init__(self, line_height: int = 24, indent: int = 16, page_width: int = 1280):
        self.line_height = line_height
        self.indent = indent
        self.page_width = page_width

    def bounding_box(self, node: Tag) -> Optional[BoundingBox]:
        body = None
        depth = 0
        for parent in node.parents:
            if parent.name == "body":
                body = parent
                break
            depth += 1
        if body is None:
            return None
        index = next(
            (i for i, el in enumerate(body.find_all(True)) if el is node), None
        )
        if index is None:
            return None
        x = depth * self.indent
        size = len(node.find_all(True)) + 1
        return BoundingBox(
            x=x,
            y=index * self.line_height,
            width=max(self.page_width - 2 * x, 0),
            height=size * self.line_height,
        )
