"""Targeting Domain Entities."""

from dataclasses import dataclass, field
from datetime import datetime

from bs4 import Tag

from .value_objects import Address


@dataclass(eq=False)
class Target:
    """Handle to the single live node selected for editing.

    Identity is the node object itself; two targets are equal only when they
    hold the very same node.
    """

    node: Tag
    address: Address
    committed_at: datetime = field(default_factory=datetime.now)

    @property
    def tag(self) -> str:
        return self.node.name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Target) and other.node is self.node

    def __hash__(self) -> int:
        return id(self.node)

    def to_dict(self) -> dict:
        return {
            "selector": str(self.address),
            "tagName": self.tag.upper(),
            "committed_at": self.committed_at.isoformat(),
        }
