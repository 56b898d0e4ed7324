"""Targeting Domain Services.

SafetyPolicy decides which nodes may become a target; AddressGenerator
produces the selector that re-resolves to a committed node.
"""

import logging
from typing import List, Optional

import soupsieve as sv
from bs4 import Tag

from pagepolish.dom.document import LiveDocument, is_control_surface
from pagepolish.domains.shared.errors import AddressResolutionError, UnsafeTargetError
from .value_objects import Address

logger = logging.getLogger(__name__)

STRUCTURAL_TAGS = frozenset({"html", "head", "body"})
EMBEDDING_TAGS = frozenset({
    "script", "style", "iframe", "object", "embed", "frame", "frameset",
    "noscript", "template",
})


class SafetyPolicy:
    """Protects structural roots, script/style/embedding elements and the
    engine's own control surface from being targeted."""

    def reason_unsafe(self, node: Optional[Tag]) -> Optional[str]:
        if not isinstance(node, Tag):
            return "not an element"
        if node.name in STRUCTURAL_TAGS:
            return f"<{node.name}> is a structural root"
        if node.name in EMBEDDING_TAGS:
            return f"<{node.name}> elements cannot be edited"
        if is_control_surface(node):
            return "element belongs to the editor's own interface"
        return None

    def is_safe(self, node: Optional[Tag]) -> bool:
        return self.reason_unsafe(node) is None

    def check(self, node: Optional[Tag]) -> None:
        reason = self.reason_unsafe(node)
        if reason is not None:
            raise UnsafeTargetError(f"Cannot select this element: {reason}")


class AddressGenerator:
    """Generate addresses that resolve to exactly one node."""

    def __init__(self, document: LiveDocument):
        self.document = document

    def generate(self, node: Tag) -> Address:
        """Return an address for ``node``, verified against the document.

        Raises:
            AddressResolutionError: if no form of address is unique.
        """
        id_address = self.id_address(node)
        if id_address and self.resolves_to(id_address, node):
            return Address(id_address)

        levels = self.levels(node)
        descendant = " ".join(levels)
        if self.resolves_to(descendant, node):
            return Address(descendant)

        anchored = " > ".join(["body"] + levels)
        if self.resolves_to(anchored, node):
            logger.debug("Using body-anchored address for <%s>", node.name)
            return Address(anchored)

        raise AddressResolutionError(
            f"Could not build a unique address for <{node.name}>"
        )

    def id_address(self, node: Tag) -> Optional[str]:
        element_id = (node.get("id") or "").strip()
        if not element_id:
            return None
        return f"#{sv.escape(element_id)}"

    def levels(self, node: Tag) -> List[str]:
        """Per-level selectors from the body's child down to ``node``."""
        body = self.document.body
        if not any(parent is body for parent in node.parents):
            raise AddressResolutionError(
                f"<{node.name}> is not inside the document body"
            )
        levels: List[str] = []
        current = node
        while current is not body:
            levels.append(self.level_selector(current))
            current = current.parent
        levels.reverse()
        return levels

    def level_selector(self, node: Tag) -> str:
        classes = node.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        base = sv.escape(node.name) + "".join(
            f".{sv.escape(c)}" for c in classes if c.strip()
        )
        parent = node.parent
        if parent is None:
            return base
        siblings = [child for child in parent.children if isinstance(child, Tag)]
        collides = any(
            sibling is not node and sv.match(base, sibling) for sibling in siblings
        )
        if not collides:
            return base
        position = next(i for i, s in enumerate(siblings, 1) if s is node)
        return f"{base}:nth-child({position})"

    def resolves_to(self, address: str, node: Tag) -> bool:
        try:
            matches = self.document.resolve(address)
        except AddressResolutionError:
            return False
        return len(matches) == 1 and matches[0] is node
