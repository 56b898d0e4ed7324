"""The live document: an HTML tree the engine edits in place.

The document owns the parsed tree, the pointer listener slot used while
selection mode is active, viewport state (scroll offset and size), and the
helpers that keep the engine's own control surface separate from page content.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

import soupsieve as sv
from bs4 import BeautifulSoup, Doctype, Tag

from pagepolish.domains.shared.errors import AddressResolutionError, PointerListenerBusyError
from pagepolish.domains.shared.kernel import CONTROL_SURFACE_ATTR
from .layout import BoundingBox, LayoutProvider
from .stylesheets import (
    Declaration,
    StyleResolver,
    StyleSheet,
    StylesheetLoader,
    format_declarations,
    parse_declarations,
)

logger = logging.getLogger(__name__)

PARSER = "html.parser"


class PointerEvent(str, Enum):
    MOUSEOVER = "mouseover"
    MOUSEOUT = "mouseout"
    CLICK = "click"


class ViewportEvent(str, Enum):
    SCROLL = "scroll"
    RESIZE = "resize"


PointerHandler = Callable[[Optional[Tag]], None]
ViewportListener = Callable[[ViewportEvent], None]


class PointerListenerSlot:
    """Exclusive owner of the document-wide hover and click listeners."""

    def __init__(self) -> None:
        self._owner: Optional[object] = None
        self._handlers: Dict[PointerEvent, PointerHandler] = {}

    @property
    def owner(self) -> Optional[object]:
        return self._owner

    def acquire(self, owner: object, handlers: Dict[PointerEvent, PointerHandler]) -> None:
        if self._owner is not None and self._owner is not owner:
            raise PointerListenerBusyError(
                "Pointer listeners are owned by another component"
            )
        self._owner = owner
        self._handlers = dict(handlers)

    def release(self, owner: object) -> None:
        if self._owner is owner:
            self._owner = None
            self._handlers = {}

    def dispatch(self, event: PointerEvent, node: Optional[Tag]) -> bool:
        handler = self._handlers.get(event)
        if handler is None:
            return False
        handler(node)
        return True


def outermost(nodes: Iterable[Tag]) -> List[Tag]:
    """Drop nodes that are nested inside another node of the same list."""
    candidates = list(nodes)
    ids = {id(n) for n in candidates}
    return [n for n in candidates if not any(id(p) in ids for p in n.parents)]


def strip_control_surface(root: Tag) -> None:
    for node in outermost(root.find_all(attrs={CONTROL_SURFACE_ATTR: True})):
        node.decompose()


def is_control_surface(node: Tag) -> bool:
    if node.has_attr(CONTROL_SURFACE_ATTR):
        return True
    return any(
        isinstance(p, Tag) and p.has_attr(CONTROL_SURFACE_ATTR) for p in node.parents
    )


def body_markup_of(html: str) -> str:
    """Inner markup of the body of an HTML document string."""
    soup = BeautifulSoup(html, PARSER)
    body = soup.find("body")
    if body is None:
        return soup.decode_contents()
    return body.decode_contents()


class LiveDocument:
    """In-memory document a session edits."""

    def __init__(
        self,
        html: str,
        url: str,
        *,
        layout: Optional[LayoutProvider] = None,
        stylesheet_loader: Optional[StylesheetLoader] = None,
        viewport_width: int = 1280,
        viewport_height: int = 800,
    ):
        self.url = url
        self.soup = BeautifulSoup(html or "", PARSER)
        self._ensure_structure()
        self.layout = layout
        self.stylesheet_loader = stylesheet_loader
        self.pointer = PointerListenerSlot()
        self.scroll_x = 0.0
        self.scroll_y = 0.0
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self._viewport_listeners: List[ViewportListener] = []

    def _ensure_structure(self) -> None:
        soup = self.soup
        root = soup.find("html")
        if root is None:
            root = soup.new_tag("html")
            for node in list(soup.contents):
                if not isinstance(node, Doctype):
                    root.append(node.extract())
            soup.append(root)
        head = root.find("head")
        if head is None:
            head = soup.new_tag("head")
            root.insert(0, head)
        body = root.find("body")
        if body is None:
            body = soup.new_tag("body")
            for node in list(root.contents):
                if node is not head:
                    body.append(node.extract())
            root.append(body)
        else:
            # Stray top-level content belongs to the body.
            for node in list(root.contents):
                if node is not head and node is not body:
                    if isinstance(node, Tag) or node.strip():
                        body.append(node.extract())

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def root(self) -> Tag:
        return self.soup.find("html")

    @property
    def head(self) -> Tag:
        return self.root.find("head")

    @property
    def body(self) -> Tag:
        return self.root.find("body")

    def contains(self, node: Tag) -> bool:
        """True if ``node`` is still attached to this document."""
        return any(parent is self.soup for parent in node.parents)

    def resolve(self, address: str) -> List[Tag]:
        """Resolve an address to the nodes it matches."""
        try:
            return sv.select(address, self.soup)
        except sv.SelectorSyntaxError as e:
            raise AddressResolutionError(f"Invalid address: {address}", detail=str(e))

    def resolve_one(self, address: str) -> Tag:
        nodes = self.resolve(address)
        if len(nodes) != 1:
            raise AddressResolutionError(
                f"Address {address!r} resolves to {len(nodes)} nodes"
            )
        return nodes[0]

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def inject_control_element(
        self,
        tag_name: str,
        *,
        parent: str = "body",
        attrs: Optional[Dict[str, str]] = None,
        text: Optional[str] = None,
    ) -> Tag:
        """Create an engine-owned element and attach it to head or body."""
        attributes = {CONTROL_SURFACE_ATTR: "true"}
        attributes.update(attrs or {})
        element = self.soup.new_tag(tag_name, attrs=attributes)
        if text is not None:
            element.string = text
        container = self.head if parent == "head" else self.body
        container.append(element)
        return element

    def control_surface(self) -> List[Tag]:
        return outermost(self.soup.find_all(attrs={CONTROL_SURFACE_ATTR: True}))

    def is_control_surface(self, node: Tag) -> bool:
        return is_control_surface(node)

    # ------------------------------------------------------------------
    # Serialization and body replacement
    # ------------------------------------------------------------------

    def serialize(self, strip_control: bool = True) -> str:
        if not strip_control:
            return str(self.soup)
        clone = BeautifulSoup(str(self.soup), PARSER)
        strip_control_surface(clone)
        return str(clone)

    def body_markup(self, strip_control: bool = True) -> str:
        return body_markup_of(self.serialize(strip_control=strip_control))

    def replace_body_content(self, markup: str) -> None:
        """Replace the page content of the body, keeping everything else.

        The head, the body element and its attributes, and the engine's own
        control surface survive; only page content is swapped.
        """
        body = self.body
        preserved = outermost(body.find_all(attrs={CONTROL_SURFACE_ATTR: True}))
        for node in preserved:
            node.extract()
        body.clear()
        fragment = BeautifulSoup(markup or "", PARSER)
        strip_control_surface(fragment)
        for node in list(fragment.contents):
            body.append(node.extract())
        for node in preserved:
            body.append(node)
        logger.debug(
            "Replaced body content of %s (%d control elements kept)",
            self.url, len(preserved),
        )

    def parse_fragment(self, markup: str) -> List:
        """Parse markup into detached nodes ready for insertion."""
        fragment = BeautifulSoup(markup or "", PARSER)
        return [node.extract() for node in list(fragment.contents)]

    # ------------------------------------------------------------------
    # Styles
    # ------------------------------------------------------------------

    def style_sheets(self) -> List[StyleSheet]:
        sheets: List[StyleSheet] = []
        for element in self.soup.find_all(["style", "link"]):
            if is_control_surface(element):
                continue
            if element.name == "style":
                sheets.append(StyleSheet(element.get_text()))
                continue
            rel = element.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if "stylesheet" not in [r.lower() for r in rel]:
                continue
            href = element.get("href")
            text = None
            if href and self.stylesheet_loader is not None:
                text = self.stylesheet_loader(href)
            sheets.append(StyleSheet(text, href=href))
        return sheets

    def style_resolver(self) -> StyleResolver:
        return StyleResolver(self.style_sheets())

    def inline_style(self, node: Tag) -> Dict[str, Declaration]:
        return {d.name: d for d in parse_declarations(node.get("style", ""))}

    def set_inline_property(self, node: Tag, declaration: Declaration) -> None:
        current = self.inline_style(node)
        current.pop(declaration.name, None)
        current[declaration.name] = declaration
        node["style"] = format_declarations(current)

    # ------------------------------------------------------------------
    # Geometry and viewport
    # ------------------------------------------------------------------

    def bounding_box(self, node: Tag) -> Optional[BoundingBox]:
        if self.layout is None or not self.contains(node):
            return None
        return self.layout.bounding_box(node)

    def add_viewport_listener(self, listener: ViewportListener) -> None:
        if listener not in self._viewport_listeners:
            self._viewport_listeners.append(listener)

    def remove_viewport_listener(self, listener: ViewportListener) -> None:
        if listener in self._viewport_listeners:
            self._viewport_listeners.remove(listener)

    def scroll_to(self, x: float, y: float) -> None:
        self.scroll_x, self.scroll_y = float(x), float(y)
        self._notify_viewport(ViewportEvent.SCROLL)

    def resize(self, width: int, height: int) -> None:
        self.viewport_width, self.viewport_height = width, height
        self._notify_viewport(ViewportEvent.RESIZE)

    def _notify_viewport(self, event: ViewportEvent) -> None:
        for listener in list(self._viewport_listeners):
            listener(event)

    def dispatch_pointer(self, event: PointerEvent, node: Optional[Tag]) -> bool:
        return self.pointer.dispatch(event, node)
