"""Targeting Domain Aggregates.

The TargetResolver turns selection mode plus pointer activity into at most
one committed Target, and owns the highlight overlays that show it.
"""

import logging
from typing import Any, List, Optional

from bs4 import Tag

from pagepolish.dom.document import LiveDocument, PointerEvent, ViewportEvent
from .entities import Target
from .events import (
    SelectionModeEntered,
    SelectionModeExited,
    TargetCleared,
    TargetCommitted,
    TargetRejected,
)
from .services import AddressGenerator, SafetyPolicy
from .value_objects import HOVER_HIGHLIGHT, SELECTED_HIGHLIGHT, HighlightStyle

logger = logging.getLogger(__name__)

CROSSHAIR_CSS = "* { cursor: crosshair !important; }"
HOVER_HIGHLIGHT_ID = "polish-hover-highlight"
SELECTED_HIGHLIGHT_ID = "polish-selected-highlight"
CURSOR_STYLE_ID = "polish-selection-cursor"


class TargetResolver:
    """Aggregate root for node selection on one document.

    While selection mode is active the resolver is the only owner of the
    document's pointer listeners. A commit on a safe node sets the target and
    leaves selection mode; a commit on an unsafe node raises
    ``UnsafeTargetError`` and selection mode stays on.

    Examples:
        >>> resolver = TargetResolver(document)
        >>> resolver.enter_selection_mode()
        >>> document.dispatch_pointer(PointerEvent.CLICK, node)
        >>> resolver.target.address
        Address(value='#title')
    """

    def __init__(
        self,
        document: LiveDocument,
        safety: Optional[SafetyPolicy] = None,
    ):
        self.document = document
        self.safety = safety or SafetyPolicy()
        self.addresses = AddressGenerator(document)
        self._selecting = False
        self._target: Optional[Target] = None
        self._hover_overlay: Optional[Tag] = None
        self._selected_overlay: Optional[Tag] = None
        self._cursor_style: Optional[Tag] = None
        self._events: List[Any] = []

    @property
    def is_selecting(self) -> bool:
        return self._selecting

    @property
    def target(self) -> Optional[Target]:
        return self._target

    @property
    def has_target(self) -> bool:
        return self._target is not None

    # ------------------------------------------------------------------
    # Selection mode
    # ------------------------------------------------------------------

    def enter_selection_mode(self) -> None:
        if self._selecting:
            return
        self.document.pointer.acquire(self, {
            PointerEvent.MOUSEOVER: self.on_hover,
            PointerEvent.MOUSEOUT: self.on_mouse_out,
            PointerEvent.CLICK: self._on_click,
        })
        self._cursor_style = self.document.inject_control_element(
            "style", parent="head", attrs={"id": CURSOR_STYLE_ID}, text=CROSSHAIR_CSS,
        )
        self._selecting = True
        self._events.append(SelectionModeEntered(document_url=self.document.url))
        logger.debug("Selection mode entered on %s", self.document.url)

    def exit_selection_mode(self, committed: bool = False) -> None:
        if not self._selecting:
            return
        self.document.pointer.release(self)
        if self._cursor_style is not None:
            self._cursor_style.decompose()
            self._cursor_style = None
        self._remove_hover()
        self._selecting = False
        self._events.append(
            SelectionModeExited(document_url=self.document.url, committed=committed)
        )
        logger.debug("Selection mode exited on %s", self.document.url)

    # ------------------------------------------------------------------
    # Pointer handlers
    # ------------------------------------------------------------------

    def on_hover(self, node: Optional[Tag]) -> None:
        if not self._selecting or not self.safety.is_safe(node):
            return
        if self._hover_overlay is None:
            self._hover_overlay = self.document.inject_control_element(
                "div", attrs={"id": HOVER_HIGHLIGHT_ID}
            )
        self._place(self._hover_overlay, node, HOVER_HIGHLIGHT)

    def on_mouse_out(self, node: Optional[Tag] = None) -> None:
        self._remove_hover()

    def on_commit(self, node: Optional[Tag]) -> Target:
        """Commit ``node`` as the target.

        Raises:
            UnsafeTargetError: if the node is protected; selection mode stays on.
            AddressResolutionError: if no unique address can be generated.
        """
        reason = self.safety.reason_unsafe(node)
        if reason is not None:
            self._events.append(TargetRejected(
                tag=node.name if isinstance(node, Tag) else None, reason=reason,
            ))
            self.safety.check(node)
        address = self.addresses.generate(node)
        self._set_target(Target(node=node, address=address))
        self.exit_selection_mode(committed=True)
        return self._target

    def _on_click(self, node: Optional[Tag]) -> None:
        self.on_commit(node)

    # ------------------------------------------------------------------
    # Target
    # ------------------------------------------------------------------

    def _set_target(self, target: Target) -> None:
        if self._target is not None:
            self.clear_target()
        self._target = target
        self._selected_overlay = self.document.inject_control_element(
            "div", attrs={"id": SELECTED_HIGHLIGHT_ID}
        )
        self._place(self._selected_overlay, target.node, SELECTED_HIGHLIGHT)
        self.document.add_viewport_listener(self._on_viewport_change)
        self._events.append(TargetCommitted(address=str(target.address), tag=target.tag))
        logger.info("Target committed: %s", target.address)

    def clear_target(self) -> Optional[Target]:
        """Drop the current target and its highlight; returns the old target."""
        previous = self._target
        if previous is None:
            return None
        self._target = None
        self.document.remove_viewport_listener(self._on_viewport_change)
        if self._selected_overlay is not None:
            self._selected_overlay.decompose()
            self._selected_overlay = None
        self._events.append(TargetCleared(address=str(previous.address)))
        return previous

    def reposition(self) -> None:
        """Move the committed highlight to the target's current box."""
        if self._target is None or self._selected_overlay is None:
            return
        self._place(self._selected_overlay, self._target.node, SELECTED_HIGHLIGHT)

    def _on_viewport_change(self, event: ViewportEvent) -> None:
        self.reposition()

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def _place(self, overlay: Tag, node: Tag, style: HighlightStyle) -> None:
        box = self.document.bounding_box(node)
        if box is not None:
            box = box.to_viewport(self.document.scroll_x, self.document.scroll_y)
        overlay["style"] = style.css(box)

    def _remove_hover(self) -> None:
        if self._hover_overlay is not None:
            self._hover_overlay.decompose()
            self._hover_overlay = None

    def get_events(self) -> List[Any]:
        return list(self._events)

    def clear_events(self) -> List[Any]:
        events = list(self._events)
        self._events.clear()
        return events
