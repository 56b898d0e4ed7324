"""In-memory live document, layout geometry and style resolution."""

from .document import (
    LiveDocument,
    PointerEvent,
    PointerListenerSlot,
    ViewportEvent,
    body_markup_of,
    is_control_surface,
    strip_control_surface,
)
from .layout import BoundingBox, FlowLayoutProvider, LayoutProvider
from .stylesheets import (
    Declaration,
    StyleResolver,
    StyleRule,
    StyleSheet,
    parse_declaration,
    parse_declarations,
    parse_stylesheet,
    split_declarations,
)

__all__ = [
    "LiveDocument",
    "PointerEvent",
    "PointerListenerSlot",
    "ViewportEvent",
    "body_markup_of",
    "is_control_surface",
    "strip_control_surface",
    "BoundingBox",
    "FlowLayoutProvider",
    "LayoutProvider",
    "Declaration",
    "StyleResolver",
    "StyleRule",
    "StyleSheet",
    "parse_declaration",
    "parse_declarations",
    "parse_stylesheet",
    "split_declarations",
]
