"""Patching Domain - validates and applies generated patches."""

from .events import PatchApplied
from .sanitizer import ALLOWED_STYLE_PROPERTIES, MarkupSanitizer, StyleSanitizer, url_is_safe
from .services import PatchApplier
from .value_objects import Patch, PatchResult, SkippedDeclaration

__all__ = [
    "PatchApplied",
    "ALLOWED_STYLE_PROPERTIES",
    "MarkupSanitizer",
    "StyleSanitizer",
    "url_is_safe",
    "PatchApplier",
    "Patch",
    "PatchResult",
    "SkippedDeclaration",
]
