"""Patching Domain Services."""

import logging
from typing import List, Optional

from bs4 import Tag

from pagepolish.dom.document import LiveDocument
from pagepolish.domains.shared.errors import AddressResolutionError, PatchValidationError
from pagepolish.domains.targeting.entities import Target
from .sanitizer import MarkupSanitizer, StyleSanitizer
from .value_objects import Patch, PatchResult, SkippedDeclaration

logger = logging.getLogger(__name__)


class PatchApplier:
    """Apply a Patch to the node held by a Target.

    The stored node handle is used directly; the address is never
    re-resolved, so the patch lands on the node the operator picked even if
    the document changed around it. Content is applied first; style
    declarations then go onto the node that occupies the target's place
    (the first element of the replacement markup, or the original node).
    """

    def __init__(
        self,
        document: LiveDocument,
        style_sanitizer: Optional[StyleSanitizer] = None,
        markup_sanitizer: Optional[MarkupSanitizer] = None,
    ):
        self.document = document
        self.style_sanitizer = style_sanitizer or StyleSanitizer()
        self.markup_sanitizer = markup_sanitizer or MarkupSanitizer(self.style_sanitizer)

    def apply(self, target: Target, patch: Patch) -> PatchResult:
        """Apply ``patch`` to ``target``.

        Raises:
            AddressResolutionError: if the target node is no longer attached.
            PatchValidationError: if non-empty content sanitizes to nothing.
        """
        node = target.node
        if not self.document.contains(node):
            raise AddressResolutionError(
                f"Target {target.address} is no longer attached to the document"
            )

        result = PatchResult(rationale=patch.rationale, node=node)

        if patch.content_text.strip():
            cleaned = self.markup_sanitizer.sanitize(patch.content_text)
            if not cleaned:
                raise PatchValidationError(
                    "Generated content was empty after sanitization"
                )
            result.node = self._replace(node, cleaned)
            result.content_replaced = True

        if patch.style_text.strip():
            self._apply_styles(result, patch.style_text)

        logger.info(
            "Applied patch to %s: %d declarations, %d skipped, content %s",
            target.address,
            len(result.applied_declarations),
            len(result.skipped_declarations),
            "replaced" if result.content_replaced else "unchanged",
        )
        return result

    def _replace(self, node: Tag, markup: str) -> Optional[Tag]:
        new_nodes = self.document.parse_fragment(markup)
        node.replace_with(*new_nodes)
        return next((n for n in new_nodes if isinstance(n, Tag)), None)

    def _apply_styles(self, result: PatchResult, style_text: str) -> None:
        accepted, rejected = self.style_sanitizer.parse(style_text)
        for chunk, reason in rejected:
            logger.warning("Skipping style declaration %r: %s", chunk, reason)
            result.skipped_declarations.append(SkippedDeclaration(chunk, reason))
        if result.node is None:
            for declaration in accepted:
                result.skipped_declarations.append(SkippedDeclaration(
                    declaration.css_text, "replacement content has no element to style",
                ))
            logger.warning("Replacement content has no element; styles not applied")
            return
        applied: List[str] = []
        for declaration in accepted:
            self.document.set_inline_property(result.node, declaration)
            applied.append(declaration.css_text)
        result.applied_declarations.extend(applied)
