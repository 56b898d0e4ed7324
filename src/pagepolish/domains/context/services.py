"""Context Domain Services.

ContextSnapshotter is a pure transform from a Target to a ContextSnapshot.
It also builds the document outline and the relevant-markup bundle used by
chat mode. Nothing here mutates the live document.
"""

import logging
from typing import Dict, Iterable, List, Optional

import soupsieve as sv
from bs4 import BeautifulSoup, Comment, Tag

from pagepolish.dom.document import PARSER, LiveDocument, strip_control_surface
from pagepolish.dom.stylesheets import StyleResolver
from pagepolish.domains.shared.kernel import CONTROL_SURFACE_ATTR_PREFIX
from pagepolish.domains.targeting.entities import Target
from .value_objects import (
    NESTED_PLACEHOLDER,
    NO_OP_STYLE_VALUES,
    RELEVANT_STYLE_PROPERTIES,
    TRUNCATION_MARKER,
    ContextSnapshot,
    RelevantDom,
    SnapshotLimits,
)

logger = logging.getLogger(__name__)

OUTLINE_TAGS = (
    "header", "nav", "main", "section", "article", "aside", "footer",
    "form", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "table",
    "button", "a", "img",
)


class ContextSnapshotter:
    """Describe targets of one document within fixed bounds."""

    def __init__(self, document: LiveDocument, limits: Optional[SnapshotLimits] = None):
        self.document = document
        self.limits = limits or SnapshotLimits()

    def snapshot(self, target: Target) -> ContextSnapshot:
        node = target.node
        resolver = self.document.style_resolver()
        classes = node.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        return ContextSnapshot(
            tag=node.name,
            address=str(target.address),
            markup_excerpt=self.markup_excerpt(node),
            effective_styles=self.effective_styles(node, resolver),
            matching_rule_text=self.matching_rule_text(node, resolver),
            class_list=tuple(classes),
            element_id=node.get("id", ""),
            attributes=self.attributes(node),
        )

    # ------------------------------------------------------------------
    # Markup excerpt
    # ------------------------------------------------------------------

    def markup_excerpt(self, node: Tag) -> str:
        # Re-parsing the serialized node copies it without recursion.
        clone = BeautifulSoup(str(node), PARSER).find(node.name)
        for script in clone.find_all("script"):
            script.decompose()
        strip_control_surface(clone)
        self._simplify(clone, self.limits.max_depth)
        markup = str(clone)
        if len(markup) > self.limits.max_markup_chars:
            markup = markup[: self.limits.max_markup_chars] + TRUNCATION_MARKER
        return markup

    def _simplify(self, element: Tag, remaining: int) -> None:
        """Collapse content below ``remaining`` levels into a placeholder."""
        children = [c for c in element.children if isinstance(c, Tag)]
        if remaining <= 0:
            if children:
                element.clear()
                element.append(Comment(NESTED_PLACEHOLDER))
            return
        for child in children:
            self._simplify(child, remaining - 1)

    # ------------------------------------------------------------------
    # Styles
    # ------------------------------------------------------------------

    def effective_styles(self, node: Tag, resolver: StyleResolver) -> Dict[str, str]:
        computed = resolver.computed_style(node)
        styles: Dict[str, str] = {}
        for name in RELEVANT_STYLE_PROPERTIES:
            value = computed.get(name)
            if value and value.strip().lower() not in NO_OP_STYLE_VALUES:
                styles[name] = value.strip()
        return styles

    def matching_rule_text(self, node: Tag, resolver: StyleResolver) -> str:
        collected: List[str] = []
        for rule in resolver.readable_rules():
            if len(collected) >= self.limits.max_rules:
                break
            if rule.matches(node):
                collected.append(rule.css_text)
        return "\n\n".join(collected)

    @staticmethod
    def attributes(node: Tag) -> Dict[str, str]:
        result: Dict[str, str] = {}
        for name, value in node.attrs.items():
            if name.startswith("_") or name.startswith(CONTROL_SURFACE_ATTR_PREFIX):
                continue
            result[name] = " ".join(value) if isinstance(value, list) else str(value)
        return result

    # ------------------------------------------------------------------
    # Chat mode support
    # ------------------------------------------------------------------

    def summarize_document(self, max_chars: int = 8000, max_entries: int = 200) -> str:
        """Indented outline of landmarks, headings and interactive elements."""
        lines: List[str] = [f"Page: {self.document.url}"]
        title = self.document.head.find("title")
        if title is not None and title.get_text(strip=True):
            lines.append(f"Title: {title.get_text(strip=True)}")
        body = self.document.body
        for element in body.find_all(OUTLINE_TAGS):
            if len(lines) >= max_entries:
                lines.append("...")
                break
            if self.document.is_control_surface(element):
                continue
            depth = sum(1 for p in element.parents if p is not body and p.name in OUTLINE_TAGS)
            lines.append("  " * depth + self._describe(element))
        summary = "\n".join(lines)
        if len(summary) > max_chars:
            summary = summary[:max_chars] + TRUNCATION_MARKER
        return summary

    def _describe(self, element: Tag) -> str:
        label = element.name
        if element.get("id"):
            label += f"#{element['id']}"
        classes = element.get("class") or []
        if classes:
            label += "".join(f".{c}" for c in classes)
        text = element.get_text(" ", strip=True)
        if element.name == "img":
            text = element.get("alt", "")
        if text:
            if len(text) > 60:
                text = text[:57] + "..."
            label += f' "{text}"'
        return label

    def gather_relevant(
        self,
        selectors: Iterable[str],
        include_rules: bool = False,
        max_per_selector: int = 3,
    ) -> RelevantDom:
        """Collect bounded markup for the elements matching ``selectors``.

        Selectors that fail to parse or match nothing are skipped.
        """
        resolver = self.document.style_resolver() if include_rules else None
        used: List[str] = []
        sections: List[str] = []
        for selector in selectors:
            try:
                matches = sv.select(selector, self.document.body)
            except sv.SelectorSyntaxError:
                logger.warning("Ignoring invalid selector from chat analysis: %r", selector)
                continue
            matches = [m for m in matches if not self.document.is_control_surface(m)]
            if not matches:
                continue
            used.append(selector)
            for node in matches[:max_per_selector]:
                section = f"<!-- {selector} -->\n{self.markup_excerpt(node)}"
                if resolver is not None:
                    rules = self.matching_rule_text(node, resolver)
                    if rules:
                        section += f"\n/* matching rules */\n{rules}"
                sections.append(section)
        return RelevantDom(selectors=tuple(used), sections=sections)
