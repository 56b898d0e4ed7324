"""Style sheet parsing and a small cascade resolver.

The live document is an in-memory tree, so effective styles are computed here
instead of being read from a rendering engine. The resolver covers what the
context snapshotter needs: author rules from ``<style>`` and readable
``<link>`` sheets, the inline ``style`` attribute, ``!important``,
specificity and source order, inheritance of text properties, and user-agent
``display`` defaults. At-rules (``@media``, ``@font-face``, ...) are skipped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import soupsieve as sv
from bs4 import Tag

from pagepolish.domains.shared.errors import StyleSheetAccessError

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_PROPERTY_RE = re.compile(r"^-?-?[a-zA-Z][a-zA-Z0-9-]*$")
_IMPORTANT_RE = re.compile(r"\s*!\s*important\s*$", re.IGNORECASE)

_ID_RE = re.compile(r"#[\w-]+")
_ATTR_RE = re.compile(r"\[[^\]]*\]")
_PSEUDO_ELEMENT_RE = re.compile(r"::[\w-]+")
_PSEUDO_CLASS_RE = re.compile(r":[\w-]+(?:\([^)]*\))?")
_CLASS_RE = re.compile(r"\.[\w-]+")
_TYPE_RE = re.compile(r"(?:^|[\s>+~(])([a-zA-Z][\w-]*)")

Specificity = Tuple[int, int, int]

INHERITED_PROPERTIES = frozenset({
    "color",
    "cursor",
    "font",
    "font-family",
    "font-size",
    "font-style",
    "font-variant",
    "font-weight",
    "letter-spacing",
    "line-height",
    "list-style",
    "text-align",
    "text-indent",
    "text-transform",
    "visibility",
    "white-space",
    "word-spacing",
})

BLOCK_ELEMENTS = frozenset({
    "address", "article", "aside", "blockquote", "body", "dd", "details",
    "dialog", "div", "dl", "dt", "fieldset", "figcaption", "figure",
    "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header",
    "hgroup", "hr", "html", "main", "menu", "nav", "ol", "p", "pre",
    "section", "summary", "ul",
})

UA_DISPLAY = {
    "li": "list-item",
    "table": "table",
    "thead": "table-header-group",
    "tbody": "table-row-group",
    "tfoot": "table-footer-group",
    "tr": "table-row",
    "td": "table-cell",
    "th": "table-cell",
    "img": "inline-block",
    "button": "inline-block",
    "input": "inline-block",
    "select": "inline-block",
    "textarea": "inline-block",
    "head": "none",
    "script": "none",
    "style": "none",
    "template": "none",
}


@dataclass(frozen=True)
class Declaration:
    """A single ``property: value`` pair."""

    name: str
    value: str
    important: bool = False

    @property
    def css_text(self) -> str:
        suffix = " !important" if self.important else ""
        return f"{self.name}: {self.value}{suffix}"


def split_declarations(text: str) -> List[str]:
    """Split a declaration block on top-level semicolons.

    Semicolons inside parentheses or quotes (``url("a;b")``) do not split.
    Empty chunks are dropped.
    """
    chunks: List[str] = []
    buf: List[str] = []
    depth = 0
    quote: Optional[str] = None
    for ch in _COMMENT_RE.sub("", text or ""):
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")" and depth:
            depth -= 1
        elif ch == ";" and depth == 0:
            chunk = "".join(buf).strip()
            if chunk:
                chunks.append(chunk)
            buf = []
            continue
        buf.append(ch)
    tail = "".join(buf).strip()
    if tail:
        chunks.append(tail)
    return chunks


def parse_declaration(chunk: str) -> Optional[Declaration]:
    """Parse one ``property: value`` chunk, or return None if malformed."""
    if ":" not in chunk:
        return None
    name, _, value = chunk.partition(":")
    name = name.strip().lower()
    value = value.strip()
    if not _PROPERTY_RE.match(name):
        return None
    important = bool(_IMPORTANT_RE.search(value))
    if important:
        value = _IMPORTANT_RE.sub("", value).strip()
    if not value:
        return None
    return Declaration(name=name, value=value, important=important)


def parse_declarations(text: str) -> List[Declaration]:
    """Parse a declaration block, silently dropping malformed chunks."""
    result = []
    for chunk in split_declarations(text):
        declaration = parse_declaration(chunk)
        if declaration is not None:
            result.append(declaration)
    return result


def format_declarations(declarations: Dict[str, Declaration]) -> str:
    return "; ".join(d.css_text for d in declarations.values())


def split_selector_list(selector_text: str) -> List[str]:
    """Split ``a, b:is(c, d)`` into its top-level selectors."""
    parts: List[str] = []
    buf: List[str] = []
    depth = 0
    for ch in selector_text:
        if ch in "([":
            depth += 1
        elif ch in ")]" and depth:
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(buf).strip())
            buf = []
            continue
        buf.append(ch)
    parts.append("".join(buf).strip())
    return [p for p in parts if p]


def specificity(selector: str) -> Specificity:
    """Approximate (ids, classes, types) specificity of a complex selector."""
    text = _ATTR_RE.sub(".a", selector)
    ids = len(_ID_RE.findall(text))
    text = _ID_RE.sub(" ", text)
    pseudo_elements = len(_PSEUDO_ELEMENT_RE.findall(text))
    text = _PSEUDO_ELEMENT_RE.sub(" ", text)
    pseudo_classes = len(_PSEUDO_CLASS_RE.findall(text))
    text = _PSEUDO_CLASS_RE.sub(" ", text)
    classes = len(_CLASS_RE.findall(text)) + pseudo_classes
    text = _CLASS_RE.sub(" ", text)
    types = len(_TYPE_RE.findall(text)) + pseudo_elements
    return (ids, classes, types)


@dataclass
class StyleRule:
    """A qualified rule from a style sheet."""

    selector_text: str
    declarations: List[Declaration]
    css_text: str
    order: int = 0

    @property
    def selectors(self) -> List[str]:
        return split_selector_list(self.selector_text)

    def match_specificity(self, node: Tag) -> Optional[Specificity]:
        """Highest specificity among selectors matching ``node``, or None.

        Selectors the matcher cannot parse never match.
        """
        best: Optional[Specificity] = None
        for selector in self.selectors:
            try:
                matched = sv.match(selector, node)
            except sv.SelectorSyntaxError:
                logger.debug("Skipping unsupported selector %r", selector)
                continue
            if matched:
                spec = specificity(selector)
                if best is None or spec > best:
                    best = spec
        return best

    def matches(self, node: Tag) -> bool:
        return self.match_specificity(node) is not None


def _skip_block(text: str, start: int) -> int:
    """Return the index just past the block whose ``{`` is at ``start``."""
    depth = 0
    i = start
    while i < len(text):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return len(text)


def parse_stylesheet(text: str, start_order: int = 0) -> List[StyleRule]:
    """Parse style sheet text into qualified rules, skipping at-rules."""
    css = _COMMENT_RE.sub("", text or "")
    rules: List[StyleRule] = []
    i = 0
    order = start_order
    while i < len(css):
        brace = css.find("{", i)
        semi = css.find(";", i)
        prelude_end = brace if brace != -1 else len(css)
        prelude = css[i:prelude_end].strip()
        if prelude.startswith("@"):
            if semi != -1 and (brace == -1 or semi < brace):
                # Statement at-rule such as @import or @charset.
                i = semi + 1
            elif brace != -1:
                i = _skip_block(css, brace)
            else:
                break
            continue
        if brace == -1:
            break
        end = css.find("}", brace)
        if end == -1:
            end = len(css)
        body = css[brace + 1:end]
        i = end + 1
        if not prelude:
            continue
        rules.append(StyleRule(
            selector_text=prelude,
            declarations=parse_declarations(body),
            css_text=f"{prelude} {{{body}}}".strip(),
            order=order,
        ))
        order += 1
    return rules


class StyleSheet:
    """A style sheet attached to the document.

    ``text`` is None when the sheet's content is not readable (an external
    sheet the loader could not provide); inspecting ``rules`` then raises
    :class:`StyleSheetAccessError`.
    """

    def __init__(self, text: Optional[str], href: Optional[str] = None):
        self.text = text
        self.href = href
        self._rules: Optional[List[StyleRule]] = None

    @property
    def accessible(self) -> bool:
        return self.text is not None

    @property
    def rules(self) -> List[StyleRule]:
        if self.text is None:
            raise StyleSheetAccessError(
                f"Style sheet is not readable: {self.href or '<inline>'}"
            )
        if self._rules is None:
            self._rules = parse_stylesheet(self.text)
        return self._rules

    def __repr__(self) -> str:
        return f"StyleSheet(href={self.href!r}, accessible={self.accessible})"


class StyleResolver:
    """Resolve effective styles for elements of one document."""

    def __init__(self, sheets: List[StyleSheet]):
        self._sheets = sheets
        self._cache: Dict[int, Dict[str, str]] = {}

    def readable_rules(self) -> Iterator[StyleRule]:
        for sheet in self._sheets:
            try:
                rules = sheet.rules
            except StyleSheetAccessError as e:
                logger.warning("Skipping style sheet: %s", e)
                continue
            yield from rules

    def matching_rules(self, node: Tag) -> List[StyleRule]:
        return [rule for rule in self.readable_rules() if rule.matches(node)]

    def computed_style(self, node: Tag) -> Dict[str, str]:
        """Effective style of ``node``.

        Ancestors are resolved outermost first in a loop, so nesting depth is
        bounded only by the tree itself.
        """
        key = id(node)
        if key in self._cache:
            return self._cache[key]

        chain = [node]
        for ancestor in node.parents:
            if not _is_element(ancestor) or id(ancestor) in self._cache:
                break
            chain.append(ancestor)

        rules = list(self.readable_rules())
        for element in reversed(chain):
            parent = element.parent
            parent_style = self._cache.get(id(parent), {}) if _is_element(parent) else {}
            self._cache[id(element)] = self._resolve(element, rules, parent_style)
        return self._cache[key]

    def _resolve(
        self, node: Tag, rules: List[StyleRule], parent_style: Dict[str, str]
    ) -> Dict[str, str]:
        # (important, inline, specificity, order) decides the winner.
        winners: Dict[str, Tuple[tuple, str]] = {}

        def offer(decl: Declaration, inline: bool, spec: Specificity, order: int) -> None:
            rank = (decl.important, inline, spec, order)
            current = winners.get(decl.name)
            if current is None or rank >= current[0]:
                winners[decl.name] = (rank, decl.value)

        order = 0
        for rule in rules:
            spec = rule.match_specificity(node)
            if spec is None:
                continue
            for decl in rule.declarations:
                offer(decl, False, spec, order)
                order += 1
        for decl in parse_declarations(node.get("style", "")):
            offer(decl, True, (0, 0, 0), order)
            order += 1

        style: Dict[str, str] = {}
        for name, (_, value) in winners.items():
            lowered = value.lower()
            if lowered == "inherit":
                if name in parent_style:
                    style[name] = parent_style[name]
            elif lowered in ("initial", "unset", "revert"):
                continue
            else:
                style[name] = value
        for name in INHERITED_PROPERTIES:
            if name not in style and name in parent_style:
                style[name] = parent_style[name]
        if "display" not in style:
            style["display"] = default_display(node.name)
        return style


def _is_element(node: object) -> bool:
    return isinstance(node, Tag) and node.name != "[document]"


def default_display(tag_name: str) -> str:
    if tag_name in UA_DISPLAY:
        return UA_DISPLAY[tag_name]
    return "block" if tag_name in BLOCK_ELEMENTS else "inline"


StylesheetLoader = Callable[[str], Optional[str]]
