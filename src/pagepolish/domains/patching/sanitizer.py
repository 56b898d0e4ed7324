"""Allow-list sanitizers for generated style and markup.

Generated patches are untrusted input. Style declarations must name an
allow-listed property and carry a value free of script-bearing constructs;
markup keeps only allow-listed tags and attributes with safe URL schemes.
"""

from __future__ import annotations

import logging
import re
from typing import FrozenSet, List, Optional, Tuple

from bs4 import BeautifulSoup, Comment, Tag

from pagepolish.dom.stylesheets import Declaration, format_declarations, parse_declaration, split_declarations
from pagepolish.domains.context.value_objects import RELEVANT_STYLE_PROPERTIES
from pagepolish.domains.shared.kernel import CONTROL_SURFACE_ATTR_PREFIX

logger = logging.getLogger(__name__)

ALLOWED_STYLE_PROPERTIES: FrozenSet[str] = frozenset(RELEVANT_STYLE_PROPERTIES) | frozenset({
    "align-content", "align-self", "aspect-ratio", "background-position",
    "background-repeat", "border-top", "border-right", "border-bottom",
    "border-left", "border-top-left-radius", "border-top-right-radius",
    "border-bottom-left-radius", "border-bottom-right-radius", "box-shadow",
    "box-sizing", "clear", "column-gap", "cursor", "filter", "flex-basis",
    "flex-grow", "flex-shrink", "flex-wrap", "float", "font", "font-style",
    "font-variant", "grid-area", "grid-column", "grid-row", "grid-template-areas",
    "justify-items", "justify-self", "letter-spacing", "list-style",
    "list-style-type", "object-fit", "object-position", "order", "outline",
    "outline-color", "outline-offset", "outline-style", "outline-width",
    "overflow-x", "overflow-y", "place-content", "place-items", "row-gap",
    "text-decoration-color", "text-decoration-line", "text-decoration-style",
    "text-indent", "text-overflow", "text-shadow", "transform-origin",
    "transition", "vertical-align", "white-space", "word-break", "word-spacing",
    "word-wrap", "overflow-wrap",
    # motion and interaction
    "animation", "animation-delay", "animation-direction", "animation-duration",
    "animation-fill-mode", "animation-iteration-count", "animation-name",
    "animation-play-state", "animation-timing-function", "transition-delay",
    "transition-duration", "transition-property", "transition-timing-function",
    "pointer-events", "user-select", "touch-action", "scroll-behavior",
    "caret-color", "accent-color", "resize", "will-change",
    # logical box model
    "inset", "inset-inline", "inset-block", "margin-inline", "margin-block",
    "margin-inline-start", "margin-inline-end", "margin-block-start",
    "margin-block-end", "padding-inline", "padding-block",
    "padding-inline-start", "padding-inline-end", "padding-block-start",
    "padding-block-end",
    # painting and layout
    "background-attachment", "background-clip", "background-origin",
    "background-blend-mode", "clip-path", "mix-blend-mode", "backdrop-filter",
    "isolation", "border-collapse", "border-spacing", "table-layout",
    "grid-auto-flow", "grid-auto-rows", "grid-auto-columns", "grid-column-gap",
    "grid-row-gap", "grid-template", "place-self", "columns", "column-count",
    "text-underline-offset", "text-wrap", "hyphens", "font-stretch",
    "list-style-position", "content-visibility",
})

_FORBIDDEN_VALUE_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"expression\s*\(", re.I), "CSS expressions are not allowed"),
    (re.compile(r"javascript\s*:", re.I), "script URLs are not allowed"),
    (re.compile(r"vbscript\s*:", re.I), "script URLs are not allowed"),
    (re.compile(r"@import", re.I), "import directives are not allowed"),
    (re.compile(r"-moz-binding|behavior\s*:", re.I), "binding properties are not allowed"),
    (re.compile(r"[<>\\]"), "markup and escape characters are not allowed"),
)

_URL_FUNCTION_RE = re.compile(r"url\(\s*(['\"]?)(.*?)\1\s*\)", re.I | re.S)
_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+.\-]*):")
_SAFE_DATA_IMAGE_RE = re.compile(r"^data:image/(png|gif|jpe?g|webp|avif);", re.I)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x20]+")

SAFE_URL_SCHEMES = frozenset({"http", "https", "mailto", "tel"})

FORM_CONTROL_ATTRIBUTES = frozenset({
    "type", "name", "value", "placeholder", "required", "disabled", "readonly",
    "multiple", "rows", "cols", "maxlength", "minlength", "autocomplete", "form",
})

MEDIA_ATTRIBUTES = frozenset({"src", "controls", "autoplay", "loop", "muted", "preload"})


def url_is_safe(value: str, allow_data_image: bool = False) -> bool:
    """True for relative URLs, fragments and allow-listed schemes."""
    compact = _CONTROL_CHARS_RE.sub("", value or "").lower()
    if not compact:
        return True
    match = _SCHEME_RE.match(compact)
    if match is None:
        return True
    scheme = match.group(1)
    if scheme in SAFE_URL_SCHEMES:
        return True
    return allow_data_image and scheme == "data" and bool(_SAFE_DATA_IMAGE_RE.match(compact))


class StyleSanitizer:
    """Validates declarations against a property allow-list and value rules."""

    def __init__(self, allowed_properties: FrozenSet[str] = ALLOWED_STYLE_PROPERTIES):
        self.allowed_properties = allowed_properties

    def reject_reason(self, declaration: Declaration) -> Optional[str]:
        if declaration.name not in self.allowed_properties:
            return f"property '{declaration.name}' is not allowed"
        for pattern, reason in _FORBIDDEN_VALUE_PATTERNS:
            if pattern.search(declaration.value):
                return reason
        for match in _URL_FUNCTION_RE.finditer(declaration.value):
            if not url_is_safe(match.group(2), allow_data_image=True):
                return "URL scheme is not allowed"
        return None

    def parse(self, style_text: str) -> Tuple[List[Declaration], List[Tuple[str, str]]]:
        """Split style text into accepted declarations and (chunk, reason) rejects."""
        accepted: List[Declaration] = []
        rejected: List[Tuple[str, str]] = []
        for chunk in split_declarations(style_text):
            declaration = parse_declaration(chunk)
            if declaration is None:
                rejected.append((chunk, "not a 'property: value' declaration"))
                continue
            reason = self.reject_reason(declaration)
            if reason is not None:
                rejected.append((chunk, reason))
                continue
            accepted.append(declaration)
        return accepted, rejected

    def clean(self, style_text: str) -> str:
        accepted, _ = self.parse(style_text)
        return format_declarations({d.name: d for d in accepted})


class MarkupSanitizer:
    """Allow-list markup sanitizer.

    Dangerous elements are removed with their content, unknown elements are
    unwrapped, and attributes are filtered per element.
    """

    DROP_WITH_CONTENT = frozenset({
        "script", "style", "iframe", "object", "embed", "frame", "frameset",
        "noscript", "template", "link", "meta", "base", "applet", "svg", "math",
    })

    ALLOWED_TAGS = frozenset({
        "a", "abbr", "article", "aside", "b", "blockquote", "br", "button",
        "caption", "cite", "code", "col", "colgroup", "dd", "del", "details",
        "div", "dl", "dt", "em", "figcaption", "figure", "footer", "h1", "h2",
        "h3", "h4", "h5", "h6", "header", "hr", "i", "img", "ins", "kbd",
        "label", "li", "main", "mark", "nav", "ol", "p", "picture", "pre", "q",
        "s", "section", "small", "source", "span", "strong", "sub", "summary",
        "sup", "table", "tbody", "td", "tfoot", "th", "thead", "time", "tr",
        "u", "ul",
        # forms
        "datalist", "fieldset", "form", "input", "legend", "meter", "optgroup",
        "option", "output", "progress", "select", "textarea",
        # media
        "audio", "track", "video",
    })

    GLOBAL_ATTRIBUTES = frozenset({
        "class", "id", "title", "lang", "dir", "role", "style", "tabindex", "hidden",
    })

    TAG_ATTRIBUTES = {
        "a": frozenset({"href", "target", "rel", "name"}),
        "img": frozenset({"src", "alt", "width", "height", "loading", "srcset", "sizes"}),
        "source": frozenset({"src", "srcset", "type", "media", "sizes"}),
        "button": frozenset({"type", "disabled", "name", "value", "formaction", "form"}),
        "form": frozenset({"action", "method", "name", "autocomplete", "novalidate", "enctype"}),
        "input": frozenset(FORM_CONTROL_ATTRIBUTES | {
            "checked", "formaction", "list", "max", "min", "pattern", "size", "step", "accept",
        }),
        "select": frozenset(FORM_CONTROL_ATTRIBUTES | {"size"}),
        "textarea": frozenset(FORM_CONTROL_ATTRIBUTES | {"wrap"}),
        "option": frozenset({"value", "selected", "disabled", "label"}),
        "optgroup": frozenset({"label", "disabled"}),
        "fieldset": frozenset({"disabled", "name", "form"}),
        "output": frozenset({"for", "name", "form"}),
        "progress": frozenset({"value", "max"}),
        "meter": frozenset({"value", "min", "max", "low", "high", "optimum"}),
        "video": frozenset(MEDIA_ATTRIBUTES | {"poster", "width", "height", "playsinline"}),
        "audio": frozenset(MEDIA_ATTRIBUTES),
        "track": frozenset({"src", "kind", "srclang", "label", "default"}),
        "td": frozenset({"colspan", "rowspan", "headers"}),
        "th": frozenset({"colspan", "rowspan", "headers", "scope"}),
        "col": frozenset({"span"}),
        "colgroup": frozenset({"span"}),
        "ol": frozenset({"start", "reversed", "type"}),
        "li": frozenset({"value"}),
        "time": frozenset({"datetime"}),
        "blockquote": frozenset({"cite"}),
        "q": frozenset({"cite"}),
        "del": frozenset({"cite", "datetime"}),
        "ins": frozenset({"cite", "datetime"}),
        "label": frozenset({"for"}),
        "details": frozenset({"open"}),
    }

    URL_ATTRIBUTES = frozenset({"href", "src", "cite", "action", "formaction", "poster"})
    ALLOWED_TARGETS = frozenset({"_blank", "_self", "_parent", "_top"})

    def __init__(self, style_sanitizer: Optional[StyleSanitizer] = None):
        self.style_sanitizer = style_sanitizer or StyleSanitizer()

    def sanitize(self, markup: str) -> str:
        fragment = BeautifulSoup(markup or "", "html.parser")
        for comment in fragment.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()
        for tag in fragment.find_all(True):
            if tag.decomposed:
                continue
            if tag.name in self.DROP_WITH_CONTENT:
                logger.debug("Removing <%s> from generated markup", tag.name)
                tag.decompose()
                continue
            if tag.name not in self.ALLOWED_TAGS:
                tag.unwrap()
                continue
            self._filter_attributes(tag)
        return fragment.decode().strip()

    def _filter_attributes(self, tag: Tag) -> None:
        allowed = self.GLOBAL_ATTRIBUTES | self.TAG_ATTRIBUTES.get(tag.name, frozenset())
        for name in list(tag.attrs):
            value = tag.attrs[name]
            lowered = name.lower()
            text = " ".join(value) if isinstance(value, list) else str(value)
            if lowered.startswith("on") or lowered.startswith(CONTROL_SURFACE_ATTR_PREFIX):
                del tag.attrs[name]
                continue
            is_data_or_aria = lowered.startswith("data-") or lowered.startswith("aria-")
            if lowered not in allowed and not is_data_or_aria:
                del tag.attrs[name]
                continue
            if lowered in self.URL_ATTRIBUTES and not url_is_safe(
                text, allow_data_image=(tag.name == "img" and lowered == "src")
            ):
                logger.warning("Removing unsafe %s URL from <%s>", lowered, tag.name)
                del tag.attrs[name]
                continue
            if lowered == "srcset" and any(
                not url_is_safe(candidate.strip().split(" ")[0])
                for candidate in text.split(",") if candidate.strip()
            ):
                del tag.attrs[name]
                continue
            if lowered == "target" and text not in self.ALLOWED_TARGETS:
                del tag.attrs[name]
                continue
            if lowered == "style":
                cleaned = self.style_sanitizer.clean(text)
                if cleaned:
                    tag.attrs[name] = cleaned
                else:
                    del tag.attrs[name]
        if tag.name == "a" and tag.get("target") == "_blank":
            tag["rel"] = "noopener noreferrer"
