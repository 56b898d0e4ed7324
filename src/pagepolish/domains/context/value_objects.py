"""Context Domain Value Objects."""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

# Visually relevant properties kept in a snapshot's effective styles.
RELEVANT_STYLE_PROPERTIES: Tuple[str, ...] = (
    "display", "position", "top", "right", "bottom", "left",
    "width", "height", "max-width", "max-height", "min-width", "min-height",
    "margin", "margin-top", "margin-right", "margin-bottom", "margin-left",
    "padding", "padding-top", "padding-right", "padding-bottom", "padding-left",
    "border", "border-width", "border-style", "border-color", "border-radius",
    "background", "background-color", "background-image", "background-size",
    "color", "font-family", "font-size", "font-weight", "line-height",
    "text-align", "text-decoration", "text-transform",
    "flex", "flex-direction", "justify-content", "align-items", "gap",
    "grid", "grid-template-columns", "grid-template-rows", "grid-gap",
    "opacity", "visibility", "overflow", "z-index", "transform",
)

NO_OP_STYLE_VALUES = frozenset({"none", "normal", "auto"})

NESTED_PLACEHOLDER = " ... nested content ... "
TRUNCATION_MARKER = "\n<!-- ... truncated ... -->"


@dataclass(frozen=True)
class SnapshotLimits:
    """Bounds applied when describing a target."""

    max_depth: int = 3
    max_markup_chars: int = 5000
    max_rules: int = 20

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError("max_depth cannot be negative")
        if self.max_markup_chars <= 0:
            raise ValueError("max_markup_chars must be positive")
        if self.max_rules < 0:
            raise ValueError("max_rules cannot be negative")


@dataclass(frozen=True)
class ContextSnapshot:
    """Bounded, immutable description of a target for a generative request.

    Attributes:
        tag: Lower-case tag name.
        address: Selector that resolves to the target.
        markup_excerpt: Depth-limited, length-capped outer markup.
        effective_styles: Allow-listed effective style properties.
        matching_rule_text: Source text of up to 20 matching rules.
        class_list: Classes on the target.
        element_id: The target's id attribute, empty if none.
        attributes: Attributes except private and engine-owned ones.
    """

    tag: str
    address: str
    markup_excerpt: str
    effective_styles: Mapping[str, str] = field(default_factory=dict)
    matching_rule_text: str = ""
    class_list: Tuple[str, ...] = ()
    element_id: str = ""
    attributes: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "tagName": self.tag,
            "selector": self.address,
            "html": self.markup_excerpt,
            "computedStyles": dict(self.effective_styles),
            "cssRules": self.matching_rule_text,
            "classList": list(self.class_list),
            "id": self.element_id,
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True)
class RelevantDom:
    """Markup (and optionally rules) gathered for a chat question."""

    selectors: Tuple[str, ...]
    sections: List[str]

    def render(self) -> str:
        if not self.sections:
            return "(no matching elements found)"
        return "\n\n".join(self.sections)
