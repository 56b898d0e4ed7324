"""Prompt text for the generative service."""

import json
from typing import Dict

from pagepolish.domains.context.value_objects import ContextSnapshot

EDIT_SYSTEM_PROMPT = """You are a front-end developer editing one element of a live website.
You receive the operator's request and a description of the selected element:
its tag, selector, markup, effective styles and the style rules that match it.

Return ONLY a JSON object with exactly these string fields:
{
  "styleChanges": "CSS declarations for the element, e.g. 'color: red; padding: 8px'",
  "contentChanges": "complete replacement HTML for the element, or an empty string",
  "rationale": "one or two sentences describing the change"
}

RULES:
1. styleChanges holds plain declarations only: no selectors, no braces, no @import.
2. Leave contentChanges empty when only styles change.
3. When contentChanges is set, return the WHOLE element including its own tag.
4. Never include <script> elements, inline event handlers or javascript: URLs.
5. No markdown, no commentary outside the JSON object.
"""

RELEVANCE_SYSTEM_PROMPT = """You analyze questions about a web page's DOM.
Given the question and a semantic outline of the page, decide which parts of the
page are needed to answer it.

Return ONLY a JSON object:
{
  "relevantSelectors": ["CSS selectors of relevant elements"],
  "relevantSections": ["names of relevant page sections"],
  "needsCSS": true or false,
  "needsJS": true or false,
  "reasoning": "brief explanation"
}

Set needsCSS to true when the question involves styling.
"""

ANSWER_SYSTEM_PROMPT = """You are an expert web developer analyzing a webpage's DOM.
Answer the operator's question concisely and clearly using light markdown:
- `inline code` for selectors, class names, ids and short snippets
- fenced blocks only for multi-line code
- short paragraphs and bullet lists when helpful
If the question asks for a selector, give it immediately with minimal context.
"""


def format_styles(styles: Dict[str, str]) -> str:
    return "\n".join(f"{name}: {value};" for name, value in styles.items())


def build_edit_message(instruction: str, context: ContextSnapshot) -> str:
    parts = [
        f'The operator wants to: "{instruction}"',
        "",
        f"Tag: {context.tag}",
        f"Selector: {context.address}",
    ]
    if context.element_id:
        parts.append(f"Id: {context.element_id}")
    if context.class_list:
        parts.append(f"Classes: {' '.join(context.class_list)}")
    if context.attributes:
        parts.append(f"Attributes: {json.dumps(dict(context.attributes))}")
    parts.extend(["", "HTML:", "```html", context.markup_excerpt, "```"])
    if context.effective_styles:
        parts.extend([
            "", "Current styles (effective):", "```css",
            format_styles(dict(context.effective_styles)), "```",
        ])
    if context.matching_rule_text:
        parts.extend(["", "Matching CSS rules:", "```css", context.matching_rule_text, "```"])
    return "\n".join(parts)


def build_relevance_message(question: str, summary: str) -> str:
    return f'Question: "{question}"\n\nDOM summary (semantic outline):\n{summary}'


def build_answer_message(question: str, relevant_dom: str) -> str:
    return f'Question: "{question}"\n\nRelevant DOM context:\n{relevant_dom}'
