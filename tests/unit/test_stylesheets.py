"""Tests for declaration parsing, specificity and the cascade resolver."""

import pytest
from bs4 import BeautifulSoup

from pagepolish.dom.stylesheets import (
    StyleResolver,
    StyleSheet,
    default_display,
    parse_declaration,
    parse_declarations,
    parse_stylesheet,
    specificity,
    split_declarations,
    split_selector_list,
)
from pagepolish.domains.shared.errors import StyleSheetAccessError


class TestDeclarations:
    def test_split_respects_parentheses_and_quotes(self):
        text = "background: url('a;b.png'); content: \"x;y\"; color: red"
        assert split_declarations(text) == [
            "background: url('a;b.png')",
            'content: "x;y"',
            "color: red",
        ]

    def test_comments_removed(self):
        assert split_declarations("color: red; /* note; */ margin: 0") == ["color: red", "margin: 0"]

    def test_parse_important(self):
        declaration = parse_declaration("COLOR: Red !important")
        assert declaration.name == "color"
        assert declaration.value == "Red"
        assert declaration.important

    @pytest.mark.parametrize("chunk", ["bogus-prop purple", "1abc: x", "color:", ": red"])
    def test_malformed(self, chunk):
        assert parse_declaration(chunk) is None

    def test_parse_declarations_drops_malformed(self):
        assert [d.name for d in parse_declarations("color: red; nonsense; margin: 0")] == ["color", "margin"]


class TestSelectors:
    def test_split_selector_list(self):
        assert split_selector_list("a, b:is(c, d), [data-x='1,2']") == ["a", "b:is(c, d)", "[data-x='1,2']"]

    @pytest.mark.parametrize(
        "selector,expected",
        [
            ("#title", (1, 0, 0)),
            ("button.cta", (0, 1, 1)),
            ("main section.card div.actions button.cta:nth-child(1)", (0, 4, 4)),
            ("a[href]", (0, 1, 1)),
            ("p::first-line", (0, 0, 2)),
        ],
    )
    def test_specificity(self, selector, expected):
        assert specificity(selector) == expected


class TestParseStylesheet:
    def test_skips_at_rules(self):
        css = """
        @import url("x.css");
        @charset "utf-8";
        .a { color: red; }
        @media (max-width: 600px) { .a { color: blue; } }
        .b { margin: 0 }
        """
        rules = parse_stylesheet(css)
        assert [r.selector_text for r in rules] == [".a", ".b"]
        assert [r.order for r in rules] == [0, 1]
        assert rules[0].css_text == ".a { color: red; }"

    def test_inaccessible_sheet(self):
        sheet = StyleSheet(None, href="https://cdn.test/x.css")
        assert not sheet.accessible
        with pytest.raises(StyleSheetAccessError):
            sheet.rules


class TestStyleResolver:
    def _soup(self, body):
        return BeautifulSoup(f"<html><body>{body}</body></html>", "html.parser")

    def test_specificity_and_order(self):
        soup = self._soup("<p id='x' class='c'>t</p>")
        sheets = [StyleSheet("#x { color: red; } p.c { color: blue; } p { margin: 1px; } p { margin: 2px; }")]
        style = StyleResolver(sheets).computed_style(soup.p)
        assert style["color"] == "red"
        assert style["margin"] == "2px"

    def test_inherit_and_initial(self):
        soup = self._soup("<div><span>t</span></div>")
        sheets = [StyleSheet("div { margin: 4px; border: 1px solid; } span { border: inherit; margin: initial; }")]
        style = StyleResolver(sheets).computed_style(soup.span)
        assert style["border"] == "1px solid"
        assert "margin" not in style

    def test_unsupported_selectors_never_match(self):
        soup = self._soup("<p>t</p>")
        sheets = [StyleSheet("p:hover:::bad { color: red; } p { color: blue; }")]
        assert StyleResolver(sheets).computed_style(soup.p)["color"] == "blue"

    def test_inheritance_through_deep_nesting(self):
        depth = 3000
        soup = self._soup("<section>" * depth + "<p>t</p>" + "</section>" * depth)
        sheets = [StyleSheet("body { color: green; font-size: 18px; } section { margin: 0; }")]
        resolver = StyleResolver(sheets)
        style = resolver.computed_style(soup.p)
        assert style["color"] == "green"
        assert style["font-size"] == "18px"
        assert "margin" not in style
        assert resolver.computed_style(soup.p) is style

    def test_default_display(self):
        assert default_display("div") == "block"
        assert default_display("span") == "inline"
        assert default_display("li") == "list-item"
