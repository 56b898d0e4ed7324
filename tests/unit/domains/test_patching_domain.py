"""Tests for the patching bounded context.

Covers:
- StyleSanitizer (property allow-list, value rules)
- MarkupSanitizer (tag/attribute allow-list, URL schemes)
- PatchApplier (style-only, content replacement, skipped declarations)
"""

import pytest
from bs4 import BeautifulSoup

from pagepolish.dom import LiveDocument
from pagepolish.domains.patching import (
    MarkupSanitizer,
    Patch,
    PatchApplier,
    StyleSanitizer,
    url_is_safe,
)
from pagepolish.domains.shared.errors import AddressResolutionError, PatchValidationError
from pagepolish.domains.targeting import Address, Target


@pytest.fixture
def document(sample_html, sample_url):
    return LiveDocument(sample_html, sample_url)


@pytest.fixture
def button_target(document):
    button = document.soup.select("button.cta")[0]
    return Target(node=button, address=Address("main section.card div.actions button.cta:nth-child(1)"))


class TestStyleSanitizer:
    def test_accepts_allow_listed_declarations(self):
        accepted, rejected = StyleSanitizer().parse("color: red; padding: 4px 8px !important")
        assert [d.css_text for d in accepted] == ["color: red", "padding: 4px 8px !important"]
        assert rejected == []

    def test_rejects_malformed_and_unknown(self):
        accepted, rejected = StyleSanitizer().parse("color: red; bogus-prop purple; foo: bar")
        assert [d.name for d in accepted] == ["color"]
        assert [chunk for chunk, _ in rejected] == ["bogus-prop purple", "foo: bar"]

    @pytest.mark.parametrize(
        "style",
        [
            "width: expression(alert(1))",
            "background-image: url(javascript:alert(1))",
            "background: url('vbscript:x')",
            "color: red</style><script>",
            "background-image: url(data:text/html;base64,AAAA)",
        ],
    )
    def test_rejects_script_bearing_values(self, style):
        accepted, rejected = StyleSanitizer().parse(style)
        assert accepted == []
        assert len(rejected) == 1

    def test_allows_safe_urls(self):
        accepted, _ = StyleSanitizer().parse(
            "background-image: url('https://cdn.test/a.png'); background: url(data:image/png;base64,AAAA)"
        )
        assert len(accepted) == 2

    @pytest.mark.parametrize(
        "style",
        [
            "pointer-events: none",
            "clip-path: circle(50%)",
            "animation: pulse 2s ease-in-out infinite",
            "user-select: none",
            "inset: 0",
            "margin-inline: auto",
            "padding-block: 12px",
            "background-clip: text",
            "grid-auto-flow: column",
        ],
    )
    def test_accepts_motion_logical_and_painting_properties(self, style):
        accepted, rejected = StyleSanitizer().parse(style)
        assert [d.css_text for d in accepted] == [style]
        assert rejected == []

    def test_custom_properties_not_allowed(self):
        accepted, rejected = StyleSanitizer().parse("--brand: red")
        assert accepted == [] and rejected

    def test_clean_keeps_last_value(self):
        assert StyleSanitizer().clean("color: red; color: blue; onclick: x") == "color: blue"


class TestUrlIsSafe:
    @pytest.mark.parametrize("url", ["/path", "#frag", "https://a.test", "mailto:a@b.c", "page.html"])
    def test_safe(self, url):
        assert url_is_safe(url)

    @pytest.mark.parametrize("url", ["javascript:alert(1)", " JaVa\tScript:alert(1)", "data:image/png;base64,x", "file:///etc/passwd"])
    def test_unsafe(self, url):
        assert not url_is_safe(url)

    def test_data_image_only_when_allowed(self):
        assert url_is_safe("data:image/png;base64,AAAA", allow_data_image=True)
        assert not url_is_safe("data:image/svg+xml;base64,AAAA", allow_data_image=True)


class TestMarkupSanitizer:
    def test_drops_scripts_with_content(self):
        cleaned = MarkupSanitizer().sanitize("<p>hi<script>alert(1)</script></p>")
        assert cleaned == "<p>hi</p>"

    def test_strips_event_handlers_and_bad_urls(self):
        cleaned = MarkupSanitizer().sanitize(
            '<a href="javascript:alert(1)" onclick="x()" class="btn">Go</a>'
        )
        assert cleaned == '<a class="btn">Go</a>'

    def test_unwraps_unknown_tags(self):
        cleaned = MarkupSanitizer().sanitize("<custom-card><b>bold</b></custom-card>")
        assert cleaned == "<b>bold</b>"

    def test_blank_target_gets_rel(self):
        cleaned = MarkupSanitizer().sanitize('<a href="https://x.test" target="_blank">x</a>')
        assert 'rel="noopener noreferrer"' in cleaned

    def test_inline_style_is_cleaned(self):
        cleaned = MarkupSanitizer().sanitize(
            '<span style="color: red; background: url(javascript:x)">t</span>'
        )
        assert cleaned == '<span style="color: red">t</span>'

    def test_engine_attributes_removed(self):
        cleaned = MarkupSanitizer().sanitize('<div data-polish-extension="true" data-id="3">t</div>')
        assert cleaned == '<div data-id="3">t</div>'

    def test_comments_removed(self):
        assert MarkupSanitizer().sanitize("<p>a<!-- note --></p>") == "<p>a</p>"

    def test_keeps_form_controls(self):
        cleaned = MarkupSanitizer().sanitize(
            '<form action="/signup" method="post">'
            '<fieldset><legend>Join</legend>'
            '<input type="email" name="email" placeholder="you@site.test" required>'
            '<select name="plan"><option value="pro" selected>Pro</option></select>'
            '<textarea name="note" rows="3"></textarea>'
            '</fieldset></form>'
        )
        soup = BeautifulSoup(cleaned, "html.parser")
        form = soup.find("form")
        assert form["action"] == "/signup" and form["method"] == "post"
        field = soup.find("input")
        assert field["type"] == "email" and field["name"] == "email"
        assert field.has_attr("required")
        assert soup.find("option").has_attr("selected")
        assert soup.find("textarea")["rows"] == "3"
        assert soup.find("legend").get_text() == "Join"

    def test_form_urls_must_be_safe(self):
        cleaned = MarkupSanitizer().sanitize(
            '<form action="javascript:alert(1)"><button formaction="javascript:x()">Go</button>'
            '<input type="text" onfocus="x()"></form>'
        )
        soup = BeautifulSoup(cleaned, "html.parser")
        assert not soup.find("form").has_attr("action")
        assert not soup.find("button").has_attr("formaction")
        assert not soup.find("input").has_attr("onfocus")

    def test_keeps_media_elements(self):
        cleaned = MarkupSanitizer().sanitize(
            '<video src="/intro.mp4" poster="/intro.jpg" controls muted>'
            '<track src="/intro.vtt" kind="captions" srclang="en"></video>'
            '<audio src="javascript:x" controls></audio>'
        )
        soup = BeautifulSoup(cleaned, "html.parser")
        video = soup.find("video")
        assert video["src"] == "/intro.mp4" and video["poster"] == "/intro.jpg"
        assert video.has_attr("controls")
        assert soup.find("track")["kind"] == "captions"
        audio = soup.find("audio")
        assert audio is not None and not audio.has_attr("src")


class TestPatchApplier:
    def test_bogus_declaration_skipped_silently(self, document, button_target):
        patch = Patch(style_text="color: red; bogus-prop purple", content_text="", rationale="red")
        result = PatchApplier(document).apply(button_target, patch)

        assert document.inline_style(button_target.node)["color"].value == "red"
        assert result.applied_declarations == ["color: red"]
        assert [s.text for s in result.skipped_declarations] == ["bogus-prop purple"]
        assert result.warnings
        assert result.content_replaced is False

    def test_style_merges_with_existing_inline_style(self):
        doc = LiveDocument('<body><p style="margin: 2px; color: blue">t</p></body>', "https://m.test/")
        target = Target(node=doc.soup.find("p"), address=Address("p"))
        PatchApplier(doc).apply(target, Patch(style_text="color: red"))
        assert doc.soup.find("p")["style"] == "margin: 2px; color: red"

    def test_content_replaced_then_styled(self, document, button_target):
        patch = Patch(
            style_text="color: white",
            content_text='<button class="cta big" onclick="steal()">Buy today</button>',
            rationale="New copy",
        )
        result = PatchApplier(document).apply(button_target, patch)

        assert result.content_replaced
        buttons = document.soup.select("button.cta")
        assert buttons[0].get_text() == "Buy today"
        assert buttons[0] is result.node
        assert "onclick" not in buttons[0].attrs
        assert buttons[0]["style"] == "color: white"
        assert len(buttons) == 2

    def test_content_keeps_signup_form(self):
        doc = LiveDocument(
            '<body><div class="signup"><form action="/join">'
            '<label for="email">Email</label><input id="email" type="email" name="email">'
            "<button>Join</button></form></div></body>",
            "https://m.test/",
        )
        target = Target(node=doc.soup.select_one("div.signup"), address=Address("div.signup"))
        patch = Patch(
            content_text=(
                '<div class="signup"><h2>Stay in the loop</h2><form action="/join">'
                '<label for="email">Email</label><input id="email" type="email" name="email">'
                "<button>Join</button></form></div>"
            ),
        )
        PatchApplier(doc).apply(target, patch)

        signup = doc.soup.select_one("div.signup")
        assert signup.find("h2").get_text() == "Stay in the loop"
        assert signup.find("form")["action"] == "/join"
        field = signup.find("input")
        assert field["type"] == "email" and field["name"] == "email"
        assert signup.find("label")["for"] == "email"

    def test_text_only_content(self, document, button_target):
        patch = Patch(style_text="color: red", content_text="Just text")
        result = PatchApplier(document).apply(button_target, patch)
        assert result.node is None
        assert result.applied_declarations == []
        assert result.skipped_declarations[0].reason.startswith("replacement content")
        assert "Just text" in document.body_markup()

    def test_content_that_sanitizes_to_nothing(self, document, button_target):
        with pytest.raises(PatchValidationError):
            PatchApplier(document).apply(button_target, Patch(content_text="<script>x()</script>"))
        assert document.soup.select("button.cta")[0] is button_target.node

    def test_detached_target(self, document, button_target):
        button_target.node.extract()
        with pytest.raises(AddressResolutionError):
            PatchApplier(document).apply(button_target, Patch(style_text="color: red"))

    def test_empty_patch_changes_nothing(self, document, button_target):
        before = document.serialize()
        result = PatchApplier(document).apply(button_target, Patch(rationale="nothing to do"))
        assert document.serialize() == before
        assert result.rationale == "nothing to do"

    def test_patch_to_dict(self):
        patch = Patch(style_text="a: b", content_text="", rationale="r")
        assert patch.to_dict() == {"styleChanges": "a: b", "contentChanges": "", "rationale": "r"}
