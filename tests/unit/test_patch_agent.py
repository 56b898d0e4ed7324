"""Tests for PatchAgent using pydantic-ai function models."""

import asyncio
import json

import pytest
from pydantic_ai.messages import ModelResponse, TextPart
from pydantic_ai.models.function import FunctionModel

from pagepolish.domains.context.value_objects import ContextSnapshot
from pagepolish.domains.shared.errors import (
    PatchValidationError,
    TransportFailure,
    TransportTimeoutError,
)
from pagepolish.lib.agent import PatchAgent, strip_code_fences
from pagepolish.lib.providers import ProviderConfig


def _context():
    return ContextSnapshot(
        tag="button",
        address="button.cta:nth-child(1)",
        markup_excerpt='<button class="cta">Buy now</button>',
        effective_styles={"background-color": "blue"},
        matching_rule_text=".cta { background-color: blue; }",
        class_list=("cta",),
    )


def _replying(text, seen=None):
    def respond(messages, info):
        if seen is not None:
            seen.append(messages)
        return ModelResponse(parts=[TextPart(text)])

    return FunctionModel(respond)


def _agent(model, timeout=5.0):
    return PatchAgent(ProviderConfig(request_timeout=timeout), model=model)


PATCH_JSON = json.dumps({
    "styleChanges": "background-color: green",
    "contentChanges": "",
    "rationale": "Green button",
})


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestRequestPatch:
    @pytest.mark.asyncio
    async def test_valid_patch(self):
        seen = []
        patch = await _agent(_replying(PATCH_JSON, seen)).request_patch("make it green", _context())
        assert patch.style_text == "background-color: green"
        assert patch.content_text == ""
        assert patch.rationale == "Green button"
        prompt = str(seen[0])
        assert "make it green" in prompt
        assert "button.cta:nth-child(1)" in prompt

    @pytest.mark.asyncio
    async def test_fenced_patch(self):
        patch = await _agent(_replying(f"```json\n{PATCH_JSON}\n```")).request_patch("x", _context())
        assert patch.rationale == "Green button"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        [
            "Sure, I made it green!",
            "[1, 2]",
            json.dumps({"styleChanges": "color: red", "contentChanges": ""}),
            json.dumps({"styleChanges": "a", "contentChanges": "", "rationale": "r", "extra": 1}),
            json.dumps({"styleChanges": 3, "contentChanges": "", "rationale": "r"}),
        ],
    )
    async def test_off_contract_reply(self, reply):
        with pytest.raises(PatchValidationError):
            await _agent(_replying(reply)).request_patch("x", _context())

    @pytest.mark.asyncio
    async def test_provider_error_is_transport_failure(self):
        def explode(messages, info):
            raise RuntimeError("connection reset")

        with pytest.raises(TransportFailure):
            await _agent(FunctionModel(explode)).request_patch("x", _context())

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self):
        async def slow(messages, info):
            await asyncio.sleep(1)
            return ModelResponse(parts=[TextPart(PATCH_JSON)])

        with pytest.raises(TransportTimeoutError):
            await _agent(FunctionModel(slow), timeout=0.05).request_patch("x", _context())


class TestChat:
    @pytest.mark.asyncio
    async def test_identify_relevant_parts(self):
        reply = json.dumps({
            "relevantSelectors": ["button.cta", "#title"],
            "relevantSections": ["main"],
            "needsCSS": True,
            "needsJS": False,
            "reasoning": "Buttons",
            "confidence": 0.9,
        })
        analysis = await _agent(_replying(reply)).identify_relevant_parts("why blue?", "summary")
        assert analysis.relevant_selectors == ("button.cta", "#title")
        assert analysis.needs_css is True
        assert analysis.needs_js is False

    @pytest.mark.asyncio
    async def test_relevance_with_wrong_types(self):
        reply = json.dumps({"relevantSelectors": "button", "needsCSS": "yes"})
        with pytest.raises(PatchValidationError):
            await _agent(_replying(reply)).identify_relevant_parts("q", "s")

    @pytest.mark.asyncio
    async def test_answer_question(self):
        answer = await _agent(_replying("  The button is blue because of .cta.  ")).answer_question("why?", "<button/>")
        assert answer == "The button is blue because of .cta."
