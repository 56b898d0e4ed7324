"""Generative client using pydantic-ai.

PatchAgent turns an instruction plus a context snapshot into a validated
Patch, and answers chat questions in two steps (relevance analysis, then the
answer itself).
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError
from pydantic_ai import Agent

from pagepolish.domains.context.value_objects import ContextSnapshot
from pagepolish.domains.patching.value_objects import Patch
from pagepolish.domains.session.value_objects import RelevanceAnalysis
from pagepolish.domains.shared.errors import (
    PatchValidationError,
    TransportFailure,
    TransportTimeoutError,
)
from .prompts import (
    ANSWER_SYSTEM_PROMPT,
    EDIT_SYSTEM_PROMPT,
    RELEVANCE_SYSTEM_PROMPT,
    build_answer_message,
    build_edit_message,
    build_relevance_message,
)
from .providers import ProviderConfig, get_model_instance

logger = logging.getLogger(__name__)


class PatchResponse(BaseModel):
    """Exact response shape required from the generative service."""

    model_config = ConfigDict(extra="forbid")

    styleChanges: StrictStr
    contentChanges: StrictStr
    rationale: StrictStr


class RelevanceResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    relevantSelectors: List[StrictStr] = []
    relevantSections: List[StrictStr] = []
    needsCSS: StrictBool = False
    needsJS: StrictBool = False
    reasoning: str = ""


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    response = text.strip()
    if "```" in response:
        parts = response.split("```")
        if len(parts) >= 3:
            response = parts[1]
            first_line, _, rest = response.partition("\n")
            if first_line.strip().lower() in ("json", "javascript", "js", ""):
                response = rest
    return response.strip()


def parse_json_object(text: str) -> Dict[str, Any]:
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise PatchValidationError("Response is not valid JSON", detail=str(e)) from e
    if not isinstance(data, dict):
        raise PatchValidationError("Response is not a JSON object")
    return data


class PatchAgent:
    """Generative service client backed by a pydantic-ai Agent.

    ``model`` may be given explicitly (e.g. a pydantic-ai ``FunctionModel``);
    otherwise one is built from ``config`` with the session's credential.
    """

    def __init__(self, config: Optional[ProviderConfig] = None, model: Any = None):
        self.config = config or ProviderConfig()
        self._model = model
        self._models: Dict[str, Any] = {}

    def _model_for(self, credential: Optional[str]):
        if self._model is not None:
            return self._model
        key = credential or ""
        if key not in self._models:
            self._models[key] = get_model_instance(self.config, credential)
        return self._models[key]

    def _build_agent(self, system_prompt: str, credential: Optional[str]) -> Agent:
        return Agent(model=self._model_for(credential), system_prompt=system_prompt)

    async def _run(
        self,
        system_prompt: str,
        message: str,
        credential: Optional[str],
        *,
        temperature: float,
        max_tokens: int,
    ) -> str:
        agent = self._build_agent(system_prompt, credential)
        logger.debug("Generative prompt: %s...", message[:500])
        try:
            result = await asyncio.wait_for(
                agent.run(
                    message,
                    model_settings={"temperature": temperature, "max_tokens": max_tokens},
                ),
                timeout=self.config.request_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransportTimeoutError(
                f"Generative service did not respond within {self.config.request_timeout:g}s"
            ) from e
        except Exception as e:
            logger.error("Generative request failed: %s", e)
            raise TransportFailure(f"Generative request failed: {e}") from e

        output = result.output
        if not isinstance(output, str) or not output.strip():
            raise PatchValidationError("Empty response from generative service")
        return output

    async def request_patch(
        self, instruction: str, context: ContextSnapshot, credential: Optional[str] = None
    ) -> Patch:
        """Ask for a patch for the target described by ``context``.

        Raises:
            PatchValidationError: on any response shape other than
                ``{styleChanges, contentChanges, rationale}``.
            TransportTimeoutError / TransportFailure: if the call fails.
        """
        text = await self._run(
            EDIT_SYSTEM_PROMPT,
            build_edit_message(instruction, context),
            credential,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        data = parse_json_object(text)
        try:
            response = PatchResponse.model_validate(data)
        except ValidationError as e:
            raise PatchValidationError(
                "Response does not match the patch contract", detail=str(e)
            ) from e
        logger.info("Received patch: %s", response.rationale[:120])
        return Patch(
            style_text=response.styleChanges,
            content_text=response.contentChanges,
            rationale=response.rationale,
        )

    async def identify_relevant_parts(
        self, question: str, summary: str, credential: Optional[str] = None
    ) -> RelevanceAnalysis:
        text = await self._run(
            RELEVANCE_SYSTEM_PROMPT,
            build_relevance_message(question, summary),
            credential,
            temperature=self.config.analysis_temperature,
            max_tokens=self.config.analysis_max_tokens,
        )
        try:
            response = RelevanceResponse.model_validate(parse_json_object(text))
        except ValidationError as e:
            raise PatchValidationError(
                "Relevance analysis has an unexpected shape", detail=str(e)
            ) from e
        return RelevanceAnalysis(
            relevant_selectors=tuple(response.relevantSelectors),
            relevant_sections=tuple(response.relevantSections),
            needs_css=response.needsCSS,
            needs_js=response.needsJS,
            reasoning=response.reasoning,
        )

    async def answer_question(
        self, question: str, relevant_dom: str, credential: Optional[str] = None
    ) -> str:
        text = await self._run(
            ANSWER_SYSTEM_PROMPT,
            build_answer_message(question, relevant_dom),
            credential,
            temperature=self.config.analysis_temperature,
            max_tokens=self.config.answer_max_tokens,
        )
        return text.strip()
