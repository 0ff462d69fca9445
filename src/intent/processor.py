"""Intent orchestration: parse an intent, then execute it (LLM optional; keyword fallback).

With an LLM client, parsing asks the model to classify the intent and code generation asks it for
marker-delimited code/AST/semantics sections. Without one, intents are classified by keyword and
answered from the semantic model.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from src.intent.keywords import classify_intent, classify_llm_reply
from src.intent.prompts import DEFAULT_LANGUAGE, build_codegen_messages, build_parse_messages
from src.intent.schema import Intent, IntentResult, IntentType, SectionedText, StructuredEntities
from src.intent.sections import extract_sections
from src.llm.client import OpenRouterClient
from src.llm.errors import LLMError
from src.semantics.model import Entity, Relation, SemanticModel

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class IntentProcessingError(ValueError):
    """Raised when an intent cannot be parsed or executed."""


class IntentTimeoutError(TimeoutError):
    """Raised when parsing or executing an intent exceeds its bounded wait."""

    def __init__(self, stage: str, timeout_s: float) -> None:
        self.stage = stage
        self.timeout_s = timeout_s
        super().__init__(f"Intent {stage} timed out after {timeout_s:g} seconds")


def _entities_payload(entities: list[Entity], relations: list[Relation]) -> StructuredEntities:
    return StructuredEntities(
        entities=[e.model_dump(mode="json") for e in entities],
        relations=[r.model_dump(mode="json", by_alias=True) for r in relations],
    )


class IntentProcessor:
    """Parse and execute development intents.

    Args:
        semantic_model: Registry used for non-LLM execution and for modify/delete/query intents.
        llm_client: Optional OpenRouter client. When `None`, keyword parsing is used and create
            intents are answered from the semantic model.
        model: Model override applied to every LLM call made by this processor.
    """

    def __init__(
            self,
            semantic_model: SemanticModel,
            llm_client: OpenRouterClient | None = None,
            *,
            model: str | None = None,
            language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._semantic_model = semantic_model
        self._llm = llm_client
        self._model = model
        self._language = language

    @property
    def llm_client(self) -> OpenRouterClient | None:
        return self._llm

    async def parse_intent(self, raw: str) -> Intent:
        """Classify a raw intent.

        An LLM failure falls back to keyword parsing; an LLM reply with no choices is an error.
        """

        if self._llm is None:
            intent_type, target = classify_intent(raw)
            return Intent(raw=raw, type=intent_type, target=target)

        try:
            response = await self._llm.chat_completion(build_parse_messages(raw), model=self._model)
        except LLMError as exc:
            logger.warning("LLM intent parsing failed, using keyword rules: %s", exc)
            intent_type, target = classify_intent(raw)
            return Intent(raw=raw, type=intent_type, target=target)

        text = response.first_content()
        if text is None:
            raise IntentProcessingError("no response from LLM API")

        logger.info("LLM intent parsing reply received length=%d", len(text))
        intent_type, target = classify_llm_reply(text)
        return Intent(raw=raw, type=intent_type, target=target)

    async def execute_intent(self, intent: Intent) -> IntentResult:
        """Execute a parsed intent.

        Raises:
            IntentProcessingError: For unknown intent types or nothing to modify/delete.
            LLMError: If code generation fails at the transport level.
        """

        if intent.type == IntentType.create:
            return await self._handle_create(intent)
        if intent.type == IntentType.modify:
            return self._handle_change(intent, verb="modify")
        if intent.type == IntentType.delete:
            return self._handle_change(intent, verb="delete")
        if intent.type == IntentType.query:
            entities, relations = self._semantic_model.query_by_intent(intent.raw)
            return _entities_payload(entities, relations)
        raise IntentProcessingError("unknown intent type")

    async def _handle_create(self, intent: Intent) -> IntentResult:
        if self._llm is not None:
            return await self.generate_code(intent)
        entities = self._semantic_model.generate_entities_from_intent(intent.raw)
        return _entities_payload(entities, [])

    def _handle_change(self, intent: Intent, *, verb: str) -> StructuredEntities:
        entities, relations = self._semantic_model.query_by_intent(intent.raw)
        if not entities:
            raise IntentProcessingError(f"no entities found to {verb}")
        return _entities_payload(entities, relations)

    async def generate_code(self, intent: Intent) -> SectionedText:
        """Ask the LLM for code and split its reply into sections."""

        if self._llm is None:
            raise IntentProcessingError("code generation requires an LLM client")

        messages = build_codegen_messages(intent.raw, language=self._language)
        response = await self._llm.chat_completion(messages, model=self._model)

        text = response.first_content()
        if text is None:
            raise IntentProcessingError("no response from LLM API")

        logger.info("LLM code generation reply received length=%d", len(text))
        return SectionedText.from_sections(extract_sections(text))


async def bounded(awaitable: Awaitable[_T], *, stage: str, timeout_s: float) -> _T:
    """Await `awaitable` for at most `timeout_s` seconds.

    Raises:
        IntentTimeoutError: If the limit elapses first.
    """

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        # wait_for has already cancelled the inner task, aborting its HTTP request.
        raise IntentTimeoutError(stage, timeout_s) from exc


async def run_intent(
        processor: IntentProcessor,
        raw: str,
        *,
        parse_timeout_s: float = 30.0,
        execute_timeout_s: float = 60.0,
) -> tuple[Intent, IntentResult]:
    """Parse then execute `raw`, bounding each stage's latency.

    Raises:
        IntentTimeoutError: If a stage exceeds its limit. The stage's in-flight work is cancelled.
    """

    intent = await bounded(processor.parse_intent(raw), stage="parsing", timeout_s=parse_timeout_s)
    logger.info("intent parsed type=%s target=%s", intent.type, intent.target)
    result = await bounded(
        processor.execute_intent(intent),
        stage="execution",
        timeout_s=execute_timeout_s,
    )
    return intent, result
