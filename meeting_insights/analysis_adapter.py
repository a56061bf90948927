"""Analysis adapters: one LLM vendor call turned into a MeetingAnalysis.

Key components:
- ANALYSIS_SYSTEM_PROMPT / ANALYSIS_USER_TEMPLATE: the fixed extraction prompt
- AnalysisAdapter: protocol implemented by every provider variant
- CloudLLMAnalysisAdapter: shared prompt building, JSON extraction and shape checks
- OpenAIAnalysisAdapter: OpenAI Chat Completions with JSON mode
- AnthropicAnalysisAdapter: Anthropic Messages (JSON extracted from text)
- MockAnalysisAdapter: canned responses, no network
- create_adapter: factory selecting a variant by provider name

Whatever goes wrong inside ``analyze`` (vendor exception, empty reply,
malformed JSON, missing fields) surfaces as a single AdapterError; vendor
exception types never leave this module.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Protocol

from .exceptions import AdapterError
from .llm_client import (
    LLMConfig,
    LLMProvider,
    MockProvider,
    create_llm_provider,
)
from .models import (
    DEFAULT_TITLE,
    SENTIMENTS,
    ActionItem,
    KeyDecision,
    MeetingAnalysis,
    optional_text,
)

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 4096

# -----------------------------------------------------------------------------
# Prompt Templates
# -----------------------------------------------------------------------------

ANALYSIS_SYSTEM_PROMPT = """You are an expert meeting analyst. Analyze meeting transcripts and extract:
1. A short, descriptive title for the meeting (3-8 words, concise)
2. Action items with owners and deadlines (if mentioned)
3. Key decisions made during the meeting
4. Overall sentiment (positive, neutral, negative, or mixed)
5. A brief summary (optional)

CRITICAL INSTRUCTIONS:
- ONLY extract information that is explicitly stated in the transcript
- If the input is not a meeting transcript (e.g., a URL, code, or unrelated text), return empty arrays for actionItems and keyDecisions, set sentiment to "neutral", and use a generic title
- DO NOT invent or make up action items, decisions, or details that are not present in the transcript
- If no action items are mentioned, return an empty array
- If no decisions are mentioned, return an empty array
- Only extract information that is actually discussed in the meeting

IMPORTANT - Sentiment classification guidelines:
- "positive": Meeting shows enthusiasm, celebration, success, praise, or optimistic outlook
- "neutral": Routine updates, status reports, standard business discussions without strong emotional tone, or non-transcript content
- "negative": Concerns, problems, complaints, criticism, or pessimistic outlook
- "mixed": Combination of positive and negative elements

Most routine status update meetings should be classified as "neutral" unless there are clear positive or negative emotional indicators.

Return a JSON object with this structure:
{
  "title": "Short meeting title (3-8 words)",
  "actionItems": [{"id": "1", "description": "...", "owner": "name or null", "deadline": "date or null"}],
  "keyDecisions": [{"id": "1", "decision": "...", "context": "..."}],
  "sentiment": "positive|neutral|negative|mixed",
  "summary": "brief summary"
}

Be thorough but ONLY extract information that is actually present in the transcript. Do not invent or infer details."""

ANALYSIS_USER_TEMPLATE = "Analyze this meeting transcript:\n\n{transcript}"

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
_BARE_JSON_RE = re.compile(r"\{[\s\S]*\}")


# -----------------------------------------------------------------------------
# Protocol
# -----------------------------------------------------------------------------


class AnalysisAdapter(Protocol):
    """Protocol for transcript analysis providers.

    Implementations must raise AdapterError (and only AdapterError) on failure
    so that the orchestrator can decide on fallback by error kind.
    """

    @property
    def provider_name(self) -> str:
        """Provider identifier ("openai", "anthropic", ...)."""
        ...

    async def analyze(self, transcript: str) -> MeetingAnalysis:
        """Analyze a transcript and return the structured result."""
        ...


# -----------------------------------------------------------------------------
# Cloud adapter base
# -----------------------------------------------------------------------------


class CloudLLMAnalysisAdapter:
    """Base class for LLM-backed analysis adapters.

    Subclasses set:
    - PROVIDER_NAME: identifier used in configuration and logs
    - DISPLAY_NAME: human-readable vendor name used in error messages
    - JSON_GUARANTEED: True if the vendor returns bare JSON (no extraction needed)
    """

    PROVIDER_NAME = "llm"
    DISPLAY_NAME = "LLM"
    JSON_GUARANTEED = False

    def __init__(self, provider: LLMProvider) -> None:
        self._provider = provider

    @property
    def provider_name(self) -> str:
        return self.PROVIDER_NAME

    @property
    def model_name(self) -> str:
        return self._provider.model

    def _build_prompt(self, transcript: str) -> tuple[str, str]:
        """Return (system_prompt, user_prompt) for a transcript."""
        return ANALYSIS_SYSTEM_PROMPT, ANALYSIS_USER_TEMPLATE.format(transcript=transcript)

    def _extract_json_text(self, response_text: str) -> str:
        """Pull the JSON object out of a free-text reply.

        Tries a markdown code fence first, then the outermost ``{...}`` span,
        then gives the text back unchanged so json.loads reports the error.
        """
        text = response_text.strip()
        if self.JSON_GUARANTEED:
            return text

        fenced = _FENCED_JSON_RE.search(text)
        if fenced:
            return fenced.group(1)
        bare = _BARE_JSON_RE.search(text)
        if bare:
            return bare.group(0)
        return text

    def _parse_response(self, response_text: str) -> MeetingAnalysis:
        """Parse and validate an LLM reply.

        Args:
            response_text: Raw text returned by the provider.

        Returns:
            MeetingAnalysis with provider provenance filled in.

        Raises:
            ValueError: If the reply is not JSON or lacks required fields.
        """
        data = json.loads(self._extract_json_text(response_text))
        if not isinstance(data, dict):
            raise ValueError(f"Invalid response structure from {self.DISPLAY_NAME}")

        action_items_raw = data.get("actionItems", data.get("action_items"))
        key_decisions_raw = data.get("keyDecisions", data.get("key_decisions"))
        sentiment_raw = data.get("sentiment")

        if (
            not isinstance(action_items_raw, list)
            or not isinstance(key_decisions_raw, list)
            or not sentiment_raw
        ):
            raise ValueError(f"Invalid response structure from {self.DISPLAY_NAME}")

        sentiment = str(sentiment_raw).strip().lower()
        if sentiment not in SENTIMENTS:
            raise ValueError(f"Invalid sentiment from {self.DISPLAY_NAME}: {sentiment_raw!r}")

        action_items: list[ActionItem] = []
        for raw in action_items_raw:
            if not isinstance(raw, dict):
                continue
            item = ActionItem.from_dict(raw)
            if not item.description:
                logger.debug("Dropping action item without description: %r", raw)
                continue
            # Identifiers and timestamps are assigned by the store
            item.id = None
            item.created_at = None
            action_items.append(item)

        key_decisions: list[KeyDecision] = []
        for raw in key_decisions_raw:
            if not isinstance(raw, dict):
                continue
            decision = KeyDecision.from_dict(raw)
            if not decision.decision:
                logger.debug("Dropping key decision without text: %r", raw)
                continue
            decision.id = None
            decision.created_at = None
            key_decisions.append(decision)

        return MeetingAnalysis(
            title=optional_text(data.get("title")) or DEFAULT_TITLE,
            action_items=action_items,
            key_decisions=key_decisions,
            sentiment=sentiment,  # type: ignore[arg-type]
            summary=optional_text(data.get("summary")),
            provider=self.PROVIDER_NAME,
            model=self.model_name,
        )

    async def analyze(self, transcript: str) -> MeetingAnalysis:
        """Analyze a transcript with a single provider call.

        Raises:
            AdapterError: On any failure, with the original exception chained.
        """
        system_prompt, user_prompt = self._build_prompt(transcript)
        start_time = time.perf_counter()

        try:
            response = await self._provider.complete(system_prompt, user_prompt)
            analysis = self._parse_response(response.text)
        except Exception as e:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            logger.warning(
                "%s analysis failed after %d ms: %s",
                self.DISPLAY_NAME,
                latency_ms,
                e,
                extra={"provider": self.PROVIDER_NAME, "model": self.model_name},
            )
            raise AdapterError(
                f"{self.DISPLAY_NAME} analysis failed: {e}",
                provider=self.PROVIDER_NAME,
                cause=e,
            ) from e

        logger.info(
            "%s analysis succeeded in %d ms (%d action items, %d decisions)",
            self.DISPLAY_NAME,
            int((time.perf_counter() - start_time) * 1000),
            len(analysis.action_items),
            len(analysis.key_decisions),
            extra={"provider": self.PROVIDER_NAME, "model": self.model_name},
        )
        return analysis


class OpenAIAnalysisAdapter(CloudLLMAnalysisAdapter):
    """Analysis adapter using the OpenAI API in JSON mode.

    Example:
        >>> adapter = OpenAIAnalysisAdapter(api_key="sk-...", model="gpt-4o-mini")
        >>> analysis = await adapter.analyze(transcript)
    """

    PROVIDER_NAME = "openai"
    DISPLAY_NAME = "OpenAI"
    JSON_GUARANTEED = True

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        temperature: float = ANALYSIS_TEMPERATURE,
        max_tokens: int = ANALYSIS_MAX_TOKENS,
    ) -> None:
        config = LLMConfig(
            provider="openai",
            model=model,
            api_key=api_key,
            base_url=base_url,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )
        super().__init__(create_llm_provider(config))


class AnthropicAnalysisAdapter(CloudLLMAnalysisAdapter):
    """Analysis adapter using the Anthropic API (Claude models).

    Claude has no JSON mode, so the reply is searched for a fenced or bare
    JSON object before parsing.
    """

    PROVIDER_NAME = "anthropic"
    DISPLAY_NAME = "Anthropic"
    JSON_GUARANTEED = False

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = ANALYSIS_TEMPERATURE,
        max_tokens: int = ANALYSIS_MAX_TOKENS,
    ) -> None:
        config = LLMConfig(
            provider="anthropic",
            model=model,
            api_key=api_key,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        super().__init__(create_llm_provider(config))


class MockAnalysisAdapter(CloudLLMAnalysisAdapter):
    """Adapter backed by MockProvider; used by tests and offline demos."""

    PROVIDER_NAME = "mock"
    DISPLAY_NAME = "Mock"
    JSON_GUARANTEED = False

    def __init__(
        self,
        responses: dict[str, str | Exception] | None = None,
        default_response: str | Exception | None = None,
        model: str | None = None,
    ) -> None:
        config = LLMConfig(provider="mock", model=model)
        super().__init__(
            create_llm_provider(config, responses=responses, default_response=default_response)
        )

    @property
    def calls(self) -> list[tuple[str, str]]:
        provider: MockProvider = self._provider  # type: ignore[assignment]
        return provider.calls


# -----------------------------------------------------------------------------
# Factory function
# -----------------------------------------------------------------------------


def create_adapter(provider: str, **kwargs: Any) -> CloudLLMAnalysisAdapter:
    """Create an analysis adapter by provider name.

    Args:
        provider: "openai", "anthropic" or "mock".
        **kwargs: Passed to the adapter constructor (api_key, model, ...).

    Returns:
        A configured adapter.

    Raises:
        ValueError: If provider is unknown.
    """
    if provider == "openai":
        return OpenAIAnalysisAdapter(**kwargs)
    elif provider == "anthropic":
        return AnthropicAnalysisAdapter(**kwargs)
    elif provider == "mock":
        return MockAnalysisAdapter(**kwargs)
    else:
        raise ValueError(
            f"Unknown analysis provider: {provider}. Supported: 'openai', 'anthropic', 'mock'."
        )


__all__ = [
    "ANALYSIS_SYSTEM_PROMPT",
    "ANALYSIS_USER_TEMPLATE",
    "AnalysisAdapter",
    "CloudLLMAnalysisAdapter",
    "OpenAIAnalysisAdapter",
    "AnthropicAnalysisAdapter",
    "MockAnalysisAdapter",
    "create_adapter",
]
