"""
LLM provider abstraction for transcript analysis.

Each provider sends one system + user message pair to a vendor's
text-generation endpoint and returns the generated text. Providers do not
retry; a failed call raises and the caller decides what to do next.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .exceptions import ConfigurationError


@dataclass
class LLMConfig:
    """Configuration for LLM providers."""

    provider: str  # "openai", "anthropic", "mock"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.3
    max_tokens: int = 4096
    # Ask the vendor for a JSON object response where supported
    json_mode: bool = False

    def __repr__(self) -> str:
        """Secure repr that masks API key."""
        key_repr = "None"
        if self.api_key:
            if len(self.api_key) > 6:
                key_repr = f"'{self.api_key[:3]}...'"
            else:
                key_repr = "'***'"

        return (
            f"LLMConfig(provider={self.provider!r}, model={self.model!r}, "
            f"api_key={key_repr}, base_url={self.base_url!r}, "
            f"temperature={self.temperature!r}, max_tokens={self.max_tokens!r}, "
            f"json_mode={self.json_mode!r})"
        )


@dataclass
class LLMResponse:
    """Response from LLM completion."""

    text: str
    tokens_used: int | None = None
    duration_ms: int = 0
    raw_response: Any = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    default_model: str = ""

    def __init__(self, config: LLMConfig):
        self.config = config

    @property
    def model(self) -> str:
        """Model identifier used for requests."""
        return self.config.model or self.default_model

    @abstractmethod
    async def complete(self, system: str, user: str) -> LLMResponse:
        """
        Send a completion request to the LLM.

        Args:
            system: System prompt
            user: User prompt

        Returns:
            LLMResponse with the completion text
        """
        ...


class OpenAIProvider(LLMProvider):
    """
    LLM provider using the official OpenAI Python client.

    Supports JSON mode (``response_format={"type": "json_object"}``) when
    ``LLMConfig.json_mode`` is set.
    """

    default_model = "gpt-3.5-turbo"

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        try:
            import openai
        except ImportError as e:
            raise ImportError(
                "openai package not installed. Install with: pip install openai"
            ) from e

        if not self.config.api_key:
            raise ConfigurationError("OpenAI API key not configured. Set OPENAI_API_KEY.")

        # Support custom base URL (for Azure, proxies, etc.)
        client_kwargs: dict[str, Any] = {"api_key": self.config.api_key}
        if self.config.base_url:
            client_kwargs["base_url"] = self.config.base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        return self._client

    async def complete(self, system: str, user: str) -> LLMResponse:
        """Send completion via the OpenAI Chat Completions API."""
        start_time = time.time()
        client = self._get_client()

        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if self.config.json_mode:
            request["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(**request)

        duration_ms = int((time.time() - start_time) * 1000)

        response_text = ""
        if response.choices:
            choice = response.choices[0]
            if choice.message and choice.message.content:
                response_text = choice.message.content

        if not response_text:
            raise ValueError("No response from OpenAI")

        tokens_used = None
        if response.usage:
            tokens_used = response.usage.prompt_tokens + response.usage.completion_tokens

        return LLMResponse(
            text=response_text,
            tokens_used=tokens_used,
            duration_ms=duration_ms,
            raw_response=response,
        )


class AnthropicProvider(LLMProvider):
    """
    LLM provider using the official Anthropic Python client.

    The Messages API has no JSON mode; callers must extract JSON from the text.
    """

    default_model = "claude-sonnet-4-20250514"

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        try:
            import anthropic
        except ImportError as e:
            raise ImportError(
                "anthropic package not installed. Install with: pip install anthropic"
            ) from e

        if not self.config.api_key:
            raise ConfigurationError("Anthropic API key not configured. Set ANTHROPIC_API_KEY.")

        self._client = anthropic.AsyncAnthropic(api_key=self.config.api_key)
        return self._client

    async def complete(self, system: str, user: str) -> LLMResponse:
        """Send completion via the Anthropic Messages API."""
        start_time = time.time()
        client = self._get_client()

        message = await client.messages.create(
            model=self.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            system=system,
            messages=[{"role": "user", "content": user}],
        )

        duration_ms = int((time.time() - start_time) * 1000)

        text_blocks = [block.text for block in message.content if block.type == "text"]
        if not text_blocks:
            raise ValueError("Unexpected response type from Anthropic")

        tokens_used = None
        if message.usage:
            tokens_used = message.usage.input_tokens + message.usage.output_tokens

        return LLMResponse(
            text="".join(text_blocks),
            tokens_used=tokens_used,
            duration_ms=duration_ms,
            raw_response=message,
        )


class MockProvider(LLMProvider):
    """Mock provider for tests and offline demos.

    Returns the first configured response whose key occurs in the user prompt,
    else ``default_response``. An Exception instance as a response is raised.
    """

    default_model = "mock"

    def __init__(
        self,
        config: LLMConfig,
        responses: dict[str, str | Exception] | None = None,
        default_response: str | Exception | None = None,
    ):
        super().__init__(config)
        self.responses = responses or {}
        self.default_response = default_response
        self.call_count = 0
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system: str, user: str) -> LLMResponse:
        """Return mock response."""
        self.call_count += 1
        self.calls.append((system, user))

        response: str | Exception | None = self.default_response
        for key, candidate in self.responses.items():
            if key in user:
                response = candidate
                break

        if isinstance(response, Exception):
            raise response
        if response is None:
            response = json.dumps(
                {"title": "Meeting Analysis", "actionItems": [], "keyDecisions": [], "sentiment": "neutral"}
            )

        return LLMResponse(text=response, duration_ms=1)


def create_llm_provider(config: LLMConfig, **mock_options: Any) -> LLMProvider:
    """
    Factory function to create LLM providers.

    Args:
        config: LLM configuration
        **mock_options: Canned replies for the mock provider
            (``responses``, ``default_response``); ignored otherwise.

    Returns:
        Configured LLM provider instance
    """
    if config.provider == "openai":
        return OpenAIProvider(config)
    elif config.provider == "anthropic":
        return AnthropicProvider(config)
    elif config.provider == "mock":
        return MockProvider(config, **mock_options)
    else:
        raise ValueError(f"Unknown LLM provider: {config.provider}")
