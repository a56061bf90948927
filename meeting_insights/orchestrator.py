"""Analysis orchestration: primary adapter, optional fallback, persistence.

Flow for one request:

    no provider configured  -> ConfigurationError (no network call)
    primary succeeds        -> persist -> AnalysisRecord
    primary fails           -> fallback configured? run it : re-raise primary error
    fallback succeeds       -> persist -> AnalysisRecord
    fallback fails          -> ProvidersExhaustedError (both causes)

Only AdapterError triggers the fallback. A storage failure after a
successful analysis is raised as StorageError and never retried against
another provider.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from .analysis_adapter import AnalysisAdapter, create_adapter
from .config import PROVIDER_PRIORITY, Settings
from .exceptions import (
    AdapterError,
    ConfigurationError,
    MeetingInsightsError,
    ProvidersExhaustedError,
    StorageError,
)
from .models import AnalysisRecord, MeetingAnalysis
from .store import AnalysisRepository
from .validation import ensure_valid_transcript

logger = logging.getLogger(__name__)

NO_PROVIDER_MESSAGE = "No LLM API key found. Set OPENAI_API_KEY or ANTHROPIC_API_KEY."

AdapterFactory = Callable[..., AnalysisAdapter]


class AnalysisOrchestrator:
    """Run one transcript through the configured LLM providers and store the result.

    Args:
        settings: Credentials, models and the fallback switch.
        repository: Persistence gateway for successful analyses.
        adapter_factory: Builds an adapter from a provider name plus
            ``api_key`` / ``model`` keyword arguments. Defaults to
            ``create_adapter``; tests inject mock adapters here.
    """

    def __init__(
        self,
        settings: Settings,
        repository: AnalysisRepository,
        adapter_factory: AdapterFactory = create_adapter,
    ) -> None:
        self.settings = settings
        self.repository = repository
        self._adapter_factory = adapter_factory

    def select_primary(self) -> str | None:
        """Return the first provider in priority order that has a credential."""
        configured = self.settings.configured_providers()
        return configured[0] if configured else None

    def select_fallback(self, primary: str | None) -> str | None:
        """Return a different configured provider to try after ``primary`` fails."""
        if primary is None or not self.settings.enable_fallback:
            return None
        for provider in PROVIDER_PRIORITY:
            if provider != primary and self.settings.api_key_for(provider):
                return provider
        return None

    def _build_adapter(self, provider: str) -> AnalysisAdapter:
        kwargs: dict[str, Any] = {
            "api_key": self.settings.api_key_for(provider),
            "model": self.settings.model_for(provider),
        }
        return self._adapter_factory(provider, **kwargs)

    async def _attempt(self, provider: str, role: str, text: str) -> MeetingAnalysis:
        adapter = self._build_adapter(provider)
        start_time = time.perf_counter()
        try:
            analysis = await adapter.analyze(text)
        except AdapterError as e:
            logger.warning(
                "%s provider %s failed after %.0f ms: %s",
                role.capitalize(),
                provider,
                (time.perf_counter() - start_time) * 1000,
                e,
                extra={"provider": provider, "role": role, "outcome": "failure"},
            )
            raise
        logger.info(
            "%s provider %s succeeded in %.0f ms",
            role.capitalize(),
            provider,
            (time.perf_counter() - start_time) * 1000,
            extra={"provider": provider, "role": role, "outcome": "success"},
        )
        return analysis

    async def _run_adapters(self, text: str) -> MeetingAnalysis:
        primary = self.select_primary()
        if primary is None:
            raise ConfigurationError(NO_PROVIDER_MESSAGE)

        try:
            return await self._attempt(primary, "primary", text)
        except AdapterError as primary_error:
            fallback = self.select_fallback(primary)
            if fallback is None:
                raise

            logger.info("Falling back from %s to %s", primary, fallback)
            try:
                return await self._attempt(fallback, "fallback", text)
            except AdapterError as fallback_error:
                raise ProvidersExhaustedError(primary_error, fallback_error) from fallback_error

    async def analyze(self, text: str) -> AnalysisRecord:
        """
        Validate, analyze and persist a transcript.

        Args:
            text: Transcript as submitted.

        Returns:
            The persisted AnalysisRecord.

        Raises:
            ValidationError: If the text is rejected before any provider call.
            ConfigurationError: If no provider credential is configured.
            AdapterError: If the primary failed and no fallback is configured.
            ProvidersExhaustedError: If primary and fallback both failed.
            StorageError: If the analysis could not be saved.
        """
        ensure_valid_transcript(text)
        analysis = await self._run_adapters(text)

        try:
            record = await self.repository.create(text, analysis)
        except MeetingInsightsError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save analysis to database: {e}") from e

        logger.info(
            "Analysis %s stored (provider=%s, model=%s)",
            record.id,
            analysis.provider,
            analysis.model,
            extra={"analysis_id": record.id, "provider": analysis.provider},
        )
        return record


__all__ = [
    "NO_PROVIDER_MESSAGE",
    "AnalysisOrchestrator",
]
