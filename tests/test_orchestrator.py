"""Tests for the analysis orchestrator (primary/fallback selection and persistence)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from meeting_insights.config import Settings
from meeting_insights.error_translator import ErrorCode, translate
from meeting_insights.exceptions import (
    AdapterError,
    ConfigurationError,
    ProvidersExhaustedError,
    StorageError,
    ValidationError,
)
from meeting_insights.orchestrator import NO_PROVIDER_MESSAGE, AnalysisOrchestrator
from meeting_insights.store import AnalysisRepository


class TestProviderSelection:
    """select_primary / select_fallback."""

    def test_openai_preferred(self, settings: Settings, repository: AnalysisRepository) -> None:
        orchestrator = AnalysisOrchestrator(settings, repository)

        assert orchestrator.select_primary() == "openai"
        assert orchestrator.select_fallback("openai") == "anthropic"

    def test_anthropic_only(self, settings: Settings, repository: AnalysisRepository) -> None:
        orchestrator = AnalysisOrchestrator(
            settings.with_overrides(openai_api_key=None), repository
        )

        assert orchestrator.select_primary() == "anthropic"
        assert orchestrator.select_fallback("anthropic") is None

    def test_fallback_never_same_vendor(
        self, settings: Settings, repository: AnalysisRepository
    ) -> None:
        orchestrator = AnalysisOrchestrator(
            settings.with_overrides(anthropic_api_key=None), repository
        )

        assert orchestrator.select_primary() == "openai"
        assert orchestrator.select_fallback("openai") is None

    def test_fallback_disabled(self, settings: Settings, repository: AnalysisRepository) -> None:
        orchestrator = AnalysisOrchestrator(
            settings.with_overrides(enable_fallback=False), repository
        )

        assert orchestrator.select_fallback("openai") is None

    def test_nothing_configured(self, repository: AnalysisRepository) -> None:
        orchestrator = AnalysisOrchestrator(Settings(), repository)

        assert orchestrator.select_primary() is None
        assert orchestrator.select_fallback(None) is None


class TestAnalyze:
    """End-to-end orchestration with mock adapters."""

    @pytest.mark.asyncio
    async def test_primary_success_skips_fallback(
        self, settings, repository, make_factory, sample_response, sample_transcript
    ) -> None:
        """When the primary succeeds the fallback is never built or called."""
        factory = make_factory(openai=sample_response, anthropic=sample_response)
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)

        record = await orchestrator.analyze(sample_transcript)

        assert factory.providers == ["openai"]
        assert len(factory.adapters["anthropic"].calls) == 0
        assert record.title == "Weekly Sync: v2 Release"
        stored = await repository.get_by_id(record.id)
        assert stored.transcript_text == sample_transcript

    @pytest.mark.asyncio
    async def test_adapter_built_with_settings(
        self, settings, repository, make_factory, sample_response, sample_transcript
    ) -> None:
        """Credentials and models come from Settings, not the environment."""
        factory = make_factory(openai=sample_response)
        orchestrator = AnalysisOrchestrator(
            settings.with_overrides(openai_model="gpt-4o-mini"), repository, adapter_factory=factory
        )

        await orchestrator.analyze(sample_transcript)

        assert factory.calls == [("openai", {"api_key": "sk-test-openai", "model": "gpt-4o-mini"})]

    @pytest.mark.asyncio
    async def test_primary_failure_uses_fallback_once(
        self, settings, repository, make_factory, sample_response, sample_transcript
    ) -> None:
        factory = make_factory(openai=RuntimeError("Error code: 500"), anthropic=sample_response)
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)

        record = await orchestrator.analyze(sample_transcript)

        assert factory.providers == ["openai", "anthropic"]
        assert len(factory.adapters["anthropic"].calls) == 1
        assert (await repository.list_page()).total == 1
        assert record.sentiment == "positive"

    @pytest.mark.asyncio
    async def test_both_fail(self, settings, repository, make_factory, sample_transcript) -> None:
        """Both failures are combined; the result is retryable and transient."""
        factory = make_factory(openai="not json at all", anthropic="still not json")
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)

        with pytest.raises(ProvidersExhaustedError) as exc_info:
            await orchestrator.analyze(sample_transcript)

        error = exc_info.value
        assert str(error).startswith("Both adapters failed. Primary: ")
        assert "Fallback: " in str(error)
        assert isinstance(error.primary_error, AdapterError)
        assert isinstance(error.fallback_error, AdapterError)
        envelope = translate(error)
        assert envelope.error_code == ErrorCode.SERVICE_UNAVAILABLE
        assert envelope.can_retry is True
        assert (await repository.list_page()).total == 0

    @pytest.mark.asyncio
    async def test_both_fail_with_auth_errors_stays_retryable(
        self, settings, repository, make_factory, sample_transcript
    ) -> None:
        """Credential failures on both vendors still yield a transient envelope."""
        factory = make_factory(
            openai=RuntimeError("Error code: 401 - Incorrect API key provided"),
            anthropic=RuntimeError("Error code: 401 - authentication_error: invalid x-api-key"),
        )
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)

        with pytest.raises(ProvidersExhaustedError) as exc_info:
            await orchestrator.analyze(sample_transcript)

        envelope = translate(exc_info.value)
        assert envelope.error_code == ErrorCode.SERVICE_UNAVAILABLE
        assert envelope.can_retry is True
        assert "401" in envelope.technical_details
        assert "401" not in envelope.user_message

    @pytest.mark.asyncio
    async def test_primary_failure_without_fallback_reraises(
        self, settings, repository, make_factory, sample_transcript
    ) -> None:
        factory = make_factory(openai=RuntimeError("Error code: 429 - rate limit exceeded"))
        orchestrator = AnalysisOrchestrator(
            settings.with_overrides(enable_fallback=False), repository, adapter_factory=factory
        )

        with pytest.raises(AdapterError) as exc_info:
            await orchestrator.analyze(sample_transcript)

        assert not isinstance(exc_info.value, ProvidersExhaustedError)
        assert factory.providers == ["openai"]
        assert translate(exc_info.value).error_code == ErrorCode.SERVICE_BUSY

    @pytest.mark.asyncio
    async def test_no_provider_configured(self, repository, make_factory, sample_transcript) -> None:
        """Without credentials nothing is called and a configuration error is raised."""
        factory = make_factory()
        orchestrator = AnalysisOrchestrator(Settings(), repository, adapter_factory=factory)

        with pytest.raises(ConfigurationError, match="No LLM API key found"):
            await orchestrator.analyze(sample_transcript)

        assert factory.calls == []
        assert NO_PROVIDER_MESSAGE.startswith("No LLM API key found")

    @pytest.mark.asyncio
    async def test_invalid_transcript_rejected_first(
        self, settings, repository, make_factory
    ) -> None:
        factory = make_factory(openai="{}")
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)

        with pytest.raises(ValidationError, match="URL"):
            await orchestrator.analyze("https://example.com/recording")

        assert factory.calls == []

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_fall_back(
        self, settings, repository, make_factory, sample_response, sample_transcript
    ) -> None:
        """A failed save is a storage error and the fallback is not tried."""
        factory = make_factory(openai=sample_response, anthropic=sample_response)
        repository.create = AsyncMock(side_effect=StorageError("Database write failed: disk full"))
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)

        with pytest.raises(StorageError):
            await orchestrator.analyze(sample_transcript)

        assert factory.providers == ["openai"]

    @pytest.mark.asyncio
    async def test_unexpected_storage_exception_wrapped(
        self, settings, repository, make_factory, sample_response, sample_transcript
    ) -> None:
        factory = make_factory(openai=sample_response)
        repository.create = AsyncMock(side_effect=OSError("disk unplugged"))
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)

        with pytest.raises(StorageError, match="disk unplugged"):
            await orchestrator.analyze(sample_transcript)
