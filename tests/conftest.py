"""
Pytest configuration and fixtures for tests.

This module provides:
- Temporary analysis stores and repositories
- Settings with fake credentials (never read from the real environment)
- Canned LLM responses and a recording adapter factory
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from meeting_insights.analysis_adapter import MockAnalysisAdapter
from meeting_insights.config import Settings
from meeting_insights.models import ActionItem, KeyDecision, MeetingAnalysis
from meeting_insights.store import AnalysisRepository, SQLiteAnalysisStore

SAMPLE_TRANSCRIPT = (
    "Bob: Thanks everyone for joining the weekly sync.\n"
    "Alice: Let's ship v2 on Friday. Alice owns QA.\n"
    "Bob: Agreed, we'll freeze the release branch tomorrow."
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials and settings out of every test."""
    for name in (
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "MEETING_INSIGHTS_OPENAI_MODEL",
        "MEETING_INSIGHTS_ANTHROPIC_MODEL",
        "MEETING_INSIGHTS_DB_PATH",
        "MEETING_INSIGHTS_ENABLE_FALLBACK",
        "MEETING_INSIGHTS_LOG_LEVEL",
        "MEETING_INSIGHTS_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_transcript() -> str:
    """Return a short meeting transcript."""
    return SAMPLE_TRANSCRIPT


@pytest.fixture
def sample_response_data() -> dict[str, Any]:
    """Return an LLM reply (as parsed JSON) for the sample transcript."""
    return {
        "title": "Weekly Sync: v2 Release",
        "actionItems": [
            {"id": "1", "description": "Own QA for the v2 release", "owner": "Alice", "deadline": "Friday"},
            {"id": "2", "description": "Freeze the release branch", "owner": None, "deadline": "tomorrow"},
        ],
        "keyDecisions": [
            {"id": "1", "decision": "Ship v2 on Friday", "context": "Weekly sync"},
        ],
        "sentiment": "positive",
        "summary": "The team agreed to ship v2 on Friday.",
    }


@pytest.fixture
def sample_response(sample_response_data: dict[str, Any]) -> str:
    """Return the sample LLM reply as JSON text."""
    return json.dumps(sample_response_data)


@pytest.fixture
def sample_analysis() -> MeetingAnalysis:
    """Return an adapter result ready to be stored."""
    return MeetingAnalysis(
        title="Weekly Sync: v2 Release",
        action_items=[
            ActionItem(description="Own QA for the v2 release", owner="Alice", deadline="Friday"),
            ActionItem(description="Freeze the release branch", deadline="tomorrow"),
            ActionItem(description="Update the changelog"),
        ],
        key_decisions=[
            KeyDecision(decision="Ship v2 on Friday", context="Weekly sync"),
            KeyDecision(decision="Skip the beta"),
        ],
        sentiment="positive",
        summary="The team agreed to ship v2 on Friday.",
        provider="mock",
        model="mock",
    )


@pytest.fixture
def tmp_db(tmp_path: Path) -> Path:
    """Return a path for a temporary database."""
    return tmp_path / "analyses.db"


@pytest.fixture
def store(tmp_db: Path) -> Iterator[SQLiteAnalysisStore]:
    """Create and return an SQLiteAnalysisStore instance."""
    store = SQLiteAnalysisStore(tmp_db)
    yield store
    store.close()


@pytest.fixture
def repository(store: SQLiteAnalysisStore) -> AnalysisRepository:
    """Return an async repository over the temporary store."""
    return AnalysisRepository(store)


@pytest.fixture
def settings(tmp_db: Path) -> Settings:
    """Return settings with both providers configured."""
    return Settings(
        openai_api_key="sk-test-openai",
        anthropic_api_key="sk-ant-test",
        db_path=tmp_db,
    )


class RecordingAdapterFactory:
    """Adapter factory returning preconfigured adapters and recording each request."""

    def __init__(self, adapters: dict[str, MockAnalysisAdapter]) -> None:
        self.adapters = adapters
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, provider: str, **kwargs: Any) -> MockAnalysisAdapter:
        self.calls.append((provider, kwargs))
        return self.adapters[provider]

    @property
    def providers(self) -> list[str]:
        return [provider for provider, _ in self.calls]


@pytest.fixture
def make_factory():
    """Build a RecordingAdapterFactory from per-provider canned replies.

    Each value is either a JSON string (success) or an Exception (raised by
    the mock provider, so the adapter reports an AdapterError).
    """

    def _make(**replies: str | Exception) -> RecordingAdapterFactory:
        return RecordingAdapterFactory(
            {
                provider: MockAnalysisAdapter(default_response=reply)
                for provider, reply in replies.items()
            }
        )

    return _make
