"""
Tests for the FastAPI service.

These tests use the FastAPI TestClient to verify endpoint behavior without
requiring a running server or real LLM credentials.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

from meeting_insights import __version__  # noqa: E402
from meeting_insights.config import Settings  # noqa: E402
from meeting_insights.orchestrator import AnalysisOrchestrator  # noqa: E402
from meeting_insights.service import create_app  # noqa: E402
from meeting_insights.store import AnalysisRepository  # noqa: E402


@pytest.fixture
def orchestrator(settings, repository, make_factory, sample_response) -> AnalysisOrchestrator:
    """Orchestrator whose providers return the sample reply."""
    factory = make_factory(openai=sample_response, anthropic=sample_response)
    return AnalysisOrchestrator(settings, repository, adapter_factory=factory)


@pytest.fixture
def client(settings, repository, orchestrator) -> TestClient:
    """Create a test client for an app wired to the temporary store."""
    app = create_app(settings=settings, repository=repository, orchestrator=orchestrator)
    return TestClient(app)


def _analyze(client: TestClient, text: str) -> dict:
    response = client.post("/api/analyze", json={"text": text})
    assert response.status_code == 200, response.text
    return response.json()


class TestHealth:
    """GET /health."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "meeting-insights-api"
        assert data["version"] == __version__
        assert data["providers"] == ["openai", "anthropic"]
        assert data["storage"]["analysis_count"] == 0
        assert data["storage"]["transcript_count"] == 0

    def test_health_reports_store_counts(self, client: TestClient, sample_transcript: str) -> None:
        """Row counts follow what has been analyzed."""
        _analyze(client, sample_transcript)

        storage = client.get("/health").json()["storage"]

        assert storage["transcript_count"] == 1
        assert storage["analysis_count"] == 1
        assert storage["action_item_count"] == 2
        assert storage["key_decision_count"] == 1

    def test_request_id_header(self, client: TestClient) -> None:
        response = client.get("/health")

        assert len(response.headers["X-Request-ID"]) == 36

    def test_request_id_reused_from_caller(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "trace-abc-123"})

        assert response.headers["X-Request-ID"] == "trace-abc-123"

    def test_oversized_request_id_replaced(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "x" * 500})

        assert len(response.headers["X-Request-ID"]) == 36


class TestAnalyzeEndpoint:
    """POST /api/analyze."""

    def test_analyze_success(self, client: TestClient, sample_transcript: str) -> None:
        data = _analyze(client, sample_transcript)

        assert data["title"] == "Weekly Sync: v2 Release"
        assert data["sentiment"] == "positive"
        assert data["actionItems"][0]["owner"] == "Alice"
        assert data["actionItems"][0]["id"]
        assert data["keyDecisions"][0]["decision"] == "Ship v2 on Friday"
        assert data["createdAt"].endswith("Z")
        assert "transcriptText" not in data

    def test_empty_text(self, client: TestClient) -> None:
        response = client.post("/api/analyze", json={"text": ""})

        assert response.status_code == 400
        assert response.json() == {
            "error": "Transcript cannot be empty",
            "errorCode": "VALIDATION_ERROR",
            "canRetry": False,
        }

    def test_too_long_text(self, client: TestClient) -> None:
        response = client.post("/api/analyze", json={"text": "a" * 50_001})

        assert response.status_code == 400
        assert response.json()["error"] == "Transcript is too long"

    def test_url_rejected(self, client: TestClient) -> None:
        response = client.post("/api/analyze", json={"text": "https://example.com/meeting"})

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "VALIDATION_ERROR"
        assert "URL" in body["error"]

    def test_missing_text_field(self, client: TestClient) -> None:
        """Malformed bodies use the same error envelope with status 400."""
        response = client.post("/api/analyze", json={"transcript": "hello"})

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "VALIDATION_ERROR"
        assert body["canRetry"] is False
        assert "text" in body["error"]

    def test_both_providers_fail(
        self, settings, repository, make_factory, sample_transcript: str
    ) -> None:
        factory = make_factory(openai="garbage", anthropic="more garbage")
        orchestrator = AnalysisOrchestrator(settings, repository, adapter_factory=factory)
        client = TestClient(create_app(settings, repository, orchestrator))

        response = client.post("/api/analyze", json={"text": sample_transcript})

        assert response.status_code == 500
        body = response.json()
        assert body["errorCode"] == "SERVICE_UNAVAILABLE"
        assert body["canRetry"] is True
        # Technical details stay in the logs
        assert "garbage" not in body["error"]

    def test_no_credentials(self, repository, tmp_db: Path, sample_transcript: str) -> None:
        settings = Settings(db_path=tmp_db)
        client = TestClient(create_app(settings, repository))

        response = client.post("/api/analyze", json={"text": sample_transcript})

        assert response.status_code == 500
        assert response.json()["errorCode"] == "CONFIGURATION_ERROR"
        assert response.json()["canRetry"] is False

    def test_unhandled_exception(self, settings, repository, sample_transcript: str) -> None:
        """Unexpected exceptions are translated, never leaked."""
        orchestrator = AnalysisOrchestrator(settings, repository)
        orchestrator.analyze = AsyncMock(side_effect=KeyError("secret internal detail"))
        app = create_app(settings, repository, orchestrator)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.post("/api/analyze", json={"text": sample_transcript})

        assert response.status_code == 500
        assert response.json()["errorCode"] == "UNKNOWN_ERROR"
        assert "secret" not in response.text


class TestHistoryEndpoints:
    """GET/DELETE on stored analyses."""

    def test_get_analysis(self, client: TestClient, sample_transcript: str) -> None:
        created = _analyze(client, sample_transcript)

        response = client.get(f"/api/analysis/{created['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["transcriptText"] == sample_transcript
        assert data["actionItems"] == created["actionItems"]

    def test_get_unknown(self, client: TestClient) -> None:
        response = client.get("/api/analysis/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {
            "error": "Analysis not found",
            "errorCode": "NOT_FOUND",
            "canRetry": False,
        }

    def test_list_analyses(self, client: TestClient, sample_transcript: str) -> None:
        ids = [_analyze(client, f"{sample_transcript}\nMeeting {i}.")["id"] for i in range(3)]

        response = client.get("/api/analyses", params={"limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert [a["id"] for a in data["analyses"]] == [ids[2], ids[1]]
        assert set(data["analyses"][0]) == {
            "id",
            "transcriptId",
            "title",
            "sentiment",
            "summary",
            "createdAt",
        }

    def test_list_defaults(self, client: TestClient) -> None:
        response = client.get("/api/analyses")

        assert response.status_code == 200
        assert response.json() == {"analyses": [], "total": 0}

    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({"limit": 0}, "Limit must be between 1 and 100"),
            ({"limit": 101}, "Limit must be between 1 and 100"),
            ({"offset": -1}, "Offset must be non-negative"),
        ],
    )
    def test_list_bad_pagination(self, client: TestClient, params: dict, message: str) -> None:
        response = client.get("/api/analyses", params=params)

        assert response.status_code == 400
        assert response.json()["error"] == message

    def test_delete(self, client: TestClient, repository: AnalysisRepository, sample_transcript: str) -> None:
        created = _analyze(client, sample_transcript)

        response = client.delete(f"/api/analysis/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Analysis deleted successfully"}
        assert client.get(f"/api/analysis/{created['id']}").status_code == 404
        stats = repository.store.stats()
        assert stats["transcript_count"] == 0
        assert stats["action_item_count"] == 0
        assert stats["key_decision_count"] == 0

    def test_delete_unknown(self, client: TestClient) -> None:
        response = client.delete("/api/analysis/does-not-exist")

        assert response.status_code == 404
        assert response.json()["errorCode"] == "NOT_FOUND"


class TestRoutingErrors:
    """Errors raised by routing itself still use the error envelope."""

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/api/analysis/")

        assert response.status_code == 404
        assert response.json() == {
            "error": "Not found",
            "errorCode": "NOT_FOUND",
            "canRetry": False,
        }
        assert len(response.headers["X-Request-ID"]) == 36

    def test_wrong_method(self, client: TestClient) -> None:
        response = client.put("/api/analysis/abc", json={"text": "x"})

        assert response.status_code == 405
        data = response.json()
        assert data["errorCode"] == "VALIDATION_ERROR"
        assert data["canRetry"] is False
        assert "detail" not in data
        assert "GET" in response.headers["Allow"]
        assert response.headers["X-Request-ID"]


class TestLazyRepository:
    """The app opens its own store when none is injected."""

    def test_import_builds_no_app(self) -> None:
        """Importing the module reads no settings; uvicorn builds the app."""
        import meeting_insights.service as service_module

        assert not hasattr(service_module, "app")

    def test_opens_store_from_settings(self, tmp_path: Path) -> None:
        db_path = tmp_path / "service.db"
        app = create_app(settings=Settings(db_path=db_path))

        with TestClient(app) as client:
            response = client.get("/api/analyses")

        assert response.status_code == 200
        assert db_path.exists()
        # Closed on shutdown
        assert app.state.repository is None
