"""
FastAPI service for meeting transcript analysis.

Exposes the analysis pipeline and the stored history as a REST API:

    POST   /api/analyze          analyze a transcript and store the result
    GET    /api/analyses         list stored analyses (limit, offset)
    GET    /api/analysis/{id}    fetch one analysis with its transcript
    DELETE /api/analysis/{id}    delete an analysis and its transcript
    GET    /health               liveness, configured providers and store counts

Example usage:
    # Start the service (development mode)
    uvicorn --factory meeting_insights.service:create_app --reload --port 8000

    # Using the API
    curl -X POST http://localhost:8000/api/analyze \
        -H "Content-Type: application/json" \
        -d '{"text": "Alice: Let us ship v2 on Friday..."}'
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from . import __version__
from .config import Settings
from .orchestrator import AnalysisOrchestrator
from .service_errors import register_exception_handlers
from .service_middleware import log_requests
from .store import AnalysisRepository, SQLiteAnalysisStore
from .validation import DEFAULT_LIST_LIMIT, check_request_text

logger = logging.getLogger(__name__)

SERVICE_NAME = "meeting-insights-api"


class AnalyzeRequest(BaseModel):
    """Body of POST /api/analyze."""

    text: str = Field(description="Meeting transcript text")


# =============================================================================
# Dependencies
# =============================================================================


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(request: Request) -> AnalysisRepository:
    """Return the app's repository, opening the database on first use."""
    state = request.app.state
    if state.repository is None:
        settings: Settings = state.settings
        logger.info("Opening analysis store at %s", settings.db_path)
        state.repository = AnalysisRepository(SQLiteAnalysisStore.open(settings.db_path))
        state.owns_repository = True
    return state.repository


def get_orchestrator(
    request: Request,
    repository: Annotated[AnalysisRepository, Depends(get_repository)],
) -> AnalysisOrchestrator:
    state = request.app.state
    if state.orchestrator is None:
        state.orchestrator = AnalysisOrchestrator(state.settings, repository)
    return state.orchestrator


# =============================================================================
# FastAPI Application Setup
# =============================================================================


def create_app(
    settings: Settings | None = None,
    repository: AnalysisRepository | None = None,
    orchestrator: AnalysisOrchestrator | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Runtime settings; read from the environment if None.
        repository: Persistence gateway; opened lazily from
            ``settings.db_path`` on first use if None.
        orchestrator: Analysis orchestrator; built from settings and the
            repository on first use if None.

    Returns:
        Configured FastAPI app.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        # Close only what the app opened itself
        if app.state.owns_repository and app.state.repository is not None:
            app.state.repository.close()
            app.state.repository = None

    app = FastAPI(
        title="Meeting Insights API",
        description=(
            "Analyze meeting transcripts with an LLM: extract a title, action items, "
            "key decisions, sentiment and a summary, and browse stored analyses."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = repository
    app.state.orchestrator = orchestrator
    app.state.owns_repository = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    register_exception_handlers(app)

    # =========================================================================
    # Health Check Endpoint
    # =========================================================================

    @app.get(
        "/health",
        summary="Health check",
        description=(
            "Check if the service is running, which LLM providers are configured "
            "and how many rows the store holds"
        ),
        tags=["System"],
    )
    async def health_check(
        settings: Annotated[Settings, Depends(get_settings)],
        repository: Annotated[AnalysisRepository, Depends(get_repository)],
    ) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
            "providers": settings.configured_providers(),
            "storage": await repository.stats(),
        }

    # =========================================================================
    # Analysis Endpoints
    # =========================================================================

    @app.post(
        "/api/analyze",
        summary="Analyze a transcript",
        tags=["Analysis"],
    )
    async def analyze_transcript(
        body: AnalyzeRequest,
        orchestrator: Annotated[AnalysisOrchestrator, Depends(get_orchestrator)],
    ) -> dict[str, Any]:
        """
        Analyze a meeting transcript and store the result.

        Returns:
            The stored analysis (without transcript text).
        """
        check_request_text(body.text)
        record = await orchestrator.analyze(body.text)
        # The client already has the transcript it just sent
        record.transcript_text = None
        return record.to_dict()

    @app.get(
        "/api/analyses",
        summary="List analyses",
        tags=["Analysis"],
    )
    async def list_analyses(
        repository: Annotated[AnalysisRepository, Depends(get_repository)],
        limit: Annotated[int, Query(description="Page size (1-100)")] = DEFAULT_LIST_LIMIT,
        offset: Annotated[int, Query(description="Rows to skip")] = 0,
    ) -> dict[str, Any]:
        page = await repository.list_page(limit=limit, offset=offset)
        return page.to_dict()

    @app.get(
        "/api/analysis/{analysis_id}",
        summary="Get an analysis",
        tags=["Analysis"],
    )
    async def get_analysis(
        analysis_id: str,
        repository: Annotated[AnalysisRepository, Depends(get_repository)],
    ) -> dict[str, Any]:
        record = await repository.get_by_id(analysis_id)
        return record.to_dict()

    @app.delete(
        "/api/analysis/{analysis_id}",
        summary="Delete an analysis",
        tags=["Analysis"],
    )
    async def delete_analysis(
        analysis_id: str,
        repository: Annotated[AnalysisRepository, Depends(get_repository)],
    ) -> dict[str, Any]:
        await repository.delete_by_id(analysis_id)
        return {"success": True, "message": "Analysis deleted successfully"}

    return app


# =============================================================================
# Main Entry Point (for development)
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "meeting_insights.service:create_app",
        factory=True,
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level="info",
    )
