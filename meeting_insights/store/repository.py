"""Async gateway over the SQLite analysis store.

The service and the orchestrator talk to storage through
``AnalysisRepository``. Blocking sqlite work runs in a worker thread so the
event loop stays responsive; listing fetches the page and the total count
concurrently.
"""

from __future__ import annotations

import asyncio
import logging

from ..exceptions import NotFoundError
from ..models import AnalysisPage, AnalysisRecord, MeetingAnalysis
from ..validation import DEFAULT_LIST_LIMIT, check_pagination
from .store import SQLiteAnalysisStore

logger = logging.getLogger(__name__)


class AnalysisRepository:
    """Async persistence gateway for analyses.

    Args:
        store: Open SQLiteAnalysisStore. The repository does not own it
            unless ``close()`` is called.
    """

    def __init__(self, store: SQLiteAnalysisStore) -> None:
        self._store = store

    @property
    def store(self) -> SQLiteAnalysisStore:
        return self._store

    async def create(self, transcript_text: str, analysis: MeetingAnalysis) -> AnalysisRecord:
        """Persist a transcript with its analysis."""
        return await asyncio.to_thread(self._store.create, transcript_text, analysis)

    async def get_by_id(self, analysis_id: str) -> AnalysisRecord:
        """
        Fetch a full analysis.

        Raises:
            NotFoundError: If no analysis has this id.
        """
        record = await asyncio.to_thread(self._store.get, analysis_id)
        if record is None:
            raise NotFoundError(resource_id=analysis_id)
        return record

    async def list_page(self, limit: int = DEFAULT_LIST_LIMIT, offset: int = 0) -> AnalysisPage:
        """
        Fetch one page of summaries, newest first, plus the total count.

        Raises:
            ValidationError: If limit or offset is out of range (checked
                before any storage call).
        """
        check_pagination(limit, offset)
        analyses, total = await asyncio.gather(
            asyncio.to_thread(self._store.list_analyses, limit, offset),
            asyncio.to_thread(self._store.count),
        )
        return AnalysisPage(analyses=analyses, total=total)

    async def delete_by_id(self, analysis_id: str) -> None:
        """
        Delete an analysis and everything it owns.

        Raises:
            NotFoundError: If no analysis has this id.
        """
        deleted = await asyncio.to_thread(self._store.delete, analysis_id)
        if not deleted:
            raise NotFoundError(resource_id=analysis_id)
        logger.info("Deleted analysis %s", analysis_id, extra={"analysis_id": analysis_id})

    async def stats(self) -> dict[str, int]:
        return await asyncio.to_thread(self._store.stats)

    def close(self) -> None:
        self._store.close()


__all__ = ["AnalysisRepository"]
