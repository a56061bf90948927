"""Analysis store for meeting-insights.

Main components:
- SQLiteAnalysisStore: synchronous SQLite store (transcripts, analyses,
  action items, key decisions)
- AnalysisRepository: async gateway used by the orchestrator and the service

Example usage:
    >>> from meeting_insights.store import AnalysisRepository, SQLiteAnalysisStore
    >>> repository = AnalysisRepository(SQLiteAnalysisStore.open("analyses.db"))
    >>> page = await repository.list_page(limit=10, offset=0)
"""

from __future__ import annotations

from .repository import AnalysisRepository
from .schema import SCHEMA_VERSION
from .store import SQLiteAnalysisStore, utc_timestamp

__all__ = [
    "SCHEMA_VERSION",
    "AnalysisRepository",
    "SQLiteAnalysisStore",
    "utc_timestamp",
]
