"""SQLite-backed analysis store.

Persists each analysis together with the transcript it was derived from
and its ordered action items and key decisions. A transcript and its
analysis are always written in one transaction, so a failed write never
leaves a transcript without an analysis.

Example:
    >>> from meeting_insights.store import SQLiteAnalysisStore
    >>> with SQLiteAnalysisStore.open("analyses.db") as store:
    ...     record = store.create(transcript_text, analysis)
    ...     same = store.get(record.id)
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import get_default_db_path
from ..exceptions import StorageError
from ..models import (
    ActionItem,
    AnalysisRecord,
    AnalysisSummary,
    KeyDecision,
    MeetingAnalysis,
)
from .schema import CHECK_SCHEMA_VERSION_SQL, SCHEMA_V1, SCHEMA_VERSION

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Return the current UTC time as ISO 8601 with microseconds and a 'Z' suffix.

    Fixed-width, so lexicographic order equals chronological order.
    """
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class SQLiteAnalysisStore:
    """SQLite store for transcripts, analyses and their children.

    The connection is shared across threads (the async repository runs
    calls through ``asyncio.to_thread``); a lock serializes access to it.
    Every sqlite3 error is re-raised as StorageError.

    Attributes:
        path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """Initialize store with database path.

        Args:
            db_path: Path to SQLite database file. If None, uses default path.
        """
        self._path = Path(db_path) if db_path else get_default_db_path()
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()
        try:
            with self._guard("open"):
                self._connect()
                self._init_schema()
        except StorageError:
            self.close()
            raise

    @classmethod
    def open(cls, path: str | Path, create: bool = True) -> SQLiteAnalysisStore:
        """Open or create an analysis store database.

        Args:
            path: Path to SQLite database file, or ":memory:".
            create: If False, raise FileNotFoundError for a missing database.

        Raises:
            FileNotFoundError: If database doesn't exist and create=False.
            StorageError: If the database cannot be opened or has an
                incompatible schema version.
        """
        path = Path(path)
        if not create and str(path) != ":memory:" and not path.exists():
            raise FileNotFoundError(f"Database not found: {path}")
        return cls(path)

    def _connect(self) -> None:
        if str(self._path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(self._path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode, we manage transactions
        )
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.row_factory = sqlite3.Row

    def _init_schema(self) -> None:
        conn = self._require_conn()
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='store_meta'"
        )
        if cursor.fetchone() is None:
            logger.info("Creating schema v%d in %s", SCHEMA_VERSION, self._path)
            conn.executescript(SCHEMA_V1)
            return

        row = conn.execute(CHECK_SCHEMA_VERSION_SQL).fetchone()
        if row and int(row["value"]) != SCHEMA_VERSION:
            raise StorageError(
                f"Database schema version {row['value']} is not supported "
                f"(expected {SCHEMA_VERSION})"
            )

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Storage is closed")
        return self._conn

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Serialize access and translate sqlite3 errors to StorageError."""
        with self._lock:
            try:
                yield
            except sqlite3.Error as e:
                logger.error("Database %s failed: %s", operation, e, extra={"db_path": str(self._path)})
                raise StorageError(f"Database {operation} failed: {e}") from e

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Context manager for database transactions.

        Yields:
            Database cursor within a transaction.
        """
        cursor = self._require_conn().cursor()
        try:
            cursor.execute("BEGIN")
            yield cursor
            cursor.execute("COMMIT")
        except Exception:
            cursor.execute("ROLLBACK")
            raise
        finally:
            cursor.close()

    @property
    def path(self) -> Path:
        """Return database path."""
        return self._path

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> SQLiteAnalysisStore:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, transcript_text: str, analysis: MeetingAnalysis) -> AnalysisRecord:
        """Persist a transcript and its analysis.

        Writes the transcript, then the analysis and its children, in a
        single transaction.

        Args:
            transcript_text: Transcript exactly as submitted.
            analysis: Adapter output to store.

        Returns:
            AnalysisRecord with generated identifiers and timestamps.

        Raises:
            StorageError: If the write fails (nothing is persisted).
        """
        created_at = utc_timestamp()
        transcript_id = str(uuid.uuid4())
        analysis_id = str(uuid.uuid4())

        action_items = [
            ActionItem(
                description=item.description,
                owner=item.owner,
                deadline=item.deadline,
                id=str(uuid.uuid4()),
                created_at=created_at,
            )
            for item in analysis.action_items
        ]
        key_decisions = [
            KeyDecision(
                decision=decision.decision,
                context=decision.context,
                id=str(uuid.uuid4()),
                created_at=created_at,
            )
            for decision in analysis.key_decisions
        ]

        with self._guard("write"), self._transaction() as cursor:
            cursor.execute(
                "INSERT INTO transcripts (id, text, created_at) VALUES (?, ?, ?)",
                (transcript_id, transcript_text, created_at),
            )
            cursor.execute(
                """
                INSERT INTO analyses (
                    id, transcript_id, title, sentiment, summary,
                    provider, model, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    analysis_id,
                    transcript_id,
                    analysis.title,
                    analysis.sentiment,
                    analysis.summary,
                    analysis.provider,
                    analysis.model,
                    created_at,
                ),
            )
            cursor.executemany(
                """
                INSERT INTO action_items (
                    id, analysis_id, position, description, owner, deadline, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (item.id, analysis_id, i, item.description, item.owner, item.deadline, created_at)
                    for i, item in enumerate(action_items)
                ],
            )
            cursor.executemany(
                """
                INSERT INTO key_decisions (
                    id, analysis_id, position, decision, context, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    (d.id, analysis_id, i, d.decision, d.context, created_at)
                    for i, d in enumerate(key_decisions)
                ],
            )

        logger.debug(
            "Stored analysis %s (%d action items, %d decisions)",
            analysis_id,
            len(action_items),
            len(key_decisions),
            extra={"analysis_id": analysis_id, "transcript_id": transcript_id},
        )
        return AnalysisRecord(
            id=analysis_id,
            transcript_id=transcript_id,
            sentiment=analysis.sentiment,
            created_at=created_at,
            title=analysis.title,
            summary=analysis.summary,
            action_items=action_items,
            key_decisions=key_decisions,
            transcript_text=transcript_text,
        )

    def delete(self, analysis_id: str) -> bool:
        """Delete an analysis, its children and its transcript.

        Args:
            analysis_id: Analysis ID to delete.

        Returns:
            True if the analysis was deleted, False if not found.
        """
        with self._guard("delete"), self._transaction() as cursor:
            cursor.execute("SELECT transcript_id FROM analyses WHERE id = ?", (analysis_id,))
            row = cursor.fetchone()
            if row is None:
                return False
            # Cascades to the analysis, then to its action items and decisions
            cursor.execute("DELETE FROM transcripts WHERE id = ?", (row["transcript_id"],))
            return cursor.rowcount > 0

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, analysis_id: str) -> AnalysisRecord | None:
        """Get a full analysis by ID.

        Args:
            analysis_id: Analysis ID.

        Returns:
            AnalysisRecord including transcript text, or None if not found.
        """
        with self._guard("read"):
            conn = self._require_conn()
            row = conn.execute(
                """
                SELECT a.id, a.transcript_id, a.title, a.sentiment, a.summary,
                       a.created_at, t.text AS transcript_text
                FROM analyses a
                JOIN transcripts t ON t.id = a.transcript_id
                WHERE a.id = ?
                """,
                (analysis_id,),
            ).fetchone()
            if row is None:
                return None

            action_items = [
                ActionItem(
                    description=r["description"],
                    owner=r["owner"],
                    deadline=r["deadline"],
                    id=r["id"],
                    created_at=r["created_at"],
                )
                for r in conn.execute(
                    "SELECT * FROM action_items WHERE analysis_id = ? ORDER BY position",
                    (analysis_id,),
                )
            ]
            key_decisions = [
                KeyDecision(
                    decision=r["decision"],
                    context=r["context"],
                    id=r["id"],
                    created_at=r["created_at"],
                )
                for r in conn.execute(
                    "SELECT * FROM key_decisions WHERE analysis_id = ? ORDER BY position",
                    (analysis_id,),
                )
            ]

        return AnalysisRecord(
            id=row["id"],
            transcript_id=row["transcript_id"],
            sentiment=row["sentiment"],
            created_at=row["created_at"],
            title=row["title"],
            summary=row["summary"],
            action_items=action_items,
            key_decisions=key_decisions,
            transcript_text=row["transcript_text"],
        )

    def list_analyses(self, limit: int = 10, offset: int = 0) -> list[AnalysisSummary]:
        """List analyses, newest first.

        Args:
            limit: Maximum number of rows.
            offset: Number of rows to skip.

        Returns:
            List of AnalysisSummary rows.
        """
        with self._guard("read"):
            rows = self._require_conn().execute(
                """
                SELECT id, transcript_id, title, sentiment, summary, created_at
                FROM analyses
                ORDER BY created_at DESC, rowid DESC
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            ).fetchall()

        return [
            AnalysisSummary(
                id=row["id"],
                transcript_id=row["transcript_id"],
                sentiment=row["sentiment"],
                created_at=row["created_at"],
                title=row["title"],
                summary=row["summary"],
            )
            for row in rows
        ]

    def count(self) -> int:
        """Return the total number of stored analyses."""
        with self._guard("read"):
            row = self._require_conn().execute("SELECT COUNT(*) AS n FROM analyses").fetchone()
        return int(row["n"])

    def stats(self) -> dict[str, int]:
        """Get row counts per table and the database file size."""
        with self._guard("read"):
            row = self._require_conn().execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM transcripts) as transcript_count,
                    (SELECT COUNT(*) FROM analyses) as analysis_count,
                    (SELECT COUNT(*) FROM action_items) as action_item_count,
                    (SELECT COUNT(*) FROM key_decisions) as key_decision_count
                """
            ).fetchone()

        db_size = 0
        if str(self._path) != ":memory:" and self._path.exists():
            db_size = os.path.getsize(self._path)

        return {
            "transcript_count": row["transcript_count"],
            "analysis_count": row["analysis_count"],
            "action_item_count": row["action_item_count"],
            "key_decision_count": row["key_decision_count"],
            "database_size_bytes": db_size,
        }


__all__ = [
    "SQLiteAnalysisStore",
    "utc_timestamp",
]
