"""SQLite schema for the analysis store.

Tables:
- transcripts: submitted transcript text (immutable)
- analyses: one analysis per transcript
- action_items / key_decisions: ordered children of an analysis

Deleting a transcript cascades to its analysis and from there to the
analysis children, so removing an analysis is a single DELETE on the
owning transcript row.

Schema version: 1
"""

from __future__ import annotations

# Current schema version - increment when making breaking changes
SCHEMA_VERSION = 1

SCHEMA_V1 = """
-- Tracks schema version for migrations
CREATE TABLE IF NOT EXISTS store_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now'))
);

INSERT OR IGNORE INTO store_meta (key, value) VALUES ('schema_version', '1');


-- Submitted transcripts
CREATE TABLE IF NOT EXISTS transcripts (
    -- UUID4 string
    id TEXT PRIMARY KEY,
    text TEXT NOT NULL,
    -- ISO 8601 UTC with 'Z' suffix
    created_at TEXT NOT NULL
);


-- Analyses, exactly one per transcript
CREATE TABLE IF NOT EXISTS analyses (
    id TEXT PRIMARY KEY,
    transcript_id TEXT UNIQUE NOT NULL REFERENCES transcripts(id) ON DELETE CASCADE,
    title TEXT,
    sentiment TEXT NOT NULL
        CHECK (sentiment IN ('positive', 'neutral', 'negative', 'mixed')),
    summary TEXT,
    -- Provider and model that produced the analysis
    provider TEXT,
    model TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_analyses_created_at ON analyses(created_at);


CREATE TABLE IF NOT EXISTS action_items (
    id TEXT PRIMARY KEY,
    analysis_id TEXT NOT NULL REFERENCES analyses(id) ON DELETE CASCADE,
    -- Order in which the model listed the item (0-based)
    position INTEGER NOT NULL,
    description TEXT NOT NULL,
    owner TEXT,
    deadline TEXT,
    created_at TEXT NOT NULL,
    UNIQUE(analysis_id, position)
);

CREATE INDEX IF NOT EXISTS idx_action_items_analysis_id ON action_items(analysis_id);


CREATE TABLE IF NOT EXISTS key_decisions (
    id TEXT PRIMARY KEY,
    analysis_id TEXT NOT NULL REFERENCES analyses(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    decision TEXT NOT NULL,
    context TEXT,
    created_at TEXT NOT NULL,
    UNIQUE(analysis_id, position)
);

CREATE INDEX IF NOT EXISTS idx_key_decisions_analysis_id ON key_decisions(analysis_id);
"""

# SQL to check schema version
CHECK_SCHEMA_VERSION_SQL = """
SELECT value FROM store_meta WHERE key = 'schema_version';
"""

__all__ = [
    "SCHEMA_VERSION",
    "SCHEMA_V1",
    "CHECK_SCHEMA_VERSION_SQL",
]
