"""
SQLite schema for the local record store.

One row per record: the indexed columns live next to the JSON payload,
so a single INSERT/UPDATE writes the record and every index entry.

Schema Version: 1
"""

from __future__ import annotations

import logging
import sqlite3

from sitediary.domain.errors import StorageFailure

logger = logging.getLogger(__name__)

# Increment when making breaking changes
SCHEMA_VERSION = 1

SCHEMA_TABLES = """
-- ============================================================================
-- Diary Records
-- ============================================================================

CREATE TABLE IF NOT EXISTS records (
    id TEXT PRIMARY KEY,
    date TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'draft',
    created_at TEXT NOT NULL,
    last_modified INTEGER NOT NULL,
    payload TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_records_date ON records(date, id);
CREATE INDEX IF NOT EXISTS idx_records_status ON records(status, last_modified);
CREATE INDEX IF NOT EXISTS idx_records_last_modified ON records(last_modified, id);

-- ============================================================================
-- Schema metadata
-- ============================================================================

CREATE TABLE IF NOT EXISTS schema_meta (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


def get_schema_version(connection: sqlite3.Connection) -> int | None:
    """Stored schema version, or None for a fresh database."""
    row = connection.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_meta'"
    ).fetchone()
    if row is None:
        return None
    row = connection.execute(
        "SELECT value FROM schema_meta WHERE key = 'version'"
    ).fetchone()
    return int(row[0]) if row and row[0] is not None else None


def initialize_schema(connection: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they don't exist.

    Safe to call multiple times. Refuses a database written by a newer
    schema version.

    Args:
        connection: Open SQLite connection
    """
    existing = get_schema_version(connection)
    if existing is not None and existing > SCHEMA_VERSION:
        raise StorageFailure(
            f"Database schema version {existing} is newer than supported "
            f"version {SCHEMA_VERSION}"
        )

    connection.executescript(SCHEMA_TABLES)
    connection.execute(
        """
        INSERT OR REPLACE INTO schema_meta (key, value)
        VALUES ('version', ?)
    """,
        (str(SCHEMA_VERSION),),
    )
    connection.commit()
    logger.info("Database schema initialized (version %d)", SCHEMA_VERSION)
