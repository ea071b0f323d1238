"""
SQLite-based record store for offline diary persistence.

Provides:
- CRUD for diary records keyed by id
- Secondary lookups by date, status and last-modified time
- Acknowledgment-guarded deletion used by sync

Uses stdlib sqlite3 with no ORM.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from sitediary.domain.errors import InvalidRecordError, StorageFailure
from sitediary.domain.models import (
    DiaryRecord,
    RecordStatus,
    format_timestamp,
    now_millis,
    utc_now,
)
from sitediary.domain.normalize import normalize_record, parse_timestamp
from sitediary.infrastructure.sqlite.schema import initialize_schema

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class RecordStore:
    """
    SQLite-backed storage for diary records.

    Usage:
        with RecordStore(Path("data/sitediary.db")) as store:
            stored = store.put(record)
            drafts = store.query_by_status(RecordStatus.DRAFT)
            store.delete(stored.id)

    Every record present in the store is pending sync. Records leave the
    store through delete() (user action) or delete_acknowledged() (sync).
    """

    def __init__(
        self,
        db_path: Path | str = MEMORY_PATH,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        """
        Initialize record store.

        Args:
            db_path: Path to SQLite database file (created on open), or ':memory:'
            clock: Source of epoch milliseconds for last_modified
        """
        self.db_path = str(db_path)
        self._clock = clock
        self._connection: sqlite3.Connection | None = None
        logger.debug("RecordStore initialized: %s", self.db_path)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self) -> "RecordStore":
        """Open the connection and create the schema. No-op if already open."""
        if self._connection is not None:
            return self

        in_memory = self.db_path == MEMORY_PATH
        try:
            if not in_memory:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self.db_path)
            connection.row_factory = sqlite3.Row
            if not in_memory:
                connection.execute("PRAGMA journal_mode = WAL")
                connection.execute("PRAGMA synchronous = FULL")
            initialize_schema(connection)
        except (sqlite3.Error, OSError) as e:
            raise StorageFailure(f"Cannot open record store {self.db_path}: {e}") from e

        self._connection = connection
        logger.info("Record store opened: %s", self.db_path)
        return self

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Record store closed: %s", self.db_path)

    def __enter__(self) -> "RecordStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageFailure("Record store is not open")
        return self._connection

    # ========================================================================
    # Writes
    # ========================================================================

    def put(self, record: DiaryRecord | Mapping[str, Any]) -> DiaryRecord:
        """
        Insert or fully replace a record by id.

        created_at is set on first persistence and kept afterwards.
        last_modified is refreshed and never goes backwards for an id.

        Args:
            record: DiaryRecord or raw mapping (normalized first)

        Returns:
            The record as stored

        Raises:
            InvalidRecordError: If a mapping cannot be normalized
            StorageFailure: If the write fails (nothing is changed)
        """
        record = normalize_record(record)
        conn = self._get_connection()

        try:
            existing = conn.execute(
                "SELECT created_at, last_modified FROM records WHERE id = ?",
                (record.id,),
            ).fetchone()

            if existing is not None:
                created_at = parse_timestamp(existing["created_at"])
                # Strictly increasing so sync can tell any two writes apart
                last_modified = max(self._clock(), existing["last_modified"] + 1)
            else:
                created_at = record.created_at or utc_now()
                last_modified = self._clock()

            stored = replace(record, created_at=created_at, last_modified=last_modified)

            conn.execute(
                """
                INSERT INTO records (id, date, status, created_at, last_modified, payload)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    date = excluded.date,
                    status = excluded.status,
                    last_modified = excluded.last_modified,
                    payload = excluded.payload
            """,
                (
                    stored.id,
                    stored.date,
                    stored.status.value,
                    format_timestamp(created_at),
                    last_modified,
                    json.dumps(stored.to_dict(), ensure_ascii=False),
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageFailure(f"Failed to store record {record.id}: {e}") from e

        logger.debug(
            "Stored record %s (status=%s, last_modified=%d)",
            stored.id,
            stored.status.value,
            last_modified,
        )
        return stored

    def delete(self, record_id: str) -> bool:
        """
        Remove a record and its index entries.

        Returns:
            True if a record was removed, False if it was already absent
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM records WHERE id = ?", (record_id,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageFailure(f"Failed to delete record {record_id}: {e}") from e

        removed = cursor.rowcount > 0
        logger.debug("Delete record %s: %s", record_id, "removed" if removed else "absent")
        return removed

    def delete_acknowledged(self, acknowledged: Mapping[str, int]) -> list[str]:
        """
        Delete acknowledged records that were not modified since transmission.

        Runs in one transaction: either every eligible record is removed or
        none is.

        Args:
            acknowledged: record id -> last_modified value that was transmitted

        Returns:
            Ids actually deleted, in the mapping's order
        """
        if not acknowledged:
            return []

        conn = self._get_connection()
        deleted: list[str] = []
        try:
            for record_id, last_modified in acknowledged.items():
                cursor = conn.execute(
                    "DELETE FROM records WHERE id = ? AND last_modified = ?",
                    (record_id, last_modified),
                )
                if cursor.rowcount > 0:
                    deleted.append(record_id)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageFailure(f"Failed to delete acknowledged records: {e}") from e

        logger.debug("Deleted %d of %d acknowledged records", len(deleted), len(acknowledged))
        return deleted

    # ========================================================================
    # Reads
    # ========================================================================

    def get(self, record_id: str) -> DiaryRecord | None:
        """Get a record by id, or None if missing."""
        rows = self._fetch("SELECT payload FROM records WHERE id = ?", (record_id,))
        return rows[0] if rows else None

    def get_all(self) -> list[DiaryRecord]:
        """All records, ordered by id."""
        return self._fetch("SELECT payload FROM records ORDER BY id")

    def query_by_status(self, status: RecordStatus | str) -> list[DiaryRecord]:
        """Records with the given status, oldest modification first."""
        status = RecordStatus.from_value(status)
        return self._fetch(
            """
            SELECT payload FROM records
            WHERE status = ?
            ORDER BY last_modified, id
        """,
            (status.value,),
        )

    def query_by_date_range(self, start: str, end: str) -> list[DiaryRecord]:
        """
        Records whose diary date lies within [start, end].

        Args:
            start: First ISO date (YYYY-MM-DD), inclusive
            end: Last ISO date, inclusive
        """
        return self._fetch(
            """
            SELECT payload FROM records
            WHERE date >= ? AND date <= ?
            ORDER BY date, id
        """,
            (start, end),
        )

    def query_modified_since(
        self,
        since_ms: int | None = None,
        limit: int | None = None,
        after: tuple[int, str] | None = None,
    ) -> list[DiaryRecord]:
        """
        Records modified after since_ms (all when None), oldest first.

        `after` is a (last_modified, id) position in that order; only
        records sorting after it are returned.
        """
        sql = "SELECT payload FROM records"
        conditions: list[str] = []
        params: list[Any] = []
        if since_ms is not None:
            conditions.append("last_modified > ?")
            params.append(since_ms)
        if after is not None:
            conditions.append("(last_modified > ? OR (last_modified = ? AND id > ?))")
            params.extend([after[0], after[0], after[1]])
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY last_modified, id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._fetch(sql, params)

    def count(self) -> int:
        conn = self._get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM records").fetchone()[0]
        except sqlite3.Error as e:
            raise StorageFailure(f"Failed to count records: {e}") from e

    def _fetch(self, sql: str, params: Iterable[Any] = ()) -> list[DiaryRecord]:
        conn = self._get_connection()
        try:
            rows = conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise StorageFailure(f"Record query failed: {e}") from e
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> DiaryRecord:
        try:
            return normalize_record(json.loads(row["payload"]))
        except (json.JSONDecodeError, InvalidRecordError) as e:
            raise StorageFailure(f"Stored record payload is unreadable: {e}") from e
