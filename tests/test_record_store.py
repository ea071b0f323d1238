"""
Tests for the SQLite record store.
"""

import sqlite3
from datetime import datetime, timezone

import pytest

from sitediary.domain.errors import InvalidRecordError, StorageFailure
from sitediary.domain.models import RecordStatus
from sitediary.infrastructure.sqlite import SCHEMA_VERSION, RecordStore

from conftest import make_record, record_data


class TestPutAndGet:

    def test_put_assigns_timestamps(self, store, clock):
        record = make_record(createdAt=None)
        stored = store.put(record)

        assert stored.last_modified == clock.now
        assert stored.created_at is not None
        assert store.get("rec-1") == stored

    def test_put_keeps_supplied_created_at(self, store):
        stored = store.put(make_record())
        assert stored.created_at == datetime(2024, 5, 14, 8, 0, tzinfo=timezone.utc)

    def test_put_accepts_raw_mapping(self, store):
        stored = store.put(record_data("raw-1", imageUrls=None, images=["legacy.png"]))
        assert stored.image_urls == ["legacy.png"]
        assert store.get("raw-1").image_urls == ["legacy.png"]

    def test_put_rejects_invalid_mapping(self, store):
        with pytest.raises(InvalidRecordError):
            store.put({"title": "no id"})
        assert store.count() == 0

    def test_update_replaces_fields_and_keeps_created_at(self, store, clock):
        first = store.put(make_record(createdAt=None))
        clock.now += 5_000

        updated = store.put(make_record(title="Slab pour", status="submitted", createdAt=None))

        assert updated.title == "Slab pour"
        assert updated.status is RecordStatus.SUBMITTED
        assert updated.created_at == first.created_at
        assert updated.last_modified == first.last_modified + 5_000
        assert store.count() == 1

    def test_last_modified_strictly_increases(self, store, clock):
        first = store.put(make_record())
        second = store.put(make_record())
        clock.now -= 10_000
        third = store.put(make_record())

        assert second.last_modified == first.last_modified + 1
        assert third.last_modified == second.last_modified + 1

    def test_get_missing_returns_none(self, store):
        assert store.get("nope") is None

    def test_tasks_and_equipment_survive_storage(self, store):
        store.put(make_record())
        record = store.get("rec-1")
        assert [task.description for task in record.tasks] == ["Excavate footing", "Pour concrete"]
        assert record.tasks[0].equipment == ["Heavy Machinery", "Hand Tools"]
        assert record.tasks[1].quantity == 12.5


class TestDelete:

    def test_delete_is_idempotent(self, store):
        store.put(make_record())
        assert store.delete("rec-1") is True
        assert store.delete("rec-1") is False
        assert store.get("rec-1") is None
        assert store.query_by_status("draft") == []

    def test_delete_acknowledged_checks_last_modified(self, store, clock):
        a = store.put(make_record("a"))
        b = store.put(make_record("b"))
        clock.now += 1
        store.put(make_record("b", title="edited"))

        deleted = store.delete_acknowledged({"a": a.last_modified, "b": b.last_modified})

        assert deleted == ["a"]
        assert store.get("a") is None
        assert store.get("b").title == "edited"

    def test_delete_acknowledged_empty(self, store):
        assert store.delete_acknowledged({}) == []


class TestQueries:

    @pytest.fixture
    def populated(self, store, clock):
        for record_id, day, status in (
            ("c", "2024-05-03", "submitted"),
            ("a", "2024-05-01", "draft"),
            ("b", "2024-05-02", "submitted"),
            ("d", "2024-05-10", "draft"),
        ):
            store.put(make_record(record_id, date=day, status=status))
            clock.now += 1_000
        return store

    def test_get_all_ordered_by_id(self, populated):
        assert [r.id for r in populated.get_all()] == ["a", "b", "c", "d"]

    def test_query_by_status_oldest_first(self, populated):
        assert [r.id for r in populated.query_by_status(RecordStatus.SUBMITTED)] == ["c", "b"]
        assert [r.id for r in populated.query_by_status("draft")] == ["a", "d"]

    def test_query_by_date_range_inclusive(self, populated):
        records = populated.query_by_date_range("2024-05-02", "2024-05-03")
        assert [r.id for r in records] == ["b", "c"]

    def test_query_modified_since(self, populated, clock):
        all_pending = populated.query_modified_since()
        assert [r.id for r in all_pending] == ["c", "a", "b", "d"]

        since = all_pending[1].last_modified
        assert [r.id for r in populated.query_modified_since(since)] == ["b", "d"]
        assert [r.id for r in populated.query_modified_since(limit=2)] == ["c", "a"]

        position = (all_pending[1].last_modified, all_pending[1].id)
        assert [r.id for r in populated.query_modified_since(after=position)] == ["b", "d"]

    def test_status_index_follows_updates(self, populated):
        populated.put(make_record("a", date="2024-05-01", status="submitted"))
        assert "a" not in [r.id for r in populated.query_by_status("draft")]
        assert "a" in [r.id for r in populated.query_by_status("submitted")]


class TestFailures:

    def test_failed_write_leaves_store_unchanged(self, store):
        original = store.put(make_record())
        conn = store._connection
        conn.execute(
            "CREATE TRIGGER fail_insert BEFORE INSERT ON records "
            "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
        )
        conn.execute(
            "CREATE TRIGGER fail_update BEFORE UPDATE ON records "
            "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
        )
        conn.commit()

        with pytest.raises(StorageFailure, match="disk full"):
            store.put(make_record(title="Changed"))
        with pytest.raises(StorageFailure):
            store.put(make_record("new"))

        assert store.get("rec-1") == original
        assert store.count() == 1

    def test_unreadable_payload(self, store):
        store.put(make_record())
        store._connection.execute("UPDATE records SET payload = 'not json'")
        store._connection.commit()
        with pytest.raises(StorageFailure):
            store.get("rec-1")

    def test_closed_store_raises(self):
        store = RecordStore()
        with pytest.raises(StorageFailure, match="not open"):
            store.get_all()


class TestPersistence:

    def test_records_survive_reopen(self, tmp_path):
        db_path = tmp_path / "nested" / "diary.db"
        with RecordStore(db_path) as store:
            store.put(make_record())

        with RecordStore(db_path) as store:
            assert store.get("rec-1").title == "Foundation pour"
            assert store.count() == 1

    def test_newer_schema_refused(self, tmp_path):
        db_path = tmp_path / "diary.db"
        with RecordStore(db_path):
            pass
        conn = sqlite3.connect(db_path)
        conn.execute(
            "UPDATE schema_meta SET value = ? WHERE key = 'version'", (str(SCHEMA_VERSION + 1),)
        )
        conn.commit()
        conn.close()

        with pytest.raises(StorageFailure, match="newer"):
            RecordStore(db_path).open()
