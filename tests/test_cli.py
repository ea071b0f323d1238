"""
CLI tests driven through typer's CliRunner.
"""

import json
import logging
import zipfile

import httpx
import pytest
from typer.testing import CliRunner

from sitediary.application.container import Container
from sitediary.infrastructure.remote import ACK_FIELD, RemoteSyncClient
from sitediary.infrastructure.sqlite import RecordStore
from sitediary.interface.cli.app import app

from conftest import record_data

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def env(tmp_path):
    config = tmp_path / "sitediary.json"
    config.write_text("{}")
    db = tmp_path / "diary.db"

    def invoke(*args):
        return runner.invoke(app, ["--config", str(config), "--db", str(db), *args])

    invoke.db = db
    invoke.tmp_path = tmp_path
    return invoke


def write_records(tmp_path, *records, name="records.json"):
    path = tmp_path / name
    payload = records[0] if len(records) == 1 else list(records)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_add_and_list(env):
    path = write_records(env.tmp_path, record_data("e1"), record_data("e2", date="2024-05-20"))

    result = env("add", str(path))
    assert result.exit_code == 0, result.output
    assert "2 record(s) stored" in result.output

    listed = env("list")
    assert listed.exit_code == 0
    assert "e1" in listed.output
    assert "e2" in listed.output

    ranged = env("list", "--from", "2024-05-15")
    assert "e2" in ranged.output
    assert "e1" not in ranged.output


def test_add_submit_and_show(env):
    path = write_records(env.tmp_path, record_data("e1", weather={"sky": "Sunny"}))
    assert env("add", "--submit", str(path)).exit_code == 0

    with RecordStore(env.db) as store:
        assert store.get("e1").status.value == "submitted"

    shown = env("show", "e1")
    assert shown.exit_code == 0
    assert "Submitted" in shown.output
    assert "(custom)" in shown.output
    assert "Excavate" in shown.output


def test_add_invalid_json(env):
    path = env.tmp_path / "broken.json"
    path.write_text("{not json")
    result = env("add", str(path))
    assert result.exit_code == 1
    assert "Invalid JSON" in result.output


def test_add_file_not_utf8(env):
    path = env.tmp_path / "latin1.json"
    path.write_bytes(b'{"id": "e1", "title": "Caf\xe9"}')
    result = env("add", str(path))
    assert result.exit_code == 1
    assert "Cannot read" in result.output
    assert "Traceback" not in result.output


def test_add_invalid_record(env):
    path = write_records(env.tmp_path, {"title": "no id"})
    result = env("add", str(path))
    assert result.exit_code == 1
    assert "no id" in result.output


def test_list_filters(env):
    path = write_records(
        env.tmp_path,
        record_data("e1", title="Crane lift"),
        record_data("e2", title="Survey", notes=""),
    )
    env("add", str(path))

    result = env("list", "--search", "crane")
    assert "e1" in result.output
    assert "e2" not in result.output

    assert "No records found" in env("list", "--status", "submitted").output
    assert env("list", "--status", "approved").exit_code == 1


def test_show_and_delete_missing(env):
    assert env("show", "nope").exit_code == 1
    assert env("delete", "nope").exit_code == 1


def test_delete(env):
    env("add", str(write_records(env.tmp_path, record_data("e1"))))
    result = env("delete", "e1")
    assert result.exit_code == 0
    assert "Deleted" in result.output
    with RecordStore(env.db) as store:
        assert store.count() == 0


def test_export_single_format(env):
    env("add", str(write_records(env.tmp_path, record_data("e1"))))
    out = env.tmp_path / "exports"

    result = env("export", "e1", "-f", "text", "--out", str(out))

    assert result.exit_code == 0, result.output
    saved = out / "site-diary-e1.csv"
    assert saved.read_text(encoding="utf-8").startswith("Site Diary Entry\n")


def test_export_all_records_archive(env):
    path = write_records(env.tmp_path, record_data("e1"), record_data("e2"))
    env("add", str(path))
    out = env.tmp_path / "exports"

    result = env("export", "--all-records", "--out", str(out))

    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(out / "site-diary-exports.zip") as archive:
        assert archive.namelist() == [
            "site-diary-e1.pdf",
            "site-diary-e1.csv",
            "site-diary-e2.pdf",
            "site-diary-e2.csv",
            "site-diary-report.xlsx",
        ]


def test_export_reports_unavailable_image(env):
    env("add", str(write_records(env.tmp_path, record_data("e1", signature="missing-signature.png"))))
    out = env.tmp_path / "exports"

    result = env("export", "e1", "-f", "document", "--out", str(out))

    assert result.exit_code == 0
    assert (out / "site-diary-e1.pdf").exists()
    assert "problems" in result.output


def test_export_needs_selection(env):
    assert env("export").exit_code == 1
    assert env("export", "missing-id").exit_code == 1


def test_export_unknown_format(env):
    env("add", str(write_records(env.tmp_path, record_data("e1"))))
    assert env("export", "e1", "-f", "pptx").exit_code == 1


def test_sync(env, monkeypatch):
    env("add", str(write_records(env.tmp_path, record_data("e1"), record_data("e2"))))

    def handler(request):
        return httpx.Response(200, json={ACK_FIELD: ["e1"]})

    monkeypatch.setattr(
        Container,
        "remote_client",
        property(lambda self: RemoteSyncClient(transport=httpx.MockTransport(handler))),
    )

    result = env("sync", "https://sync.example.com/diary")

    assert result.exit_code == 0, result.output
    assert "deleted 1" in result.output
    with RecordStore(env.db) as store:
        assert [record.id for record in store.get_all()] == ["e2"]


def test_sync_failure_exits_nonzero(env, monkeypatch):
    env("add", str(write_records(env.tmp_path, record_data("e1"))))
    monkeypatch.setattr(
        Container,
        "remote_client",
        property(lambda self: RemoteSyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))),
    )

    result = env("sync", "https://sync.example.com/diary")

    assert result.exit_code == 1
    assert "HTTP 500" in result.output
    with RecordStore(env.db) as store:
        assert store.count() == 1


def test_sync_without_endpoint(env):
    result = env("sync")
    assert result.exit_code == 1
    assert "endpoint" in result.output


def test_stats(env):
    env("add", str(write_records(env.tmp_path, record_data("e1"), record_data("e2", status="submitted"))))
    result = env("stats")
    assert result.exit_code == 0
    assert "Total entries" in result.output
    assert "50%" in result.output


def test_invalid_config(tmp_path):
    config = tmp_path / "bad.json"
    config.write_text("[]")
    result = runner.invoke(app, ["--config", str(config), "list"])
    assert result.exit_code == 1
    assert "JSON object" in result.output
