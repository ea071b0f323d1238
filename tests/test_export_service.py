"""
Tests for the batch export coordinator.
"""

import asyncio
import io
import zipfile

import pytest
from openpyxl import load_workbook

from sitediary.application.export_service import (
    ARCHIVE_TIMESTAMP,
    ExportCoordinator,
    save_artifact,
)
from sitediary.domain.artifacts import ExportFormat, unique_slugs
from sitediary.domain.settings import ExportSettings
from sitediary.infrastructure.document import DocumentRenderer

from conftest import FakeImageResolver, make_png, make_record, record_data


def make_coordinator(images=None, **settings):
    renderer = DocumentRenderer(resolver=FakeImageResolver(images))
    return ExportCoordinator(ExportSettings(**settings), document_renderer=renderer)


def members(artifact):
    with zipfile.ZipFile(io.BytesIO(artifact.content)) as archive:
        return archive.namelist()


class FailingRenderer(DocumentRenderer):
    """Raises for one record id."""

    def __init__(self, failing_id):
        super().__init__(resolver=FakeImageResolver())
        self.failing_id = failing_id

    async def render(self, record, semaphore=None):
        if record.id == self.failing_id:
            raise RuntimeError("renderer crashed")
        return await super().render(record, semaphore)


class TestSingleRecord:

    def test_single_format_is_delivered_directly(self):
        result = make_coordinator().export_record_sync(make_record(), ExportFormat.DOCUMENT)

        assert result.archive is None
        assert result.deliverable.name == "site-diary-rec-1.pdf"
        assert result.deliverable.media_type == "application/pdf"
        assert result.deliverable.content.startswith(b"%PDF")
        assert result.ok

    def test_all_formats_are_archived(self):
        result = make_coordinator().export_record_sync(make_record(), "all")

        assert [a.name for a in result.artifacts] == [
            "site-diary-rec-1.pdf",
            "site-diary-rec-1.xlsx",
            "site-diary-rec-1.csv",
        ]
        assert result.deliverable is result.archive
        assert result.archive.name == "site-diary-exports.zip"
        assert members(result.archive) == [a.name for a in result.artifacts]

    def test_text_artifact_content(self):
        result = make_coordinator().export_record_sync(make_record(), "text")
        assert result.deliverable.content.decode("utf-8").startswith("Site Diary Entry\nTitle,Foundation pour\n")

    def test_raw_mapping_is_normalized(self):
        result = make_coordinator().export_record_sync(record_data("raw"), "text")
        assert result.deliverable.record_ids == ("raw",)


class TestBatch:

    def test_failure_is_contained_to_its_record(self):
        records = [
            make_record("r1"),
            make_record("r2", imageUrls=["missing.png"]),
            record_data("r3", tasks=[{"description": "Bad", "quantity": -5}]),
            make_record("r4"),
            make_record("r5"),
        ]
        result = make_coordinator().export_batch_sync(records, ["all"])

        failed = {(f.record_id, f.export_format) for f in result.failures}
        assert failed == {
            ("r3", ExportFormat.DOCUMENT),
            ("r3", ExportFormat.WORKBOOK),
            ("r3", ExportFormat.TEXT),
        }

        names = [a.name for a in result.artifacts]
        assert names == [
            "site-diary-r1.pdf",
            "site-diary-r1.csv",
            "site-diary-r2.pdf",
            "site-diary-r2.csv",
            "site-diary-r4.pdf",
            "site-diary-r4.csv",
            "site-diary-r5.pdf",
            "site-diary-r5.csv",
            "site-diary-report.xlsx",
        ]
        assert [a.name for a in result.partial_artifacts] == ["site-diary-r2.pdf"]
        assert not result.ok

        shared = result.artifacts[-1]
        assert shared.record_ids == ("r1", "r2", "r4", "r5")
        summary = load_workbook(io.BytesIO(shared.content))["Summary"]
        assert [summary.cell(row=r, column=1).value for r in range(2, 6)] == ["r1", "r2", "r4", "r5"]

        assert members(result.archive) == names
        issues = result.archive.issues
        assert any("site-diary-r2.pdf" in issue for issue in issues)
        assert any(issue.startswith("r3 (document)") for issue in issues)

    def test_renderer_crash_keeps_other_formats(self):
        coordinator = ExportCoordinator(document_renderer=FailingRenderer("b"))
        result = coordinator.export_batch_sync(
            [make_record("a"), make_record("b")], ["document", "text"]
        )

        assert [(f.record_id, f.export_format) for f in result.failures] == [("b", ExportFormat.DOCUMENT)]
        assert result.failures[0].reason == "renderer crashed"
        assert [a.name for a in result.artifacts] == [
            "site-diary-a.pdf",
            "site-diary-a.csv",
            "site-diary-b.csv",
        ]

    def test_per_record_workbooks_when_not_shared(self):
        result = make_coordinator().export_batch_sync(
            [make_record("a"), make_record("b")], ["workbook"], shared_workbook=False
        )
        assert [a.name for a in result.artifacts] == ["site-diary-a.xlsx", "site-diary-b.xlsx"]

    def test_repeated_ids_get_unique_names(self):
        result = make_coordinator().export_batch_sync([make_record("a"), make_record("a")], ["text"])
        assert [a.name for a in result.artifacts] == ["site-diary-a.csv", "site-diary-a-2.csv"]

    def test_on_artifact_called_for_each_artifact(self):
        seen = []
        result = make_coordinator().export_batch_sync(
            [make_record("a"), make_record("b")], ["all"], on_artifact=lambda a: seen.append(a.name)
        )
        assert sorted(seen) == sorted(a.name for a in result.artifacts)
        assert "site-diary-exports.zip" not in seen

    def test_archive_is_reproducible(self):
        records = [make_record("a"), make_record("b")]
        first = make_coordinator().export_batch_sync(records, ["document", "text"])
        second = make_coordinator().export_batch_sync(records, ["document", "text"])

        assert members(first.archive) == members(second.archive)
        assert first.archive.content == second.archive.content
        with zipfile.ZipFile(io.BytesIO(first.archive.content)) as archive:
            assert {info.date_time for info in archive.infolist()} == {ARCHIVE_TIMESTAMP}

    def test_empty_selection(self):
        result = make_coordinator().export_batch_sync([], ["all"])
        assert result.artifacts == []
        assert result.deliverable is None

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            make_coordinator().export_batch_sync([make_record()], ["pptx"])

    def test_concurrency_is_bounded(self):
        active = 0
        peak = 0

        class SlowRenderer(DocumentRenderer):
            async def render(self, record, semaphore=None):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                return await super().render(record, semaphore)

        coordinator = ExportCoordinator(
            ExportSettings(max_concurrency=2),
            document_renderer=SlowRenderer(resolver=FakeImageResolver()),
        )
        records = [make_record(f"r{n}") for n in range(6)]
        result = coordinator.export_batch_sync(records, ["document"])

        assert peak == 2
        assert [a.name for a in result.artifacts] == [f"site-diary-r{n}.pdf" for n in range(6)]

    def test_images_resolved_in_document(self):
        result = make_coordinator({"site.png": make_png()}).export_batch_sync(
            [make_record(imageUrls=["site.png"])], ["document"]
        )
        assert result.ok


def test_stored_record_workbook_and_text(store):
    store.put(make_record("e2e", status="submitted"))
    record = store.get("e2e")

    result = asyncio.run(make_coordinator().export_batch([record], ["workbook", "text"]))

    assert result.ok
    assert result.deliverable is result.archive
    assert members(result.archive) == ["site-diary-e2e.xlsx", "site-diary-e2e.csv"]

    with zipfile.ZipFile(io.BytesIO(result.archive.content)) as archive:
        workbook = load_workbook(io.BytesIO(archive.read("site-diary-e2e.xlsx")))
        text = archive.read("site-diary-e2e.csv").decode("utf-8")

    assert workbook.sheetnames == ["Summary", "Tasks"]
    assert workbook["Summary"].max_row == 2
    tasks = workbook["Tasks"]
    assert tasks.max_row == 3
    quantity_column = [cell.value for cell in tasks[1]].index("Quantity") + 1
    assert [tasks.cell(row=r, column=quantity_column).value for r in (2, 3)] == [6, 12.5]

    lines = text.split("\n")
    for section in ("Site Diary Entry", "Weather Conditions", "Tasks", "Notes"):
        assert section in lines
    assert "Status,submitted" in lines
    assert [line.split(",")[0] for line in lines if line[:2] in ("1,", "2,")] == ["1", "2"]


def test_unique_slugs():
    assert unique_slugs(["Entry 1", "entry-1", "x"]) == ["entry-1", "entry-1-2", "x"]
    assert unique_slugs(["***"]) == ["record"]


def test_save_artifact(tmp_path):
    result = make_coordinator().export_record_sync(make_record(), "text")
    path = save_artifact(result.deliverable, tmp_path / "exports")
    assert path.name == "site-diary-rec-1.csv"
    assert path.read_bytes() == result.deliverable.content
