"""
Tests for the XLSX workbook exporter.

Workbooks are rendered to bytes and read back with openpyxl.
"""

import io

import pytest
from openpyxl import load_workbook

from sitediary.domain.settings import ExportSettings
from sitediary.infrastructure.excel import DiaryWorkbookWriter, WorkbookExporter
from sitediary.infrastructure.excel.summary import SUMMARY_COLUMNS
from sitediary.infrastructure.excel.tasks import TASK_COLUMNS

from conftest import make_record, png_data_url


def render(records, **settings):
    content = WorkbookExporter(ExportSettings(**settings)).render(records)
    return load_workbook(io.BytesIO(content))


def header(ws):
    return [cell.value for cell in ws[1]]


def row_dict(ws, row):
    return {name: ws.cell(row=row, column=i).value for i, name in enumerate(header(ws), start=1)}


class TestWorkbookStructure:

    def test_sheets_and_headers(self):
        wb = render([make_record()])
        assert wb.sheetnames == ["Summary", "Tasks"]
        assert header(wb["Summary"]) == [col.name for col in SUMMARY_COLUMNS]
        assert header(wb["Tasks"]) == [col.name for col in TASK_COLUMNS]

    def test_header_frozen_and_filtered(self):
        ws = render([make_record()])["Summary"]
        assert ws.freeze_panes == "A2"
        assert ws.auto_filter.ref is not None

    def test_empty_workbook_still_has_both_sheets(self):
        wb = render([])
        assert wb.sheetnames == ["Summary", "Tasks"]
        assert wb["Summary"].max_row == 1


class TestSummarySheet:

    def test_one_row_per_record_in_order(self):
        wb = render([make_record("b"), make_record("a"), make_record("c")])
        ws = wb["Summary"]
        assert [ws.cell(row=r, column=1).value for r in range(2, 5)] == ["b", "a", "c"]

    def test_row_values(self):
        record = make_record(
            status="submitted",
            imageUrls=["https://cdn.example.com/a.jpg", png_data_url()],
            signature="sig.png",
        )
        row = row_dict(render([record])["Summary"], 2)

        assert row["Title"] == "Foundation pour"
        assert row["Date"] == "2024-05-14"
        assert row["Status"] == "submitted"
        assert row["Sky"] == "Partly Cloudy"
        assert row["Task Count"] == 2
        assert row["Images"] == "https://cdn.example.com/a.jpg; [embedded image]"
        assert row["Signature"] == "Yes"
        assert row["Created By"] == "user-42"
        assert row["Created At"] == "2024-05-14 08:00:00"

    def test_last_modified_formatted(self):
        record = make_record(lastModified=1715673600000)
        row = row_dict(render([record])["Summary"], 2)
        assert row["Last Modified"] == "2024-05-14 08:00:00"

    def test_status_cell_colored(self):
        ws = render([make_record(status="submitted"), make_record("d2", status="draft")])["Summary"]
        submitted = ws.cell(row=2, column=7)
        draft = ws.cell(row=3, column=7)
        assert submitted.value == "submitted"
        assert submitted.fill.fgColor.rgb != draft.fill.fgColor.rgb


class TestTaskSheet:

    def test_one_row_per_task(self):
        wb = render([make_record("a"), make_record("b", tasks=[]), make_record("c")])
        ws = wb["Tasks"]
        assert ws.max_row == 5
        assert [ws.cell(row=r, column=3).value for r in range(2, 6)] == ["a", "a", "c", "c"]

    def test_task_values(self):
        row = row_dict(render([make_record()])["Tasks"], 3)
        assert row["Entry Title"] == "Foundation pour"
        assert row["Task No."] == 2
        assert row["Description"] == "Pour concrete"
        assert row["Equipment"] == "Power Tools"
        assert row["Quantity"] == 12.5
        assert row["Unit"] == "Cubic Meters"

    def test_equipment_separator(self):
        row = row_dict(render([make_record()], equipment_separator=" + ")["Tasks"], 2)
        assert row["Equipment"] == "Heavy Machinery + Hand Tools"


class TestColumnWidths:

    def test_width_follows_longest_value(self):
        ws = render([make_record(title="A much longer diary title")])["Summary"]
        assert ws.column_dimensions["B"].width == pytest.approx(len("A much longer diary title") + 2)
        assert ws.column_dimensions["A"].width == pytest.approx(len("rec-1") + 2)

    def test_width_capped(self):
        ws = render([make_record(notes="x" * 500)], column_width_max=40)["Summary"]
        notes_col = "V"
        assert ws.column_dimensions[notes_col].width == pytest.approx(40)


def test_writer_save(tmp_path):
    writer = DiaryWorkbookWriter()
    writer.add_record(make_record())
    path = writer.save(tmp_path / "out" / "report.xlsx")
    assert path.exists()
    assert load_workbook(path).sheetnames == ["Summary", "Tasks"]
