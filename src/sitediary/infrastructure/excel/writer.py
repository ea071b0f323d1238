"""
Diary Workbook Writer.

Composes the sheet mixins into a single workbook generator using the
Mixin Pattern, the same way for one record or many.

Sheet Order:
    1. Summary - one row per record
    2. Tasks   - one row per task across all records

Usage Example:
    from sitediary.infrastructure.excel import WorkbookExporter

    content = WorkbookExporter(settings.export).render(records)

    # Or drive the writer directly
    writer = DiaryWorkbookWriter()
    for record in records:
        writer.add_record(record)
    writer.save("exports/site-diary-report.xlsx")

Dependencies:
    - openpyxl: Excel file generation
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable
from pathlib import Path

from openpyxl import Workbook

from sitediary.domain.models import DiaryRecord
from sitediary.domain.settings import ExportSettings
from sitediary.infrastructure.excel.base import SheetConfig
from sitediary.infrastructure.excel.summary import SummarySheetMixin, SUMMARY_CONFIG
from sitediary.infrastructure.excel.tasks import TaskSheetMixin, TASK_CONFIG


__all__ = ["DiaryWorkbookWriter", "WorkbookExporter", "SHEET_ORDER"]

logger = logging.getLogger(__name__)


SHEET_ORDER: tuple[SheetConfig, ...] = (
    SUMMARY_CONFIG,  # 1. Summary
    TASK_CONFIG,  # 2. Tasks
)


class DiaryWorkbookWriter(SummarySheetMixin, TaskSheetMixin):
    """
    Workbook writer for diary records.

    Inherited Methods (from mixins):
        add_record_summary() - Add a Summary row
        add_record_tasks()   - Add Tasks rows

    Attributes:
        wb: The openpyxl Workbook instance
        _row_counters: Current row per sheet
        _column_widths: Widest content seen per sheet column
    """

    def __init__(
        self,
        column_width_max: int = 60,
        list_separator: str = "; ",
        equipment_separator: str = ", ",
    ) -> None:
        self.wb = Workbook()
        self.column_width_max = column_width_max
        self.list_separator = list_separator
        self.equipment_separator = equipment_separator

        # All sheets start at row 2 (row 1 is the header)
        self._row_counters: dict[str, int] = {config.name: 2 for config in SHEET_ORDER}
        self._column_widths: dict[str, list[int]] = {}
        self._record_count = 0

        logger.debug("DiaryWorkbookWriter initialized with empty workbook")

    def add_record(self, record: DiaryRecord) -> None:
        """Add a record to every sheet."""
        self.add_record_summary(record)
        self.add_record_tasks(record)
        self._record_count += 1

    def _finalize(self) -> None:
        """Create missing sheets, fix their order, and size columns."""
        for config in SHEET_ORDER:
            self._ensure_sheet(config)

        for target_idx, config in enumerate(SHEET_ORDER):
            current_idx = self.wb.sheetnames.index(config.name)
            if current_idx != target_idx:
                self.wb.move_sheet(config.name, offset=target_idx - current_idx)

        for config in SHEET_ORDER:
            self._apply_column_widths(config)

    def to_bytes(self) -> bytes:
        """Serialize the workbook to XLSX bytes."""
        self._finalize()
        buffer = io.BytesIO()
        self.wb.save(buffer)
        logger.debug(
            "Workbook rendered: %d records, %d bytes",
            self._record_count,
            buffer.tell(),
        )
        return buffer.getvalue()

    def save(self, path: Path | str) -> Path:
        """
        Save the workbook to an Excel file.

        The output directory is created if it doesn't exist.

        Raises:
            PermissionError: If the file is open in another program
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_bytes())
        logger.info(
            "Workbook saved: %s (%d sheets, %d records)",
            path,
            len(self.wb.sheetnames),
            self._record_count,
        )
        return path


class WorkbookExporter:
    """Tabular exporter: records in, XLSX bytes out."""

    def __init__(self, settings: ExportSettings | None = None) -> None:
        self.settings = settings or ExportSettings()

    def render(self, records: Iterable[DiaryRecord]) -> bytes:
        writer = DiaryWorkbookWriter(
            column_width_max=self.settings.column_width_max,
            list_separator=self.settings.list_separator,
            equipment_separator=self.settings.equipment_separator,
        )
        for record in records:
            writer.add_record(record)
        return writer.to_bytes()
