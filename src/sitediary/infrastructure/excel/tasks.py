"""
Tasks Sheet Module.

One row per task across all exported records, keyed back to its entry
by title, date and record id.
"""

from __future__ import annotations

from sitediary.domain.models import DiaryRecord
from sitediary.infrastructure.excel_styles import ColumnDef, Alignments
from sitediary.infrastructure.excel.base import BaseSheetMixin, SheetConfig


__all__ = ["TaskSheetMixin", "TASK_CONFIG"]


TASK_COLUMNS = (
    ColumnDef("Entry Title"),
    ColumnDef("Date", Alignments.CENTER),
    ColumnDef("Record ID"),
    ColumnDef("Task No.", is_numeric=True),
    ColumnDef("Description", Alignments.LEFT_WRAP),
    ColumnDef("Equipment", Alignments.LEFT_WRAP),
    ColumnDef("Quantity", is_numeric=True),
    ColumnDef("Unit"),
)

TASK_CONFIG = SheetConfig(name="Tasks", columns=TASK_COLUMNS)


class TaskSheetMixin(BaseSheetMixin):
    """Mixin for the Tasks sheet."""

    equipment_separator: str

    def add_record_tasks(self, record: DiaryRecord) -> int:
        """Add a row for each of the record's tasks. Returns rows written."""
        ws = self._ensure_sheet(TASK_CONFIG)

        for number, task in enumerate(record.tasks, start=1):
            self._write_row(
                ws,
                TASK_CONFIG,
                [
                    record.display_title,
                    record.display_date,
                    record.id,
                    number,
                    task.description,
                    self.equipment_separator.join(task.equipment),
                    task.quantity,
                    task.unit,
                ],
            )
        return len(record.tasks)
