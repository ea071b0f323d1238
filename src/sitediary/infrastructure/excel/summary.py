"""
Summary Sheet Module.

One row per diary record: identity, weather, working hours, the
free-text sections and bookkeeping columns. List values are flattened
with the configured list separator.
"""

from __future__ import annotations

from sitediary.domain.models import DiaryRecord, format_timestamp
from sitediary.infrastructure.excel_styles import ColumnDef, Alignments
from sitediary.infrastructure.excel.base import (
    BaseSheetMixin,
    SheetConfig,
    format_millis,
)


__all__ = ["SummarySheetMixin", "SUMMARY_CONFIG", "image_label"]


SUMMARY_COLUMNS = (
    ColumnDef("ID"),
    ColumnDef("Title"),
    ColumnDef("Project"),
    ColumnDef("Contract ID"),
    ColumnDef("Location"),
    ColumnDef("Date", Alignments.CENTER),
    ColumnDef("Status", Alignments.CENTER, is_status=True),
    ColumnDef("Start Time", Alignments.CENTER),
    ColumnDef("End Time", Alignments.CENTER),
    ColumnDef("Temperature"),
    ColumnDef("Sky"),
    ColumnDef("Precipitation"),
    ColumnDef("Wind"),
    ColumnDef("Task Count", is_numeric=True),
    ColumnDef("Progress", Alignments.LEFT_WRAP),
    ColumnDef("Safety", Alignments.LEFT_WRAP),
    ColumnDef("Materials", Alignments.LEFT_WRAP),
    ColumnDef("Equipment", Alignments.LEFT_WRAP),
    ColumnDef("Labor", Alignments.LEFT_WRAP),
    ColumnDef("Issues", Alignments.LEFT_WRAP),
    ColumnDef("Next Steps", Alignments.LEFT_WRAP),
    ColumnDef("Notes", Alignments.LEFT_WRAP),
    ColumnDef("Images", Alignments.LEFT_WRAP),
    ColumnDef("Signature", Alignments.CENTER),
    ColumnDef("Created By"),
    ColumnDef("Created At", Alignments.CENTER),
    ColumnDef("Last Modified", Alignments.CENTER),
)

SUMMARY_CONFIG = SheetConfig(name="Summary", columns=SUMMARY_COLUMNS)


def image_label(reference: str) -> str:
    """Cell text for an image reference; inline data is not copied into cells."""
    if reference.startswith("data:"):
        return "[embedded image]"
    return reference


class SummarySheetMixin(BaseSheetMixin):
    """Mixin for the Summary sheet."""

    list_separator: str

    def add_record_summary(self, record: DiaryRecord) -> int:
        """Add one record's summary row. Returns the row number."""
        ws = self._ensure_sheet(SUMMARY_CONFIG)

        data = [
            record.id,
            record.title,
            record.project_title,
            record.contract_id,
            record.site_location,
            record.display_date,
            record.status.value,
            record.working_hours.start_time,
            record.working_hours.end_time,
            record.weather.temperature,
            record.weather.sky,
            record.weather.precipitation,
            record.weather.wind,
            len(record.tasks),
            record.progress,
            record.safety,
            record.materials,
            record.equipment,
            record.labor,
            record.issues,
            record.next_steps,
            record.notes,
            self.list_separator.join(image_label(ref) for ref in record.image_urls),
            "Yes" if record.signature else "No",
            record.created_by or "",
            (format_timestamp(record.created_at) or "")[:19].replace("T", " "),
            format_millis(record.last_modified),
        ]
        return self._write_row(ws, SUMMARY_CONFIG, data)
