"""
Delimited-text (CSV) export.

Each record is written as a fixed sequence of sections:

    Site Diary Entry
    Title,<title>
    ...scalar rows...

    Weather Conditions
    Sky,<sky>
    ...

    Tasks
    Task No.,Description,Equipment,Quantity,Unit
    1,<description>,<equipment>,<quantity>,<unit>

    Notes
    <notes>

Records are separated by a blank line, a divider line and a blank line.
By default values are written verbatim: a value containing the separator
or a line break is not escaped, matching the files users already have.
quote_fields=True switches to csv module quoting.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable

from sitediary.domain.models import DiaryRecord, format_quantity
from sitediary.domain.settings import ExportSettings

logger = logging.getLogger(__name__)

HEADER_LINE = "Site Diary Entry"
RECORD_DIVIDER = "-------------------"
TASK_HEADER = ("Task No.", "Description", "Equipment", "Quantity", "Unit")


class DelimitedTextExporter:
    """
    Render records as delimited text.

    Args:
        settings: Export settings (separators)
        quote_fields: Quote values with the csv module instead of writing
                      them verbatim
    """

    def __init__(
        self,
        settings: ExportSettings | None = None,
        quote_fields: bool = False,
    ) -> None:
        self.settings = settings or ExportSettings()
        self.quote_fields = quote_fields
        if quote_fields and len(self.settings.text_separator) != 1:
            raise ValueError("Quoted output needs a single-character separator")

    def render(self, records: Iterable[DiaryRecord]) -> str:
        """Render records, in the given order, to one text document."""
        rows: list[list[str]] = []
        count = 0
        for record in records:
            if count:
                rows.extend([[], [RECORD_DIVIDER], []])
            rows.extend(self._record_rows(record))
            count += 1

        text = self._quoted(rows) if self.quote_fields else self._verbatim(rows)
        logger.debug("Delimited text rendered: %d records, %d lines", count, len(rows))
        return text

    def _record_rows(self, record: DiaryRecord) -> list[list[str]]:
        weather = record.weather
        hours = record.working_hours

        rows: list[list[str]] = [
            [HEADER_LINE],
            ["Title", record.title],
            ["Project", record.project_title],
            ["Contract ID", record.contract_id],
            ["Location", record.site_location],
            ["Date", record.display_date],
            ["Status", record.status.value],
            ["Start Time", hours.start_time],
            ["End Time", hours.end_time],
            [],
            ["Weather Conditions"],
            ["Sky", weather.sky],
            ["Precipitation", weather.precipitation],
            ["Temperature", weather.temperature],
            ["Wind", weather.wind],
            [],
            ["Tasks"],
            list(TASK_HEADER),
        ]

        for number, task in enumerate(record.tasks, start=1):
            rows.append(
                [
                    str(number),
                    task.description,
                    self.settings.equipment_separator.join(task.equipment),
                    format_quantity(task.quantity),
                    task.unit,
                ]
            )

        rows.extend([[], ["Notes"], [record.notes]])
        return rows

    def _verbatim(self, rows: list[list[str]]) -> str:
        if not rows:
            return ""
        separator = self.settings.text_separator
        return "\n".join(separator.join(row) for row in rows) + "\n"

    def _quoted(self, rows: list[list[str]]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(
            buffer,
            delimiter=self.settings.text_separator,
            lineterminator="\n",
            quoting=csv.QUOTE_MINIMAL,
        )
        writer.writerows(rows)
        return buffer.getvalue()
