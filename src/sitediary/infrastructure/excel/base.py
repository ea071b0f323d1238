"""
Excel Workbook Base Module.

Contains shared utilities, sheet configuration and the base mixin
for the diary workbook sheet modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from openpyxl.worksheet.worksheet import Worksheet

from sitediary.domain.models import format_quantity

from sitediary.infrastructure.excel_styles import (
    ColumnDef,
    Alignments,
    Fonts,
    Fills,
    Borders,
    apply_header_row,
    apply_status_styling,
    set_column_width,
    freeze_panes,
    add_autofilter,
)

if TYPE_CHECKING:
    from openpyxl import Workbook


logger = logging.getLogger(__name__)


__all__ = [
    "ColumnDef",
    "Alignments",
    "SheetConfig",
    "BaseSheetMixin",
    "format_millis",
    "COLUMN_PADDING",
]

# Characters added to the longest value when inferring a column width
COLUMN_PADDING = 2


# ============================================================================
# Utility Functions
# ============================================================================


def format_millis(value: int | None) -> str:
    """Format epoch milliseconds as a UTC timestamp string."""
    if not value:
        return ""
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def display_length(value: Any) -> int:
    """Width a value needs: the longest line of its text form."""
    if value is None:
        return 0
    text = format_quantity(value) if isinstance(value, (int, float)) else str(value)
    return max((len(line) for line in text.splitlines()), default=0)


# ============================================================================
# Sheet Configuration
# ============================================================================


@dataclass(frozen=True)
class SheetConfig:
    """Configuration for a worksheet."""

    name: str
    columns: tuple[ColumnDef, ...]

    @property
    def column_count(self) -> int:
        return len(self.columns)


# ============================================================================
# Base Sheet Mixin
# ============================================================================


class BaseSheetMixin:
    """
    Base class for sheet mixins.

    Provides sheet creation, row writing, and content-driven column
    widths. Each sheet mixin inherits from this and implements its
    add_* method.
    """

    # Provided by the writer
    wb: Workbook
    column_width_max: int
    _row_counters: dict[str, int]
    _column_widths: dict[str, list[int]]

    def _ensure_sheet(self, config: SheetConfig) -> Worksheet:
        """
        Get or create a worksheet with the given configuration.

        Creates the sheet if it doesn't exist, applies headers,
        freezes panes, and adds autofilter.
        """
        if config.name in self.wb.sheetnames:
            return self.wb[config.name]

        # Remove default "Sheet" if present
        if "Sheet" in self.wb.sheetnames and len(self.wb.sheetnames) == 1:
            del self.wb["Sheet"]

        ws = self.wb.create_sheet(config.name)
        apply_header_row(ws, list(config.columns), row=1)
        freeze_panes(ws, row=2, col=1)
        add_autofilter(ws, list(config.columns), header_row=1)

        self._row_counters.setdefault(config.name, 2)
        self._column_widths[config.name] = [
            len(col.name) for col in config.columns
        ]
        return ws

    def _write_row(
        self,
        ws: Worksheet,
        config: SheetConfig,
        data: list[Any],
    ) -> int:
        """
        Write a row of data to a worksheet.

        Args:
            ws: Target worksheet
            config: Sheet configuration with column definitions
            data: List of values to write

        Returns:
            Row number that was written
        """
        row = self._row_counters[config.name]
        widths = self._column_widths[config.name]
        alternate = row % 2 == 1

        for col, (value, col_def) in enumerate(zip(data, config.columns), start=1):
            cell = ws.cell(row=row, column=col)
            cell.value = value
            cell.font = Fonts.DATA
            cell.border = Borders.THIN
            cell.alignment = Alignments.RIGHT if col_def.is_numeric else col_def.alignment
            if alternate:
                cell.fill = Fills.ROW_ALT
            if col_def.is_status:
                apply_status_styling(cell, str(value or ""))

            widths[col - 1] = max(widths[col - 1], display_length(value))

        self._row_counters[config.name] += 1
        return row

    def _apply_column_widths(self, config: SheetConfig) -> None:
        """Set each column to its longest content plus padding, capped."""
        if config.name not in self.wb.sheetnames:
            return
        ws = self.wb[config.name]
        for col_idx, width in enumerate(self._column_widths[config.name], start=1):
            set_column_width(ws, col_idx, min(width + COLUMN_PADDING, self.column_width_max))
