"""
Excel styling configuration and utilities.

Provides consistent styling across the diary workbook sheets:
- Color palette
- Font definitions
- Cell style presets
- Formatting helpers
"""

from __future__ import annotations

from dataclasses import dataclass

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet


# ============================================================================
# Color Palette
# ============================================================================


class Colors:
    """Workbook color palette (hex codes without #)."""

    HEADER_BG = "203764"  # Navy
    HEADER_TEXT = "FFFFFF"

    SUBMITTED_BG = "C6EFCE"  # Green
    SUBMITTED_TEXT = "006100"
    DRAFT_BG = "FFEB9C"  # Yellow
    DRAFT_TEXT = "9C5700"

    ROW_ALT_BG = "F2F6FC"


# ============================================================================
# Fonts
# ============================================================================


class Fonts:
    """Font definitions for the workbook."""

    HEADER = Font(name="Segoe UI", size=11, bold=True, color=Colors.HEADER_TEXT)
    DATA = Font(name="Segoe UI", size=10)
    DATA_BOLD = Font(name="Segoe UI", size=10, bold=True)

    SUBMITTED = Font(name="Segoe UI", size=10, bold=True, color=Colors.SUBMITTED_TEXT)
    DRAFT = Font(name="Segoe UI", size=10, bold=True, color=Colors.DRAFT_TEXT)


# ============================================================================
# Fills (Backgrounds)
# ============================================================================


class Fills:
    """Background fill patterns."""

    HEADER = PatternFill(
        start_color=Colors.HEADER_BG, end_color=Colors.HEADER_BG, fill_type="solid"
    )
    SUBMITTED = PatternFill(
        start_color=Colors.SUBMITTED_BG, end_color=Colors.SUBMITTED_BG, fill_type="solid"
    )
    DRAFT = PatternFill(
        start_color=Colors.DRAFT_BG, end_color=Colors.DRAFT_BG, fill_type="solid"
    )
    ROW_ALT = PatternFill(
        start_color=Colors.ROW_ALT_BG, end_color=Colors.ROW_ALT_BG, fill_type="solid"
    )


# ============================================================================
# Borders
# ============================================================================


class Borders:
    """Border styles."""

    THIN = Border(
        left=Side(style="thin", color="B4B4B4"),
        right=Side(style="thin", color="B4B4B4"),
        top=Side(style="thin", color="B4B4B4"),
        bottom=Side(style="thin", color="B4B4B4"),
    )

    HEADER = Border(
        left=Side(style="thin", color="1F4E79"),
        right=Side(style="thin", color="1F4E79"),
        top=Side(style="thin", color="1F4E79"),
        bottom=Side(style="medium", color="1F4E79"),
    )


# ============================================================================
# Alignments
# ============================================================================


class Alignments:
    """Text alignment definitions."""

    CENTER = Alignment(horizontal="center", vertical="center", wrap_text=False)
    CENTER_WRAP = Alignment(horizontal="center", vertical="center", wrap_text=True)
    LEFT = Alignment(horizontal="left", vertical="top", wrap_text=False)
    LEFT_WRAP = Alignment(horizontal="left", vertical="top", wrap_text=True)
    RIGHT = Alignment(horizontal="right", vertical="top", wrap_text=False)


# ============================================================================
# Column Definition
# ============================================================================


@dataclass
class ColumnDef:
    """
    Column definition for a workbook sheet.

    Attributes:
        name: Column header text
        alignment: Text alignment
        is_numeric: Value is written as a number cell
        is_status: Apply draft/submitted styling
    """

    name: str
    alignment: Alignment = Alignments.LEFT
    is_numeric: bool = False
    is_status: bool = False


# ============================================================================
# Helper Functions
# ============================================================================


def apply_header_row(ws: Worksheet, columns: list[ColumnDef], row: int = 1) -> None:
    """
    Apply header styling to a row.

    Args:
        ws: Worksheet
        columns: List of column definitions
        row: Row number (1-indexed)
    """
    for col_idx, col_def in enumerate(columns, start=1):
        cell = ws.cell(row=row, column=col_idx)
        cell.value = col_def.name
        cell.font = Fonts.HEADER
        cell.fill = Fills.HEADER
        cell.alignment = Alignments.CENTER_WRAP
        cell.border = Borders.HEADER


def apply_status_styling(cell, status: str) -> None:
    """Color a status cell: green for submitted, yellow for draft."""
    status = status.lower() if status else ""
    if status == "submitted":
        cell.font = Fonts.SUBMITTED
        cell.fill = Fills.SUBMITTED
    elif status == "draft":
        cell.font = Fonts.DRAFT
        cell.fill = Fills.DRAFT
    cell.alignment = Alignments.CENTER


def set_column_width(ws: Worksheet, col_idx: int, width: float) -> None:
    ws.column_dimensions[get_column_letter(col_idx)].width = width


def freeze_panes(ws: Worksheet, row: int = 2, col: int = 1) -> None:
    """
    Freeze panes in a worksheet.

    Args:
        ws: Worksheet
        row: First unfrozen row (freeze rows above)
        col: First unfrozen column (freeze columns to the left)
    """
    ws.freeze_panes = ws.cell(row=row, column=col)


def add_autofilter(
    ws: Worksheet, columns: list[ColumnDef], header_row: int = 1
) -> None:
    """
    Add autofilter to header row.

    Args:
        ws: Worksheet
        columns: Column definitions
        header_row: Header row number
    """
    last_col = get_column_letter(len(columns))
    ws.auto_filter.ref = f"A{header_row}:{last_col}{header_row}"
