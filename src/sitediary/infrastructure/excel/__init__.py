"""
Excel workbook package.

Modular workbook generation for diary exports:
- base.py: SheetConfig, BaseSheetMixin, width inference
- summary.py: Summary sheet (one row per record)
- tasks.py: Tasks sheet (one row per task)
- writer.py: DiaryWorkbookWriter composing the mixins, WorkbookExporter
"""

from sitediary.infrastructure.excel.writer import (
    DiaryWorkbookWriter,
    WorkbookExporter,
    SHEET_ORDER,
)
from sitediary.infrastructure.excel.summary import SUMMARY_CONFIG
from sitediary.infrastructure.excel.tasks import TASK_CONFIG

__all__ = [
    "DiaryWorkbookWriter",
    "WorkbookExporter",
    "SHEET_ORDER",
    "SUMMARY_CONFIG",
    "TASK_CONFIG",
]
