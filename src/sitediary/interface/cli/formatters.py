"""
CLI result formatters.

Rich tables and panels for records, sync reports, export results and
dashboard figures, kept apart from the command logic.
"""

import logging
from typing import List

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sitediary.application.query_service import DashboardStats
from sitediary.application.sync_service import SyncReport
from sitediary.domain.artifacts import ExportResult
from sitediary.domain.models import DiaryRecord, RecordStatus, format_quantity
from sitediary.domain.vocabulary import is_known_weather_value
from sitediary.infrastructure.excel.base import format_millis

logger = logging.getLogger(__name__)
console = Console()


def status_markup(status: RecordStatus) -> str:
    if status is RecordStatus.SUBMITTED:
        return "[green]Submitted[/green]"
    return "[yellow]Draft[/yellow]"


def display_records_table(records: List[DiaryRecord]) -> None:
    """Print a listing of records."""
    table = Table(title="Site Diary Entries")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Date", style="blue", no_wrap=True)
    table.add_column("Title")
    table.add_column("Project", style="magenta")
    table.add_column("Status")
    table.add_column("Tasks", justify="right")

    for record in records:
        table.add_row(
            escape(record.id),
            record.display_date or "-",
            escape(record.display_title),
            escape(record.project_title) or "-",
            status_markup(record.status),
            str(len(record.tasks)),
        )

    console.print(table)
    console.print(f"[blue]{len(records)} record(s)[/blue]")


def _weather_value(category: str, value: str) -> str:
    if not value:
        return "-"
    if is_known_weather_value(category, value):
        return escape(value)
    return f"{escape(value)} [dim](custom)[/dim]"


def display_record(record: DiaryRecord) -> None:
    """Print one record in full."""
    lines = [
        f"[bold]Project:[/bold] {escape(record.project_title) or '-'}",
        f"[bold]Contract ID:[/bold] {escape(record.contract_id) or '-'}",
        f"[bold]Location:[/bold] {escape(record.site_location) or '-'}",
        f"[bold]Date:[/bold] {record.display_date or '-'}",
        f"[bold]Status:[/bold] {status_markup(record.status)}",
        f"[bold]Prepared by:[/bold] {escape(record.created_by or '-')}",
        f"[bold]Working hours:[/bold] "
        f"{record.working_hours.start_time or '-'} to {record.working_hours.end_time or '-'}",
        "",
        "[bold]Weather[/bold]",
    ]
    weather = record.weather
    for category, value in (
        ("sky", weather.sky),
        ("precipitation", weather.precipitation),
        ("temperature", weather.temperature),
        ("wind", weather.wind),
    ):
        lines.append(f"  {category.capitalize()}: {_weather_value(category, value)}")

    for heading, text in (
        ("Progress", record.progress),
        ("Safety", record.safety),
        ("Materials", record.materials),
        ("Equipment", record.equipment),
        ("Labor", record.labor),
        ("Issues", record.issues),
        ("Next Steps", record.next_steps),
        ("Notes", record.notes),
    ):
        if text:
            lines.extend(["", f"[bold]{heading}[/bold]", escape(text)])

    lines.extend([
        "",
        f"[bold]Photos:[/bold] {len(record.image_urls)}",
        f"[bold]Signed:[/bold] {'Yes' if record.signature else 'No'}",
        f"[bold]Last modified:[/bold] {format_millis(record.last_modified) or '-'}",
    ])
    console.print(Panel("\n".join(lines), title=escape(record.display_title), subtitle=escape(record.id)))

    if record.tasks:
        table = Table(title="Tasks")
        table.add_column("No.", justify="right")
        table.add_column("Description")
        table.add_column("Equipment")
        table.add_column("Quantity", justify="right")
        table.add_column("Unit")
        for number, task in enumerate(record.tasks, start=1):
            table.add_row(
                str(number),
                escape(task.description),
                escape(", ".join(task.equipment)),
                format_quantity(task.quantity),
                escape(task.unit),
            )
        console.print(table)


def display_sync_report(report: SyncReport) -> None:
    if report.nothing_pending:
        console.print("[green]Nothing pending, store is in sync[/green]")
        return

    console.print(
        f"[blue]Sent {len(report.attempted)}, acknowledged {len(report.acknowledged)}, "
        f"deleted {len(report.deleted)}[/blue]"
    )
    for record_id in report.stale:
        console.print(f"[yellow]Changed during upload, kept pending: {escape(record_id)}[/yellow]")
    if report.unknown_acks:
        console.print(
            f"[yellow]Ignored {len(report.unknown_acks)} acknowledgment(s) for records not sent[/yellow]"
        )
    console.print(f"[blue]{report.remaining_count} record(s) still pending[/blue]")


def display_export_result(result: ExportResult) -> None:
    """Print produced artifacts and anything that went wrong."""
    if result.artifacts:
        table = Table(title="Export Results")
        table.add_column("File", style="cyan", no_wrap=True)
        table.add_column("Records")
        table.add_column("Size", justify="right")
        table.add_column("Status")
        for artifact in result.artifacts:
            table.add_row(
                escape(artifact.name),
                escape(", ".join(artifact.record_ids)),
                f"{artifact.size:,} B",
                "[yellow]Partial[/yellow]" if artifact.partial else "[green]OK[/green]",
            )
        console.print(table)

    for artifact in result.partial_artifacts:
        for issue in artifact.issues:
            console.print(f"[yellow]{escape(artifact.name)}: {escape(issue)}[/yellow]")
    for failure in result.failures:
        console.print(
            f"[red]Failed {failure.export_format.value} for {escape(failure.record_id)}: "
            f"{escape(failure.reason)}[/red]"
        )


def display_stats(stats: DashboardStats) -> None:
    table = Table(title="Dashboard")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total entries", str(stats.total))
    table.add_row("Last 7 days", str(stats.recent))
    table.add_row("With issues", str(stats.with_issues))
    table.add_row("Without issues", str(stats.without_issues))
    table.add_row("Completion rate", f"{stats.submitted_rate}%")
    console.print(table)

    if stats.per_date:
        trend = Table(title="Entries per Day")
        trend.add_column("Date", style="blue")
        trend.add_column("Entries", justify="right")
        for day, count in stats.per_date:
            trend.add_row(day, str(count))
        console.print(trend)
