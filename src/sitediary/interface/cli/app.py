"""
CLI application.

Typer app wiring the record store, sync reconciler and export
coordinator to commands. Configuration comes from the JSON config file;
global options override individual values.
"""

import json
import logging
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape

from sitediary.application.container import Container
from sitediary.application.export_service import save_artifact
from sitediary.application.query_service import dashboard_stats, filter_records
from sitediary.domain.errors import SiteDiaryError, SyncTransportFailure
from sitediary.domain.models import RecordStatus
from sitediary.domain.normalize import normalize_record
from sitediary.domain.settings import AppSettings
from sitediary.infrastructure.config_loader import ConfigLoader
from sitediary.infrastructure.logging_config import setup_logging
from sitediary.interface.cli import formatters
from sitediary.interface.cli.formatters import console

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="sitediary",
    help="Site diary record store, sync and export tool",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@dataclass
class CliState:
    """Settings resolved by the global options."""
    settings: AppSettings


def _fail(message: str) -> None:
    logger.error(message)
    console.print(f"[red]Error: {escape(message)}[/red]", soft_wrap=True)
    raise typer.Exit(1)


def _container(ctx: typer.Context) -> Container:
    state: CliState = ctx.obj
    return Container(state.settings, base_dir=Path.cwd())


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON config file (default: config/sitediary.json)"
    ),
    db: Optional[Path] = typer.Option(None, "--db", help="Record store database file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
):
    """
    Offline-first site diary tool.

    Records are kept in a local store until the sync endpoint
    acknowledges them, and can be exported as printable documents,
    workbooks and delimited text.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING, log_file)

    try:
        settings = ConfigLoader(config).load()
    except SiteDiaryError as e:
        _fail(str(e))

    if db is not None:
        settings.store.path = str(db)
    ctx.obj = CliState(settings=settings)


@app.command("add")
def add_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="JSON file holding one record or a list of records"),
    submit: bool = typer.Option(False, "--submit", help="Mark the records as submitted"),
):
    """Store records from a JSON file (existing ids are replaced)."""
    try:
        data = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        _fail(f"Cannot read {file}: {e}")
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {file}: line {e.lineno}, column {e.colno}: {e.msg}")

    items = data if isinstance(data, list) else [data]
    try:
        records = [normalize_record(item) for item in items]
        if submit:
            records = [replace(record, status=RecordStatus.SUBMITTED) for record in records]
        with _container(ctx) as container:
            for record in records:
                container.store.put(record)
    except SiteDiaryError as e:
        _fail(str(e))

    for record in records:
        console.print(f"[green]Stored[/green] {escape(record.id)} ({record.status.value})")
    console.print(f"[blue]{len(records)} record(s) stored[/blue]")


@app.command("list")
def list_command(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", help="draft or submitted"),
    date_from: Optional[str] = typer.Option(None, "--from", help="First diary date (YYYY-MM-DD)"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last diary date (YYYY-MM-DD)"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Text in title, notes or project"),
):
    """List stored records."""
    try:
        if status:
            RecordStatus.from_value(status)
    except ValueError:
        _fail(f"Unknown status '{status}' (use draft or submitted)")

    try:
        with _container(ctx) as container:
            if date_from or date_to:
                records = container.store.query_by_date_range(
                    date_from or "0000-01-01", date_to or "9999-12-31"
                )
            else:
                records = container.store.get_all()
    except SiteDiaryError as e:
        _fail(str(e))

    records = filter_records(records, search=search, status=status)
    if not records:
        console.print("[yellow]No records found[/yellow]")
        return
    formatters.display_records_table(records)


@app.command("show")
def show_command(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Record id"),
):
    """Show one record."""
    try:
        with _container(ctx) as container:
            record = container.store.get(record_id)
    except SiteDiaryError as e:
        _fail(str(e))

    if record is None:
        _fail(f"Record {record_id} not found")
    formatters.display_record(record)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Record id"),
):
    """Delete one record from the local store."""
    try:
        with _container(ctx) as container:
            removed = container.store.delete(record_id)
    except SiteDiaryError as e:
        _fail(str(e))

    if not removed:
        _fail(f"Record {record_id} not found")
    console.print(f"[green]Deleted[/green] {escape(record_id)}")


@app.command("sync")
def sync_command(
    ctx: typer.Context,
    endpoint: Optional[str] = typer.Argument(None, help="Sync endpoint (default: configured endpoint)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Round-trip timeout in seconds"),
):
    """Push pending records and delete the acknowledged ones."""
    try:
        with _container(ctx) as container:
            reconciler = container.sync_reconciler
            try:
                report = reconciler.sync_pending(endpoint, timeout=timeout)
            except SyncTransportFailure as e:
                _fail(f"{e} (retry in {reconciler.next_retry_delay():.0f}s)")
    except SiteDiaryError as e:
        _fail(str(e))

    formatters.display_sync_report(report)


@app.command("export")
def export_command(
    ctx: typer.Context,
    record_ids: Optional[List[str]] = typer.Argument(None, help="Record ids, in output order"),
    formats: Optional[List[str]] = typer.Option(
        None, "--format", "-f", help="document, workbook, text or all (repeatable)"
    ),
    all_records: bool = typer.Option(False, "--all-records", help="Export every stored record"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory"),
):
    """Export records as PDF, XLSX and CSV."""
    state: CliState = ctx.obj
    if not record_ids and not all_records:
        _fail("Give record ids or --all-records")

    try:
        with _container(ctx) as container:
            if all_records:
                records = container.store.get_all()
            else:
                records = []
                for record_id in record_ids:
                    record = container.store.get(record_id)
                    if record is None:
                        _fail(f"Record {record_id} not found")
                    records.append(record)

            if not records:
                console.print("[yellow]No records to export[/yellow]")
                return

            result = container.export_coordinator.export_batch_sync(
                records,
                formats or ["all"],
                on_artifact=lambda artifact: console.print(f"[dim]Rendered {escape(artifact.name)}[/dim]"),
            )
    except ValueError as e:
        _fail(str(e))
    except SiteDiaryError as e:
        _fail(str(e))

    formatters.display_export_result(result)

    deliverable = result.deliverable
    if deliverable is None:
        _fail("Nothing was exported")

    path = save_artifact(deliverable, out or Path(state.settings.export.output_dir))
    console.print(f"[green]Saved[/green] {escape(str(path))}")
    if not result.ok:
        console.print("[yellow]Export completed with problems (see above)[/yellow]")


@app.command("stats")
def stats_command(ctx: typer.Context):
    """Show dashboard figures."""
    try:
        with _container(ctx) as container:
            records = container.store.get_all()
    except SiteDiaryError as e:
        _fail(str(e))

    formatters.display_stats(dashboard_stats(records, date.today()))
