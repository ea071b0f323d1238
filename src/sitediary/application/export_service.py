"""
Export Service - Batch export coordinator.

Drives the three exporters over a selection of records:

- document (PDF) and text (CSV): one artifact per record
- workbook (XLSX): one per record for a single record, otherwise one
  shared workbook covering the whole batch

Per-record work runs concurrently with bounded concurrency, but results
are assembled in record order. A record that cannot be exported becomes
a FailedExport; its siblings continue. When more than one artifact is
produced they are bundled into one ZIP archive.
"""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sitediary.domain.artifacts import (
    ARCHIVE_MEDIA_TYPE,
    Artifact,
    ExportFormat,
    ExportResult,
    FailedExport,
    unique_slugs,
)
from sitediary.domain.errors import ExportFailure
from sitediary.domain.models import DiaryRecord
from sitediary.domain.normalize import normalize_record
from sitediary.domain.settings import ExportSettings
from sitediary.infrastructure.delimited import DelimitedTextExporter
from sitediary.infrastructure.document import DocumentRenderer
from sitediary.infrastructure.excel import WorkbookExporter

logger = logging.getLogger(__name__)

# Fixed member timestamp so repeated exports produce identical archives
ARCHIVE_TIMESTAMP = (1980, 1, 1, 0, 0, 0)

ArtifactCallback = Callable[[Artifact], None]


@dataclass
class _RecordOutcome:
    """What one record produced, keyed by format."""
    index: int
    record_id: str
    record: DiaryRecord | None = None
    artifacts: dict[ExportFormat, Artifact] = field(default_factory=dict)
    failures: list[FailedExport] = field(default_factory=list)


class ExportCoordinator:
    """
    Batch export coordinator.

    Usage:
        coordinator = ExportCoordinator(settings.export, renderer)
        result = coordinator.export_batch_sync(records, ["all"])
        if result.deliverable:
            save_artifact(result.deliverable, "exports")
    """

    def __init__(
        self,
        settings: ExportSettings | None = None,
        document_renderer: DocumentRenderer | None = None,
        workbook_exporter: WorkbookExporter | None = None,
        text_exporter: DelimitedTextExporter | None = None,
    ) -> None:
        self.settings = settings or ExportSettings()
        self.document_renderer = document_renderer or DocumentRenderer()
        self.workbook_exporter = workbook_exporter or WorkbookExporter(self.settings)
        self.text_exporter = text_exporter or DelimitedTextExporter(self.settings)

    # ========================================================================
    # Public API
    # ========================================================================

    async def export_record(
        self,
        record: DiaryRecord | Mapping[str, Any],
        export_format: ExportFormat | str = ExportFormat.ALL,
    ) -> ExportResult:
        """Export one record in one format tag ('all' yields an archive)."""
        return await self.export_batch([record], [export_format])

    async def export_batch(
        self,
        records: Iterable[DiaryRecord | Mapping[str, Any]],
        formats: Iterable[ExportFormat | str],
        *,
        shared_workbook: bool = True,
        on_artifact: ArtifactCallback | None = None,
    ) -> ExportResult:
        """
        Export records in the requested formats.

        Args:
            records: DiaryRecords or raw mappings, in output order
            formats: Format tags (document, workbook, text, all)
            shared_workbook: One workbook for a multi-record batch
            on_artifact: Called as each artifact completes

        Returns:
            ExportResult with artifacts in record/format order

        Raises:
            ValueError: If no valid format is selected
        """
        selected = ExportFormat.expand(formats)
        records = list(records)
        if not records:
            return ExportResult()

        ids = [_record_id(raw, index) for index, raw in enumerate(records)]
        slugs = unique_slugs(ids)
        shared = ExportFormat.WORKBOOK in selected and shared_workbook and len(records) > 1
        per_record = [fmt for fmt in selected if not (shared and fmt is ExportFormat.WORKBOOK)]

        image_semaphore = asyncio.Semaphore(self.settings.image_fetch_concurrency)
        work_semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def run(index: int, raw: Any) -> _RecordOutcome:
            async with work_semaphore:
                return await self._export_one(
                    index, raw, ids[index], slugs[index], per_record, selected,
                    image_semaphore, on_artifact,
                )

        tasks = [asyncio.create_task(run(index, raw)) for index, raw in enumerate(records)]
        outcomes = list(await asyncio.gather(*tasks))

        result = ExportResult()
        for outcome in outcomes:
            for fmt in per_record:
                if fmt in outcome.artifacts:
                    result.artifacts.append(outcome.artifacts[fmt])
            result.failures.extend(outcome.failures)

        if shared:
            await self._export_shared_workbook(outcomes, result, on_artifact)

        if len(result.artifacts) > 1:
            result.archive = self.build_archive(result)

        logger.info(
            "Export finished: %d records, %d artifacts, %d failures, %d partial",
            len(records),
            len(result.artifacts),
            len(result.failures),
            len(result.partial_artifacts),
        )
        return result

    def export_batch_sync(self, records, formats, **kwargs) -> ExportResult:
        """Blocking wrapper around export_batch()."""
        return asyncio.run(self.export_batch(records, formats, **kwargs))

    def export_record_sync(self, record, export_format=ExportFormat.ALL) -> ExportResult:
        """Blocking wrapper around export_record()."""
        return asyncio.run(self.export_record(record, export_format))

    # ========================================================================
    # Per-record work
    # ========================================================================

    async def _export_one(
        self,
        index: int,
        raw: Any,
        record_id: str,
        slug: str,
        per_record: list[ExportFormat],
        selected: list[ExportFormat],
        image_semaphore: asyncio.Semaphore,
        on_artifact: ArtifactCallback | None,
    ) -> _RecordOutcome:
        outcome = _RecordOutcome(index=index, record_id=record_id)

        try:
            record = normalize_record(raw)
        except ValueError as e:
            logger.warning("Export skipped for %s: %s", record_id, e)
            outcome.failures = [FailedExport(record_id, fmt, str(e)) for fmt in selected]
            return outcome
        outcome.record = record

        for fmt in per_record:
            try:
                artifact = await self._render(record, fmt, slug, image_semaphore)
            except ExportFailure as e:
                # Contain the failure to this record and format
                logger.warning("%s", e)
                logger.debug("Export failure detail", exc_info=True)
                outcome.failures.append(FailedExport(record_id, fmt, e.reason))
                continue
            outcome.artifacts[fmt] = artifact
            if on_artifact is not None:
                on_artifact(artifact)
        return outcome

    async def _render(
        self,
        record: DiaryRecord,
        fmt: ExportFormat,
        slug: str,
        image_semaphore: asyncio.Semaphore,
    ) -> Artifact:
        try:
            return await self._render_artifact(record, fmt, slug, image_semaphore)
        except Exception as e:
            raise ExportFailure(record.id, fmt.value, str(e) or type(e).__name__) from e

    async def _render_artifact(
        self,
        record: DiaryRecord,
        fmt: ExportFormat,
        slug: str,
        image_semaphore: asyncio.Semaphore,
    ) -> Artifact:
        name = f"{self.settings.file_prefix}{slug}.{fmt.extension}"

        if fmt is ExportFormat.DOCUMENT:
            document = await self.document_renderer.render(record, image_semaphore)
            return Artifact(
                name=name,
                content=document.content,
                media_type=fmt.media_type,
                export_format=fmt,
                record_ids=(record.id,),
                issues=document.issues,
            )
        if fmt is ExportFormat.WORKBOOK:
            content = await asyncio.to_thread(self.workbook_exporter.render, [record])
        else:
            content = self.text_exporter.render([record]).encode("utf-8")

        return Artifact(
            name=name,
            content=content,
            media_type=fmt.media_type,
            export_format=fmt,
            record_ids=(record.id,),
        )

    async def _export_shared_workbook(
        self,
        outcomes: list[_RecordOutcome],
        result: ExportResult,
        on_artifact: ArtifactCallback | None,
    ) -> None:
        records = [outcome.record for outcome in outcomes if outcome.record is not None]
        if not records:
            return

        fmt = ExportFormat.WORKBOOK
        try:
            content = await asyncio.to_thread(self.workbook_exporter.render, records)
        except Exception as e:
            logger.warning("Shared workbook export failed: %s", e)
            logger.debug("Export failure detail", exc_info=True)
            result.failures.extend(
                FailedExport(record.id, fmt, str(e) or type(e).__name__) for record in records
            )
            return

        artifact = Artifact(
            name=f"{self.settings.report_name}.{fmt.extension}",
            content=content,
            media_type=fmt.media_type,
            export_format=fmt,
            record_ids=tuple(record.id for record in records),
        )
        result.artifacts.append(artifact)
        if on_artifact is not None:
            on_artifact(artifact)

    # ========================================================================
    # Bundling
    # ========================================================================

    def build_archive(self, result: ExportResult) -> Artifact:
        """
        Bundle artifacts into one ZIP, members in result order.

        Member timestamps are fixed so a repeated export yields the same
        member names, order and metadata.
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for artifact in result.artifacts:
                info = zipfile.ZipInfo(artifact.name, date_time=ARCHIVE_TIMESTAMP)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                archive.writestr(info, artifact.content)

        record_ids = tuple(dict.fromkeys(rid for a in result.artifacts for rid in a.record_ids))
        issues = tuple(
            f"{artifact.name}: {issue}" for artifact in result.artifacts for issue in artifact.issues
        ) + tuple(
            f"{failure.record_id} ({failure.export_format.value}): {failure.reason}"
            for failure in result.failures
        )
        return Artifact(
            name=f"{self.settings.archive_name}.zip",
            content=buffer.getvalue(),
            media_type=ARCHIVE_MEDIA_TYPE,
            record_ids=record_ids,
            issues=issues,
        )


def save_artifact(artifact: Artifact, directory: Path | str) -> Path:
    """Write an artifact into a directory (created if needed)."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / artifact.name
    path.write_bytes(artifact.content)
    logger.info("Saved %s (%d bytes)", path, artifact.size)
    return path


def _record_id(raw: Any, index: int) -> str:
    if isinstance(raw, DiaryRecord):
        return raw.id
    if isinstance(raw, Mapping) and raw.get("id") not in (None, ""):
        return str(raw["id"])
    return f"record-{index + 1}"
