"""
Export artifacts and result types.

An artifact is a named byte payload ready for download. Export runs
return an ExportResult holding what succeeded and what failed, so the
caller can surface partial outcomes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable


class ExportFormat(Enum):
    """Export format tags."""
    DOCUMENT = "document"
    WORKBOOK = "workbook"
    TEXT = "text"
    ALL = "all"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]

    @classmethod
    def expand(cls, formats: Iterable["ExportFormat | str"]) -> list["ExportFormat"]:
        """
        Resolve tags to concrete formats in canonical order.

        "all" expands to document, workbook, text. Duplicates collapse.

        Raises:
            ValueError: For an unknown tag or an empty selection
        """
        wanted: set[ExportFormat] = set()
        for item in formats:
            fmt = item if isinstance(item, ExportFormat) else cls(str(item).strip().lower())
            if fmt is cls.ALL:
                wanted.update(CONCRETE_FORMATS)
            else:
                wanted.add(fmt)
        if not wanted:
            raise ValueError("No export format selected")
        return [fmt for fmt in CONCRETE_FORMATS if fmt in wanted]


CONCRETE_FORMATS: tuple[ExportFormat, ...] = (
    ExportFormat.DOCUMENT,
    ExportFormat.WORKBOOK,
    ExportFormat.TEXT,
)

_EXTENSIONS = {
    ExportFormat.DOCUMENT: "pdf",
    ExportFormat.WORKBOOK: "xlsx",
    ExportFormat.TEXT: "csv",
}

_MEDIA_TYPES = {
    ExportFormat.DOCUMENT: "application/pdf",
    ExportFormat.WORKBOOK: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.TEXT: "text/csv; charset=utf-8",
}

ARCHIVE_MEDIA_TYPE = "application/zip"


@dataclass(frozen=True)
class Artifact:
    """
    A generated output file.

    Attributes:
        name: Download file name
        content: File bytes
        media_type: MIME type
        export_format: Format of the artifact (None for archives)
        record_ids: Records covered by this artifact
        issues: Contained problems (e.g. images that failed to resolve)
    """
    name: str
    content: bytes
    media_type: str
    export_format: ExportFormat | None = None
    record_ids: tuple[str, ...] = ()
    issues: tuple[str, ...] = ()

    @property
    def partial(self) -> bool:
        """True when the artifact was produced with degraded content."""
        return bool(self.issues)

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class FailedExport:
    """An artifact that could not be produced at all."""
    record_id: str
    export_format: ExportFormat
    reason: str


@dataclass
class ExportResult:
    """
    Outcome of an export run.

    Attributes:
        artifacts: Produced artifacts in stable record/format order
        failures: Artifacts that could not be produced
        archive: ZIP bundle when more than one artifact was produced
    """
    artifacts: list[Artifact] = field(default_factory=list)
    failures: list[FailedExport] = field(default_factory=list)
    archive: Artifact | None = None

    @property
    def deliverable(self) -> Artifact | None:
        """What the user downloads: the archive, or the single artifact."""
        if self.archive is not None:
            return self.archive
        if len(self.artifacts) == 1:
            return self.artifacts[0]
        return None

    @property
    def partial_artifacts(self) -> list[Artifact]:
        return [artifact for artifact in self.artifacts if artifact.partial]

    @property
    def ok(self) -> bool:
        """No failures and no degraded artifacts."""
        return not self.failures and not self.partial_artifacts


_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase slug: runs of characters outside [a-z0-9] become '-'."""
    slug = _SLUG_PATTERN.sub("-", value.lower()).strip("-")
    return slug or "record"


def unique_slugs(record_ids: Iterable[str]) -> list[str]:
    """
    One unique slug per position in record_ids.

    Colliding slugs (including a repeated id) get -2, -3, ... suffixes in
    order, so names stay stable for a stable selection order.
    """
    result: list[str] = []
    used: set[str] = set()
    for record_id in record_ids:
        base = slugify(record_id)
        slug = base
        counter = 2
        while slug in used:
            slug = f"{base}-{counter}"
            counter += 1
        used.add(slug)
        result.append(slug)
    return result
