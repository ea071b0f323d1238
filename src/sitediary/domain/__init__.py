"""
Domain layer package.

Contains pure data models with no I/O dependencies.
Records are serialized to/from SQLite and the sync endpoint via the
infrastructure layer.
"""

from sitediary.domain.models import (
    # Enums
    RecordStatus,
    # Core Models
    DiaryRecord,
    Weather,
    WorkingHours,
    Task,
)
from sitediary.domain.normalize import normalize_record
from sitediary.domain.artifacts import (
    Artifact,
    ExportFormat,
    ExportResult,
    FailedExport,
)
from sitediary.domain.errors import (
    SiteDiaryError,
    StorageFailure,
    SyncTransportFailure,
    ResourceResolutionFailure,
    ExportFailure,
    InvalidRecordError,
    ConfigError,
)
from sitediary.domain.settings import AppSettings

__all__ = [
    "RecordStatus",
    "DiaryRecord",
    "Weather",
    "WorkingHours",
    "Task",
    "normalize_record",
    "Artifact",
    "ExportFormat",
    "ExportResult",
    "FailedExport",
    "SiteDiaryError",
    "StorageFailure",
    "SyncTransportFailure",
    "ResourceResolutionFailure",
    "ExportFailure",
    "InvalidRecordError",
    "ConfigError",
    "AppSettings",
]
