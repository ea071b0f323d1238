"""
Error taxonomy for SiteDiary.

Failures that belong to one unit of work (one image, one record in a batch)
are contained by the caller and reported as partial-result metadata.
Failures with no smaller unit to isolate to propagate:

    StorageFailure          - durable read/write could not complete
    SyncTransportFailure    - push failed or returned an unusable body
    ResourceResolutionFailure - an image reference could not be resolved
    ExportFailure           - one record's artifact could not be produced
"""

from __future__ import annotations


class SiteDiaryError(Exception):
    """Base class for all SiteDiary errors."""


class StorageFailure(SiteDiaryError):
    """The local record store could not complete a read or write."""


class SyncTransportFailure(SiteDiaryError):
    """The sync request failed, timed out, or returned a malformed body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResourceResolutionFailure(SiteDiaryError):
    """An image or signature reference could not be fetched or decoded."""

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(f"{_shorten(reference)}: {reason}")
        self.reference = reference
        self.reason = reason


class ExportFailure(SiteDiaryError):
    """An artifact for a single record could not be generated."""

    def __init__(self, record_id: str, export_format: str, reason: str) -> None:
        super().__init__(f"{export_format} export failed for {record_id}: {reason}")
        self.record_id = record_id
        self.export_format = export_format
        self.reason = reason


class InvalidRecordError(SiteDiaryError, ValueError):
    """A record (or raw mapping) does not have a usable shape."""


class ConfigError(SiteDiaryError):
    """Configuration file missing, unreadable, or invalid."""


def _shorten(reference: str, limit: int = 80) -> str:
    # data: URLs can be hundreds of kilobytes long
    if len(reference) <= limit:
        return reference
    return reference[: limit - 3] + "..."
