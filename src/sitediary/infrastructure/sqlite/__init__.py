"""
SQLite infrastructure package.

Provides the local record store used for offline persistence.
"""

from sitediary.infrastructure.sqlite.store import RecordStore
from sitediary.infrastructure.sqlite.schema import SCHEMA_VERSION, initialize_schema

__all__ = [
    "RecordStore",
    "SCHEMA_VERSION",
    "initialize_schema",
]
