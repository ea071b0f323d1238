"""
Dependency injection container for the application.

Creates the store, sync and export components from one AppSettings and
owns the record store's lifecycle.
"""

import logging
from pathlib import Path
from typing import Optional

from sitediary.application.export_service import ExportCoordinator
from sitediary.application.sync_service import SyncReconciler
from sitediary.domain.settings import AppSettings
from sitediary.infrastructure.delimited import DelimitedTextExporter
from sitediary.infrastructure.document import DocumentRenderer
from sitediary.infrastructure.excel import WorkbookExporter
from sitediary.infrastructure.images import ImageResolver
from sitediary.infrastructure.remote import RemoteSyncClient
from sitediary.infrastructure.sqlite import RecordStore

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Components are created on first use. The record store is opened when
    first requested and closed by close() (or on leaving a with block).

    Usage:
        with Container(settings) as container:
            container.store.put(record)
            container.sync_reconciler.sync_pending()
    """

    def __init__(self, settings: Optional[AppSettings] = None, base_dir: Optional[Path] = None):
        """
        Initialize the container.

        Args:
            settings: Application settings (defaults when None)
            base_dir: Directory relative image paths are resolved against
        """
        self.settings = settings or AppSettings()
        self.base_dir = base_dir

        self._store: Optional[RecordStore] = None
        self._remote_client: Optional[RemoteSyncClient] = None
        self._sync_reconciler: Optional[SyncReconciler] = None
        self._image_resolver: Optional[ImageResolver] = None
        self._export_coordinator: Optional[ExportCoordinator] = None

    @property
    def store(self) -> RecordStore:
        """Get the opened record store."""
        if self._store is None:
            self._store = RecordStore(self.settings.store.path).open()
        return self._store

    @property
    def remote_client(self) -> RemoteSyncClient:
        if self._remote_client is None:
            self._remote_client = RemoteSyncClient(timeout=self.settings.sync.timeout_seconds)
        return self._remote_client

    @property
    def sync_reconciler(self) -> SyncReconciler:
        """Get the sync reconciler bound to the store."""
        if self._sync_reconciler is None:
            self._sync_reconciler = SyncReconciler(
                store=self.store,
                client=self.remote_client,
                settings=self.settings.sync,
            )
        return self._sync_reconciler

    @property
    def image_resolver(self) -> ImageResolver:
        if self._image_resolver is None:
            self._image_resolver = ImageResolver(
                timeout=self.settings.export.image_timeout_seconds,
                concurrency=self.settings.export.image_fetch_concurrency,
                base_dir=self.base_dir,
            )
        return self._image_resolver

    @property
    def export_coordinator(self) -> ExportCoordinator:
        """Get the export coordinator with all three exporters."""
        if self._export_coordinator is None:
            export_settings = self.settings.export
            self._export_coordinator = ExportCoordinator(
                settings=export_settings,
                document_renderer=DocumentRenderer(self.settings.document, self.image_resolver),
                workbook_exporter=WorkbookExporter(export_settings),
                text_exporter=DelimitedTextExporter(export_settings),
            )
        return self._export_coordinator

    def close(self) -> None:
        """Close the record store if it was opened."""
        if self._store is not None:
            self._store.close()
            self._store = None
            self._sync_reconciler = None

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
