"""
Application layer package.

Orchestrates the store, sync transport and exporters:
- sync_service: SyncReconciler, RetryPolicy, SyncReport
- export_service: ExportCoordinator
- query_service: listing filters and dashboard figures
- container: dependency wiring
"""

from sitediary.application.container import Container
from sitediary.application.export_service import ExportCoordinator, save_artifact
from sitediary.application.query_service import DashboardStats, dashboard_stats, filter_records
from sitediary.application.sync_service import RetryPolicy, SyncReconciler, SyncReport

__all__ = [
    "Container",
    "DashboardStats",
    "ExportCoordinator",
    "RetryPolicy",
    "SyncReconciler",
    "SyncReport",
    "dashboard_stats",
    "filter_records",
    "save_artifact",
]
