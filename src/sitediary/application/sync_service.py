"""
Sync Service - Push pending records and reconcile acknowledgments.

Every record in the local store is pending. One sync_pending() call:

1. Reads up to batch_size pending records, oldest modification first
2. POSTs them to the endpoint in one request
3. Deletes exactly the acknowledged records that were transmitted and
   have not been modified locally since they were read

When the endpoint leaves part of a batch unacknowledged, the next call
starts after that batch and wraps around to the oldest records, so a
backlog the endpoint keeps refusing cannot hold newer records back.

A failed push deletes nothing. Retries are never scheduled here; the
reconciler tracks consecutive failures and reports the backoff delay
so the caller can decide when to try again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sitediary.domain.errors import ConfigError, SyncTransportFailure
from sitediary.domain.models import DiaryRecord
from sitediary.domain.settings import SyncSettings
from sitediary.infrastructure.remote import RemoteSyncClient
from sitediary.infrastructure.sqlite import RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff: base * factor ** (failures - 1), capped.

    Attributes:
        base_delay: Delay after the first failure (seconds)
        factor: Growth per further failure
        max_delay: Upper bound (seconds)
    """

    base_delay: float = 2.0
    factor: float = 2.0
    max_delay: float = 300.0

    @classmethod
    def from_settings(cls, settings: SyncSettings) -> "RetryPolicy":
        return cls(
            base_delay=settings.backoff_base_seconds,
            factor=settings.backoff_factor,
            max_delay=settings.backoff_max_seconds,
        )

    def delay(self, consecutive_failures: int) -> float:
        if consecutive_failures <= 0:
            return 0.0
        return min(self.base_delay * self.factor ** (consecutive_failures - 1), self.max_delay)


@dataclass
class SyncReport:
    """
    Outcome of one sync invocation.

    Attributes:
        attempted: Ids transmitted
        acknowledged: Transmitted ids the endpoint acknowledged
        deleted: Ids removed from the local store
        remaining: Transmitted ids still pending (not acknowledged, or stale)
        stale: Acknowledged ids kept because they changed after being read
        unknown_acks: Acknowledged ids that were not part of this request
        remaining_count: Records left in the store afterwards
    """

    attempted: list[str] = field(default_factory=list)
    acknowledged: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    remaining: list[str] = field(default_factory=list)
    stale: list[str] = field(default_factory=list)
    unknown_acks: list[str] = field(default_factory=list)
    remaining_count: int = 0

    @property
    def nothing_pending(self) -> bool:
        return not self.attempted


class SyncReconciler:
    """
    Orchestrator for pushing pending records.

    Usage:
        reconciler = SyncReconciler(store, RemoteSyncClient(), settings.sync)
        report = reconciler.sync_pending("https://example.com/sync")
    """

    def __init__(
        self,
        store: RecordStore,
        client: RemoteSyncClient | None = None,
        settings: SyncSettings | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or SyncSettings()
        self.client = client or RemoteSyncClient(timeout=self.settings.timeout_seconds)
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)
        self.consecutive_failures = 0
        # (last_modified, id) of the last record sent when part of its batch was refused
        self.resume_after: tuple[int, str] | None = None

    def next_retry_delay(self) -> float:
        """Seconds the caller should wait before the next attempt (0 after success)."""
        return self.retry_policy.delay(self.consecutive_failures)

    def sync_pending(self, endpoint: str | None = None, timeout: float | None = None) -> SyncReport:
        """
        Push pending records and delete the acknowledged ones.

        Args:
            endpoint: Target URL (defaults to the configured endpoint)
            timeout: Round-trip timeout in seconds (defaults to settings)

        Returns:
            SyncReport

        Raises:
            ConfigError: If no endpoint is given or configured
            SyncTransportFailure: If the push fails (nothing is deleted)
            StorageFailure: If the store cannot be read or updated
        """
        endpoint = endpoint or self.settings.endpoint
        if not endpoint:
            raise ConfigError("No sync endpoint given or configured")

        pending = self._next_batch()
        if not pending:
            self.consecutive_failures = 0
            logger.info("Sync: nothing pending")
            return SyncReport(remaining_count=self.store.count())

        transmitted = {record.id: record.last_modified for record in pending}
        try:
            acked = self.client.push(
                endpoint,
                [record.to_dict() for record in pending],
                timeout=timeout if timeout is not None else self.settings.timeout_seconds,
            )
        except SyncTransportFailure as e:
            self.consecutive_failures += 1
            logger.warning(
                "Sync failed (%d consecutive): %s; retry in %.0fs",
                self.consecutive_failures,
                e,
                self.next_retry_delay(),
            )
            raise

        acknowledged: list[str] = []
        unknown: list[str] = []
        for record_id in dict.fromkeys(acked):
            (acknowledged if record_id in transmitted else unknown).append(record_id)
        if unknown:
            logger.warning("Sync: ignoring %d acknowledgments for ids not sent", len(unknown))

        deleted = self.store.delete_acknowledged(
            {record_id: transmitted[record_id] for record_id in acknowledged}
        )
        deleted_set = set(deleted)
        stale = [record_id for record_id in acknowledged if record_id not in deleted_set]
        for record_id in stale:
            logger.info("Sync: %s changed after upload; kept pending", record_id)

        self.consecutive_failures = 0
        report = SyncReport(
            attempted=list(transmitted),
            acknowledged=acknowledged,
            deleted=deleted,
            remaining=[record_id for record_id in transmitted if record_id not in deleted_set],
            stale=stale,
            unknown_acks=unknown,
            remaining_count=self.store.count(),
        )
        last = pending[-1]
        self.resume_after = (last.last_modified, last.id) if report.remaining else None
        logger.info(
            "Sync: sent %d, acknowledged %d, deleted %d, %d still pending",
            len(report.attempted),
            len(report.acknowledged),
            len(report.deleted),
            report.remaining_count,
        )
        return report

    def _next_batch(self) -> list[DiaryRecord]:
        limit = self.settings.batch_size
        if self.resume_after is None:
            return self.store.query_modified_since(limit=limit)

        batch = self.store.query_modified_since(limit=limit, after=self.resume_after)
        if len(batch) < limit:
            chosen = {record.id for record in batch}
            wrapped = [
                record
                for record in self.store.query_modified_since(limit=limit)
                if record.id not in chosen
            ]
            batch.extend(wrapped[: limit - len(batch)])
        return batch
