"""
Listing and dashboard queries over diary records.

Pure functions over already-loaded records: the admin listing filter
and the numbers behind the dashboard cards and trend chart.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from sitediary.domain.models import DiaryRecord, RecordStatus

logger = logging.getLogger(__name__)

RECENT_DAYS = 7


def filter_records(
    records: Iterable[DiaryRecord],
    search: str | None = None,
    on_date: str | None = None,
    status: RecordStatus | str | None = None,
) -> list[DiaryRecord]:
    """
    Filter records for a listing.

    Args:
        records: Records to filter (order is kept)
        search: Case-insensitive substring of title, notes or project
        on_date: Exact ISO diary date
        status: Only records with this status

    Returns:
        Matching records
    """
    needle = search.strip().lower() if search else ""
    wanted_status = RecordStatus.from_value(status) if status else None

    matches = []
    for record in records:
        if needle and not any(
            needle in value.lower()
            for value in (record.title, record.notes, record.project_title)
        ):
            continue
        if on_date and record.display_date != on_date:
            continue
        if wanted_status is not None and record.status is not wanted_status:
            continue
        matches.append(record)
    return matches


@dataclass
class DashboardStats:
    """
    Numbers shown on the dashboard.

    Attributes:
        total: All entries
        recent: Entries dated within the last 7 days (today included)
        with_issues: Entries whose issues section is filled in
        submitted_rate: Percentage of submitted entries, rounded half up
        per_date: Entry count per diary date, oldest first
    """

    total: int = 0
    recent: int = 0
    with_issues: int = 0
    submitted_rate: int = 0
    per_date: list[tuple[str, int]] = field(default_factory=list)

    @property
    def without_issues(self) -> int:
        return self.total - self.with_issues


def dashboard_stats(records: Iterable[DiaryRecord], today: date) -> DashboardStats:
    """Compute dashboard figures as of `today`."""
    records = list(records)
    if not records:
        return DashboardStats()

    window_start = today - timedelta(days=RECENT_DAYS - 1)
    recent = 0
    for record in records:
        try:
            day = date.fromisoformat(record.display_date)
        except ValueError:
            logger.debug("Record %s has no usable date", record.id)
            continue
        if window_start <= day <= today:
            recent += 1

    submitted = sum(1 for record in records if record.status is RecordStatus.SUBMITTED)
    per_date = Counter(record.display_date for record in records if record.display_date)

    return DashboardStats(
        total=len(records),
        recent=recent,
        with_issues=sum(1 for record in records if record.issues.strip()),
        submitted_rate=math.floor(100 * submitted / len(records) + 0.5),
        per_date=sorted(per_date.items()),
    )
