"""
Tests for listing filters and dashboard figures.
"""

import unittest
from datetime import date

from sitediary.application.query_service import dashboard_stats, filter_records
from sitediary.domain.models import RecordStatus

from conftest import make_record


class TestFilterRecords(unittest.TestCase):

    def setUp(self):
        self.records = [
            make_record("a", title="Crane lift", notes="", projectTitle="North Depot", date="2024-05-01"),
            make_record("b", title="Pour", notes="Crane on standby", date="2024-05-02", status="submitted"),
            make_record("c", title="Survey", notes="", projectTitle="Harbour", date="2024-05-02"),
        ]

    def ids(self, records):
        return [record.id for record in records]

    def test_no_filters_keeps_everything(self):
        self.assertEqual(self.ids(filter_records(self.records)), ["a", "b", "c"])

    def test_search_title_and_notes_case_insensitive(self):
        self.assertEqual(self.ids(filter_records(self.records, search="CRANE")), ["a", "b"])

    def test_search_project(self):
        self.assertEqual(self.ids(filter_records(self.records, search="depot")), ["a"])

    def test_date_and_status(self):
        self.assertEqual(self.ids(filter_records(self.records, on_date="2024-05-02")), ["b", "c"])
        self.assertEqual(
            self.ids(filter_records(self.records, on_date="2024-05-02", status=RecordStatus.DRAFT)), ["c"]
        )
        self.assertEqual(self.ids(filter_records(self.records, status="submitted")), ["b"])


class TestDashboardStats(unittest.TestCase):

    def test_empty(self):
        stats = dashboard_stats([], date(2024, 5, 14))
        self.assertEqual(stats.total, 0)
        self.assertEqual(stats.submitted_rate, 0)
        self.assertEqual(stats.per_date, [])

    def test_figures(self):
        records = [
            make_record("a", date="2024-05-14", status="submitted", issues="Late delivery"),
            make_record("b", date="2024-05-08", status="submitted"),
            make_record("c", date="2024-05-07", issues="  "),
            make_record("d", date="2024-05-20"),
            make_record("e", date="2024-05-14"),
            make_record("f", date="2024-05-10"),
        ]
        stats = dashboard_stats(records, date(2024, 5, 14))

        self.assertEqual(stats.total, 6)
        self.assertEqual(stats.recent, 4)
        self.assertEqual(stats.with_issues, 1)
        self.assertEqual(stats.without_issues, 5)
        self.assertEqual(stats.submitted_rate, 33)
        self.assertEqual(
            stats.per_date,
            [("2024-05-07", 1), ("2024-05-08", 1), ("2024-05-10", 1), ("2024-05-14", 2), ("2024-05-20", 1)],
        )

    def test_rate_rounds_half_up(self):
        records = [make_record("a", status="submitted")] + [make_record(f"d{n}") for n in range(7)]
        self.assertEqual(dashboard_stats(records, date(2024, 5, 14)).submitted_rate, 13)
