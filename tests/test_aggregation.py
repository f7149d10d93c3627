"""Tests for usage aggregation queries.

Run with: pytest tests/test_aggregation.py -v
"""

import pytest
import pytest_asyncio

from reports.importer import import_records
from services.usage_aggregation import (
    UsageAggregationService,
    UsageFilters,
    escape_like,
    get_daily_summary,
    get_detail_rows,
)
from storage.models import DailyUsageRecord


def _record(email, date, total, sent=0, received=0, edited=0, viewed=0):
    return DailyUsageRecord(
        email=email,
        date=date,
        total_emails=total,
        emails_sent=sent,
        emails_received=received,
        files_edited=edited,
        files_viewed=viewed,
    )


@pytest_asyncio.fixture
async def seeded(sqlite_backend):
    """Three users over three days."""
    await import_records(
        [
            _record("kyle@example.com", "2024-01-14", 10, sent=4, received=6, edited=1),
            _record("ann@example.com", "2024-01-14", 20, sent=0, received=20, viewed=3),
            _record("kyle@example.com", "2024-01-15", 5, sent=2, received=3),
            _record("bob@example.com", "2024-01-15", 7, sent=7, received=0, edited=2),
            _record("ann@example.com", "2024-01-16", 1, sent=0, received=1),
        ]
    )
    return sqlite_backend


class TestUsageFilters:
    """Tests for filter normalization and WHERE building."""

    def test_blank_values_are_ignored(self):
        filters = UsageFilters(start_date="", end_date="  ", email="")
        assert filters.where_clause() == ("1=1", [])

    def test_all_filters(self):
        filters = UsageFilters(start_date="2024-01-01", end_date="2024-01-31", email="KYLE")
        where, params = filters.where_clause()
        assert where == (
            "1=1 AND ds.date >= ? AND ds.date <= ? AND LOWER(u.email) LIKE ? ESCAPE '\\'"
        )
        assert params == ["2024-01-01", "2024-01-31", "%kyle%"]

    def test_email_excluded(self):
        filters = UsageFilters(email="kyle")
        assert filters.where_clause(include_email=False) == ("1=1", [])

    def test_escape_like(self):
        assert escape_like("plain@example.com") == "plain@example.com"
        assert escape_like("a_b%") == "a\\_b\\%"

    def test_wildcards_are_escaped(self):
        _, params = UsageFilters(email="50%_off\\x").where_clause()
        assert params == ["%50\\%\\_off\\\\x%"]


@pytest.mark.asyncio
class TestDetailRows:
    """Tests for per-(user, date) rows."""

    async def test_ordering_newest_first_then_email(self, seeded):
        rows = await get_detail_rows()
        assert [(r.date, r.email) for r in rows] == [
            ("2024-01-16", "ann@example.com"),
            ("2024-01-15", "bob@example.com"),
            ("2024-01-15", "kyle@example.com"),
            ("2024-01-14", "ann@example.com"),
            ("2024-01-14", "kyle@example.com"),
        ]

    async def test_inclusive_date_range(self, seeded):
        rows = await get_detail_rows(UsageFilters(start_date="2024-01-14", end_date="2024-01-15"))
        assert len(rows) == 4
        assert {r.date for r in rows} == {"2024-01-14", "2024-01-15"}

    async def test_email_filter_is_case_insensitive(self, seeded):
        rows = await get_detail_rows(UsageFilters(email="KYLE"))
        assert {r.email for r in rows} == {"kyle@example.com"}
        assert len(rows) == 2

    async def test_email_filter_matches_underscore_literally(self, sqlite_backend):
        await import_records(
            [
                _record("a_b@example.com", "2024-01-15", 1),
                _record("axb@example.com", "2024-01-15", 2),
            ]
        )

        rows = await get_detail_rows(UsageFilters(email="A_B"))

        assert [r.email for r in rows] == ["a_b@example.com"]

    async def test_row_carries_identity_and_counters(self, seeded):
        rows = await get_detail_rows(UsageFilters(email="bob", start_date="2024-01-15"))
        row = rows[0]
        assert row.user_name == "bob"
        assert row.total_emails == 7
        assert row.emails_sent == 7
        assert row.files_edited == 2
        assert row.gmail_web_last_used == "Not in last 30 days"

    async def test_no_match_is_empty(self, seeded):
        assert await get_detail_rows(UsageFilters(start_date="2030-01-01")) == []

    async def test_empty_store(self, sqlite_backend):
        assert await get_detail_rows() == []


@pytest.mark.asyncio
class TestDailySummary:
    """Tests for per-date totals."""

    async def test_sums_and_distinct_users(self, seeded):
        rows = await get_daily_summary()

        assert [r.date for r in rows] == ["2024-01-16", "2024-01-15", "2024-01-14"]
        jan14 = rows[2]
        assert jan14.total_users == 2
        assert jan14.total_emails == 30
        assert jan14.total_sent == 4
        assert jan14.total_received == 26
        assert jan14.total_files_edited == 1
        assert jan14.total_files_viewed == 3

    async def test_email_filter_does_not_apply(self, seeded):
        rows = await get_daily_summary(UsageFilters(email="kyle"))
        assert len(rows) == 3

    async def test_date_range(self, seeded):
        rows = await get_daily_summary(UsageFilters(end_date="2024-01-14"))
        assert [r.date for r in rows] == ["2024-01-14"]

    async def test_empty_store(self, sqlite_backend):
        assert await get_daily_summary() == []


@pytest.mark.asyncio
class TestUserTotalsAndOverview:
    """Tests for per-user totals and the KPI overview."""

    async def test_user_totals_busiest_first(self, seeded):
        rows = await UsageAggregationService().get_user_totals()

        assert [r.email for r in rows] == [
            "ann@example.com",
            "kyle@example.com",
            "bob@example.com",
        ]
        kyle = rows[1]
        assert kyle.days_reported == 2
        assert kyle.total_emails == 15
        assert kyle.emails_sent == 6

    async def test_overview(self, seeded):
        overview = await UsageAggregationService().get_overview()

        assert overview.total_emails == 43
        assert overview.total_sent == 13
        assert overview.unique_users == 3
        # ann never sent anything
        assert overview.active_users == 2
        assert overview.avg_emails_per_user == 14.3
        assert overview.days_covered == 3

    async def test_overview_with_filters(self, seeded):
        overview = await UsageAggregationService().get_overview(
            UsageFilters(start_date="2024-01-15", email="kyle")
        )
        assert overview.total_emails == 5
        assert overview.unique_users == 1
        assert overview.active_users == 1

    async def test_overview_empty_store(self, sqlite_backend):
        overview = await UsageAggregationService().get_overview()
        assert overview.total_emails == 0
        assert overview.unique_users == 0
        assert overview.avg_emails_per_user == 0.0
