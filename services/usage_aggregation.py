"""Usage Aggregation Service.

Read-only queries that shape the stored daily rows for the dashboard:
- detail rows: one per (user, date), joined with the user's identity
- daily summary: one per date, counters summed across users
- user totals: one per user, counters summed across the date range
- overview: headline numbers for the KPI cards

All queries accept the same optional filters. Dates are inclusive ISO
strings; the email filter is a case-insensitive substring match.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from storage.database import db_query, db_query_one

logger = logging.getLogger(__name__)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally (ESCAPE '\\')."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class UsageFilters:
    """Optional filters shared by every aggregation query."""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self) -> None:
        # Query strings arrive as "" when a filter box is cleared
        self.start_date = (self.start_date or "").strip() or None
        self.end_date = (self.end_date or "").strip() or None
        self.email = (self.email or "").strip() or None

    def where_clause(self, include_email: bool = True) -> tuple[str, list[Any]]:
        """Build the WHERE clause over ``ds`` (daily_stats) and ``u`` (users)."""
        clauses = ["1=1"]
        params: list[Any] = []
        if self.start_date:
            clauses.append("ds.date >= ?")
            params.append(self.start_date)
        if self.end_date:
            clauses.append("ds.date <= ?")
            params.append(self.end_date)
        if include_email and self.email:
            clauses.append("LOWER(u.email) LIKE ? ESCAPE '\\'")
            params.append(f"%{escape_like(self.email.lower())}%")
        return " AND ".join(clauses), params


@dataclass
class UserDailyRow:
    """One user's counters for one date."""
    id: int
    email: str
    user_name: Optional[str]
    date: str
    total_emails: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    files_edited: int = 0
    files_viewed: int = 0
    gmail_imap_last_used: Optional[str] = None
    gmail_web_last_used: Optional[str] = None


@dataclass
class DailySummaryRow:
    """Counters summed across all users for one date."""
    date: str
    total_users: int = 0
    total_emails: int = 0
    total_sent: int = 0
    total_received: int = 0
    total_files_edited: int = 0
    total_files_viewed: int = 0


@dataclass
class UserTotalsRow:
    """One user's counters summed over the filtered range."""
    id: int
    email: str
    user_name: Optional[str]
    days_reported: int = 0
    total_emails: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    files_edited: int = 0
    files_viewed: int = 0


@dataclass
class UsageOverview:
    """Headline numbers for the filtered range."""
    total_emails: int = 0
    total_sent: int = 0
    total_received: int = 0
    total_files_edited: int = 0
    total_files_viewed: int = 0
    unique_users: int = 0
    active_users: int = 0  # users who sent at least one email
    avg_emails_per_user: float = 0.0
    days_covered: int = 0


def _int(value: Any) -> int:
    # SUM() is NULL over zero rows, and PostgreSQL returns it as Decimal/bigint
    return int(value) if value is not None else 0


class UsageAggregationService:
    """Aggregated reads over users and daily_stats."""

    async def get_detail_rows(self, filters: Optional[UsageFilters] = None) -> list[UserDailyRow]:
        """Per-(user, date) rows, newest date first, then by email."""
        filters = filters or UsageFilters()
        where, params = filters.where_clause()
        rows = await db_query(
            f"""
            SELECT
                u.id,
                u.email,
                u.user_name,
                ds.date,
                ds.total_emails,
                ds.emails_sent,
                ds.emails_received,
                ds.files_edited,
                ds.files_viewed,
                ds.gmail_imap_last_used,
                ds.gmail_web_last_used
            FROM daily_stats ds
            JOIN users u ON ds.user_id = u.id
            WHERE {where}
            ORDER BY ds.date DESC, u.email ASC
            """,
            params,
        )
        return [
            UserDailyRow(
                id=row["id"],
                email=row["email"],
                user_name=row["user_name"],
                date=row["date"],
                total_emails=_int(row["total_emails"]),
                emails_sent=_int(row["emails_sent"]),
                emails_received=_int(row["emails_received"]),
                files_edited=_int(row["files_edited"]),
                files_viewed=_int(row["files_viewed"]),
                gmail_imap_last_used=row["gmail_imap_last_used"],
                gmail_web_last_used=row["gmail_web_last_used"],
            )
            for row in rows
        ]

    async def get_daily_summary(self, filters: Optional[UsageFilters] = None) -> list[DailySummaryRow]:
        """Per-date sums and distinct user counts, newest date first.

        The email filter does not apply to this shape.
        """
        filters = filters or UsageFilters()
        where, params = filters.where_clause(include_email=False)
        rows = await db_query(
            f"""
            SELECT
                ds.date,
                COUNT(DISTINCT ds.user_id) AS total_users,
                SUM(ds.total_emails) AS total_emails,
                SUM(ds.emails_sent) AS total_sent,
                SUM(ds.emails_received) AS total_received,
                SUM(ds.files_edited) AS total_files_edited,
                SUM(ds.files_viewed) AS total_files_viewed
            FROM daily_stats ds
            WHERE {where}
            GROUP BY ds.date
            ORDER BY ds.date DESC
            """,
            params,
        )
        return [
            DailySummaryRow(
                date=row["date"],
                total_users=_int(row["total_users"]),
                total_emails=_int(row["total_emails"]),
                total_sent=_int(row["total_sent"]),
                total_received=_int(row["total_received"]),
                total_files_edited=_int(row["total_files_edited"]),
                total_files_viewed=_int(row["total_files_viewed"]),
            )
            for row in rows
        ]

    async def get_user_totals(self, filters: Optional[UsageFilters] = None) -> list[UserTotalsRow]:
        """Per-user sums over the range, busiest users first."""
        filters = filters or UsageFilters()
        where, params = filters.where_clause()
        rows = await db_query(
            f"""
            SELECT
                u.id,
                u.email,
                u.user_name,
                COUNT(ds.id) AS days_reported,
                SUM(ds.total_emails) AS total_emails,
                SUM(ds.emails_sent) AS emails_sent,
                SUM(ds.emails_received) AS emails_received,
                SUM(ds.files_edited) AS files_edited,
                SUM(ds.files_viewed) AS files_viewed
            FROM daily_stats ds
            JOIN users u ON ds.user_id = u.id
            WHERE {where}
            GROUP BY u.id, u.email, u.user_name
            ORDER BY SUM(ds.total_emails) DESC, u.email ASC
            """,
            params,
        )
        return [
            UserTotalsRow(
                id=row["id"],
                email=row["email"],
                user_name=row["user_name"],
                days_reported=_int(row["days_reported"]),
                total_emails=_int(row["total_emails"]),
                emails_sent=_int(row["emails_sent"]),
                emails_received=_int(row["emails_received"]),
                files_edited=_int(row["files_edited"]),
                files_viewed=_int(row["files_viewed"]),
            )
            for row in rows
        ]

    async def get_overview(self, filters: Optional[UsageFilters] = None) -> UsageOverview:
        """Totals, unique and active users for the KPI cards."""
        filters = filters or UsageFilters()
        where, params = filters.where_clause()
        totals = await db_query_one(
            f"""
            SELECT
                SUM(ds.total_emails) AS total_emails,
                SUM(ds.emails_sent) AS total_sent,
                SUM(ds.emails_received) AS total_received,
                SUM(ds.files_edited) AS total_files_edited,
                SUM(ds.files_viewed) AS total_files_viewed,
                COUNT(DISTINCT ds.user_id) AS unique_users,
                COUNT(DISTINCT ds.date) AS days_covered
            FROM daily_stats ds
            JOIN users u ON ds.user_id = u.id
            WHERE {where}
            """,
            params,
        )
        active = await db_query_one(
            f"""
            SELECT COUNT(*) AS active_users FROM (
                SELECT ds.user_id
                FROM daily_stats ds
                JOIN users u ON ds.user_id = u.id
                WHERE {where}
                GROUP BY ds.user_id
                HAVING SUM(ds.emails_sent) > 0
            ) active_senders
            """,
            params,
        )

        overview = UsageOverview()
        if totals:
            overview.total_emails = _int(totals["total_emails"])
            overview.total_sent = _int(totals["total_sent"])
            overview.total_received = _int(totals["total_received"])
            overview.total_files_edited = _int(totals["total_files_edited"])
            overview.total_files_viewed = _int(totals["total_files_viewed"])
            overview.unique_users = _int(totals["unique_users"])
            overview.days_covered = _int(totals["days_covered"])
        if active:
            overview.active_users = _int(active["active_users"])
        if overview.unique_users:
            overview.avg_emails_per_user = round(
                overview.total_emails / overview.unique_users, 1
            )
        return overview


async def get_detail_rows(filters: Optional[UsageFilters] = None) -> list[UserDailyRow]:
    return await UsageAggregationService().get_detail_rows(filters)


async def get_daily_summary(filters: Optional[UsageFilters] = None) -> list[DailySummaryRow]:
    return await UsageAggregationService().get_daily_summary(filters)
