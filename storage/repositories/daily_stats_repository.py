"""Repository for per-user, per-day usage counters."""

from __future__ import annotations

from typing import Optional

from storage.database import ExecuteResult
from storage.models import DailyStat, DailyUsageRecord

from .base import BaseRepository

# One atomic statement per record. ON CONFLICT ... DO UPDATE is understood
# by both SQLite (3.24+) and PostgreSQL.
UPSERT_DAILY_STAT = """
    INSERT INTO daily_stats (
        user_id, date, total_emails, emails_sent, emails_received,
        files_edited, files_viewed, gmail_imap_last_used, gmail_web_last_used
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT (user_id, date) DO UPDATE SET
        total_emails = excluded.total_emails,
        emails_sent = excluded.emails_sent,
        emails_received = excluded.emails_received,
        files_edited = excluded.files_edited,
        files_viewed = excluded.files_viewed,
        gmail_imap_last_used = excluded.gmail_imap_last_used,
        gmail_web_last_used = excluded.gmail_web_last_used
"""


class DailyStatsRepository(BaseRepository[DailyStat]):
    """Upserts and lookups on ``daily_stats``."""

    async def upsert(self, user_id: int, record: DailyUsageRecord) -> ExecuteResult:
        """Insert the day row, or overwrite it if (user_id, date) exists."""
        return await self._execute(
            UPSERT_DAILY_STAT,
            (
                user_id,
                record.date,
                record.total_emails,
                record.emails_sent,
                record.emails_received,
                record.files_edited,
                record.files_viewed,
                record.gmail_imap_last_used,
                record.gmail_web_last_used,
            ),
        )

    async def get(self, user_id: int, date: str) -> Optional[DailyStat]:
        row = await self._query_one(
            "SELECT * FROM daily_stats WHERE user_id = ? AND date = ?",
            (user_id, date),
        )
        return DailyStat.from_row(row) if row else None

    async def list_for_user(self, user_id: int) -> list[DailyStat]:
        rows = await self._query(
            "SELECT * FROM daily_stats WHERE user_id = ? ORDER BY date DESC",
            (user_id,),
        )
        return [DailyStat.from_row(r) for r in rows]

    async def count(self) -> int:
        return await self._count("daily_stats")
