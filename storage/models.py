"""Data models for Usage Stats storage.

This module contains the dataclasses for the persisted relations and the
ephemeral record produced by CSV normalization.
"""

from dataclasses import dataclass
from typing import Any, Optional

NOT_RECENTLY_USED = "Not in last 30 days"


@dataclass
class DailyUsageRecord:
    """One user's activity for one report date, as parsed from a CSV row.

    Never persisted as-is; the importer splits it into a TrackedUser and a
    DailyStat row.
    """
    email: str
    date: str
    total_emails: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    files_edited: int = 0
    files_viewed: int = 0
    gmail_imap_last_used: str = NOT_RECENTLY_USED
    gmail_web_last_used: str = NOT_RECENTLY_USED


@dataclass
class TrackedUser:
    """A person who appears in usage reports."""
    id: int
    email: str
    user_name: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TrackedUser":
        return cls(
            id=row["id"],
            email=row["email"],
            user_name=row.get("user_name"),
            created_at=_as_text(row.get("created_at")),
        )


@dataclass
class DailyStat:
    """Stored counters for one (user, date)."""
    id: int
    user_id: int
    date: str
    total_emails: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    files_edited: int = 0
    files_viewed: int = 0
    gmail_imap_last_used: Optional[str] = None
    gmail_web_last_used: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "DailyStat":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            date=row["date"],
            total_emails=row["total_emails"] or 0,
            emails_sent=row["emails_sent"] or 0,
            emails_received=row["emails_received"] or 0,
            files_edited=row["files_edited"] or 0,
            files_viewed=row["files_viewed"] or 0,
            gmail_imap_last_used=row.get("gmail_imap_last_used"),
            gmail_web_last_used=row.get("gmail_web_last_used"),
            created_at=_as_text(row.get("created_at")),
        )


@dataclass
class AuthAccount:
    """A dashboard login. Only the auth gate reads these."""
    id: int
    email: str
    password_hash: str
    name: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AuthAccount":
        return cls(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            name=row.get("name"),
            created_at=_as_text(row.get("created_at")),
        )


def _as_text(value: Any) -> Optional[str]:
    # PostgreSQL hands back datetime objects, SQLite hands back strings
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)
