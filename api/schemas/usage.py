"""Usage upload and statistics schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UploadRequest(BaseModel):
    """CSV upload: base64 file body plus the original filename."""
    file: str = Field("", description="Base64-encoded CSV content")
    filename: str = Field("", description="Original filename, used for date fallback")


class UploadResponse(BaseModel):
    """Result of importing one uploaded report."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    message: str
    inserted_count: int
    skipped_count: int
    total_records: int
    report_date: Optional[str] = None
    errors: Optional[list[str]] = None


class UserDailyStatsResponse(BaseModel):
    """One user's counters for one date."""
    id: int
    email: str
    user_name: Optional[str] = None
    date: str
    total_emails: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    files_edited: int = 0
    files_viewed: int = 0
    gmail_imap_last_used: Optional[str] = None
    gmail_web_last_used: Optional[str] = None


class DailySummaryResponse(BaseModel):
    """Counters summed across users for one date."""
    date: str
    total_users: int = 0
    total_emails: int = 0
    total_sent: int = 0
    total_received: int = 0
    total_files_edited: int = 0
    total_files_viewed: int = 0


class UserTotalsResponse(BaseModel):
    """One user's counters summed over the filtered range."""
    id: int
    email: str
    user_name: Optional[str] = None
    days_reported: int = 0
    total_emails: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    files_edited: int = 0
    files_viewed: int = 0


class OverviewResponse(BaseModel):
    """Headline numbers for the KPI cards."""
    total_emails: int = 0
    total_sent: int = 0
    total_received: int = 0
    total_files_edited: int = 0
    total_files_viewed: int = 0
    unique_users: int = 0
    active_users: int = 0
    avg_emails_per_user: float = 0.0
    days_covered: int = 0


class StatsListResponse(BaseModel):
    success: bool = True
    data: list[UserDailyStatsResponse]
    count: int


class SummaryListResponse(BaseModel):
    success: bool = True
    data: list[DailySummaryResponse]
    count: int


class UserTotalsListResponse(BaseModel):
    success: bool = True
    data: list[UserTotalsResponse]
    count: int


class OverviewEnvelope(BaseModel):
    success: bool = True
    data: OverviewResponse
