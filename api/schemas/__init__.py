"""API Schema models for Usage Stats."""

from .auth import (
    CreateAccountRequest,
    CreateAccountResponse,
    HealthResponse,
    InitResponse,
)
from .usage import (
    DailySummaryResponse,
    OverviewEnvelope,
    OverviewResponse,
    StatsListResponse,
    SummaryListResponse,
    UploadRequest,
    UploadResponse,
    UserDailyStatsResponse,
    UserTotalsListResponse,
    UserTotalsResponse,
)

__all__ = [
    "CreateAccountRequest",
    "CreateAccountResponse",
    "HealthResponse",
    "InitResponse",
    "DailySummaryResponse",
    "OverviewEnvelope",
    "OverviewResponse",
    "StatsListResponse",
    "SummaryListResponse",
    "UploadRequest",
    "UploadResponse",
    "UserDailyStatsResponse",
    "UserTotalsListResponse",
    "UserTotalsResponse",
]
