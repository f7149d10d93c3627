"""Services package for business logic."""

from services.usage_aggregation import (
    DailySummaryRow,
    UsageAggregationService,
    UsageFilters,
    UsageOverview,
    UserDailyRow,
    UserTotalsRow,
    escape_like,
    get_daily_summary,
    get_detail_rows,
)

__all__ = [
    "DailySummaryRow",
    "UsageAggregationService",
    "UsageFilters",
    "UsageOverview",
    "UserDailyRow",
    "UserTotalsRow",
    "escape_like",
    "get_daily_summary",
    "get_detail_rows",
]
