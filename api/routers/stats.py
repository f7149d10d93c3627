"""Stats Router - aggregated usage for the dashboard.

Every endpoint takes optional ``startDate`` / ``endDate`` (inclusive ISO
dates). ``email`` is a case-insensitive substring filter on the per-user
shapes.
"""

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import require_account
from api.schemas.usage import (
    DailySummaryResponse,
    OverviewEnvelope,
    OverviewResponse,
    StatsListResponse,
    SummaryListResponse,
    UserDailyStatsResponse,
    UserTotalsListResponse,
    UserTotalsResponse,
)
from services.usage_aggregation import UsageAggregationService, UsageFilters
from storage.database import DatabaseError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Stats"], dependencies=[Depends(require_account)])


def _fetch_failed(what: str, error: DatabaseError) -> HTTPException:
    logger.error(f"{what} query error: {error.message}")
    return HTTPException(
        status_code=500,
        detail={"error": f"Failed to fetch {what.lower()}", "details": error.message},
    )


@router.get("/stats", response_model=StatsListResponse)
async def get_stats(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    email: Optional[str] = Query(None, description="Case-insensitive substring"),
):
    """Per-(user, date) rows, newest first."""
    filters = UsageFilters(start_date=start_date, end_date=end_date, email=email)
    try:
        rows = await UsageAggregationService().get_detail_rows(filters)
    except DatabaseError as e:
        raise _fetch_failed("Statistics", e)

    data = [UserDailyStatsResponse(**asdict(row)) for row in rows]
    return StatsListResponse(data=data, count=len(data))


@router.get("/summary", response_model=SummaryListResponse)
async def get_summary(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
):
    """Per-date totals across all users, newest first."""
    filters = UsageFilters(start_date=start_date, end_date=end_date)
    try:
        rows = await UsageAggregationService().get_daily_summary(filters)
    except DatabaseError as e:
        raise _fetch_failed("Summary", e)

    data = [DailySummaryResponse(**asdict(row)) for row in rows]
    return SummaryListResponse(data=data, count=len(data))


@router.get("/users", response_model=UserTotalsListResponse)
async def get_user_totals(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    email: Optional[str] = Query(None, description="Case-insensitive substring"),
):
    """Per-user totals over the range, busiest first."""
    filters = UsageFilters(start_date=start_date, end_date=end_date, email=email)
    try:
        rows = await UsageAggregationService().get_user_totals(filters)
    except DatabaseError as e:
        raise _fetch_failed("User totals", e)

    data = [UserTotalsResponse(**asdict(row)) for row in rows]
    return UserTotalsListResponse(data=data, count=len(data))


@router.get("/overview", response_model=OverviewEnvelope)
async def get_overview(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    email: Optional[str] = Query(None, description="Case-insensitive substring"),
):
    """Headline totals plus unique and active user counts."""
    filters = UsageFilters(start_date=start_date, end_date=end_date, email=email)
    try:
        overview = await UsageAggregationService().get_overview(filters)
    except DatabaseError as e:
        raise _fetch_failed("Overview", e)

    return OverviewEnvelope(data=OverviewResponse(**asdict(overview)))
