"""
# Dashboard Routes

Read-only statistics for the dashboard charts. Every route requires a bearer token.

| Path                               | Records counted              |
|------------------------------------|------------------------------|
| `/dashboard/stats`                 | residents (plus totals)      |
| `/dashboard/recent-registrations`  | residents                    |
| `/dashboard/gender-distribution`   | residents and family heads   |
| `/dashboard/age-distribution`      | residents and family heads   |
| `/dashboard/monthly-trends`        | residents and family heads   |
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from barangay_registry.models.dashboard_models import (
    AgeBucket,
    DashboardStats,
    GenderBucket,
    MonthlyBucket,
    RecentRegistration,
)
from barangay_registry.routes.auth.dependencies import get_current_user_dep
from barangay_registry.routes.dependencies import get_aggregation_engine
from barangay_registry.services.aggregation_engine import AggregationEngine

router = APIRouter(prefix="/dashboard", tags=["Dashboard"], dependencies=[Depends(get_current_user_dep)])


@router.get("/stats", response_model=DashboardStats)
async def get_stats(engine: AggregationEngine = Depends(get_aggregation_engine)):
    """
    Dashboard landing payload.

    `totalResidents` / `totalFamilyHeads` are lifetime creation counters and do not
    drop when records are deleted; `activeResidents` / `activeFamilyHeads` count the
    records currently stored.
    """
    return await engine.dashboard_stats()


@router.get("/recent-registrations", response_model=List[RecentRegistration])
async def get_recent_registrations(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Number of residents to return"),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    return await engine.recent_registrations(limit)


@router.get("/gender-distribution", response_model=List[GenderBucket])
async def get_gender_distribution(engine: AggregationEngine = Depends(get_aggregation_engine)):
    return await engine.gender_distribution()


@router.get("/age-distribution", response_model=List[AgeBucket])
async def get_age_distribution(engine: AggregationEngine = Depends(get_aggregation_engine)):
    return await engine.age_distribution()


@router.get("/monthly-trends", response_model=List[MonthlyBucket])
async def get_monthly_trends(engine: AggregationEngine = Depends(get_aggregation_engine)):
    return await engine.monthly_trend()
