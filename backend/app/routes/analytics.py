"""
PlantLog Backend — Dashboard & Reports Routes
===============================================

    GET /api/dashboard/stats
    GET /api/reports/analytics?timeRange=&locationId=&species=

Query parameter names are camelCase because the reports page builds them
that way; responses stay snake_case like every other endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.auth import require_session
from app.database import get_db_session, get_session_factory
from app.schemas.analytics import DashboardStats, ReportsAnalytics
from app.schemas.common import ErrorResponse
from app.services.dashboard_service import dashboard_service
from app.services.reports_service import reports_service

router = APIRouter(
    prefix="/api",
    tags=["Analytics"],
    dependencies=[Depends(require_session)],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
)


@router.get("/dashboard/stats", response_model=DashboardStats, summary="Dashboard statistics")
async def dashboard_stats(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> DashboardStats:
    return await dashboard_service.get_stats(session_factory)


@router.get(
    "/reports/analytics",
    response_model=ReportsAnalytics,
    responses={400: {"description": "Invalid locationId", "model": ErrorResponse}},
    summary="Report time series and summary",
)
async def reports_analytics(
    time_range: str = Query(
        default="all",
        alias="timeRange",
        description="last-week, last-month, last-year or all (2-year lookback)",
    ),
    location_id: Optional[str] = Query(default=None, alias="locationId"),
    species: Optional[str] = Query(default=None, description="Substring of the scientific name"),
    db: AsyncSession = Depends(get_db_session),
) -> ReportsAnalytics:
    """
    Samples per month, soil pH per week, temperature/humidity per month and
    summary averages since the `timeRange` start.

    `locationId` and `species` narrow both series: the sample counts and the
    environmental readings (a reading is kept only when its sample matches).
    So `species=Ficus` averages conditions recorded for Ficus samples only.
    """
    return await reports_service.get_analytics(
        db,
        time_range=time_range,
        location_id=location_id,
        species=species,
    )
