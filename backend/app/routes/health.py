"""
PlantLog Backend — Health Check Route
=======================================

What:  GET /health for container health checks and load balancer probes.
How:   Runs SELECT 1 against the database and reports whether reverse
       geocoding is configured. No authentication.

Status levels:
    healthy    database reachable, geocoding configured
    degraded   database reachable, geocoding token missing (samples with
               picked coordinates will fail with 503)
    unhealthy  database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse
from app.services.geocoding_service import geocoding_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    geocoding_status = "configured" if geocoding_service.is_configured else "not_configured"
    if geocoding_status != "configured" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoding=geocoding_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
