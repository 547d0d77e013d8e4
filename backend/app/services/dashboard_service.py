"""
PlantLog Backend — Dashboard Service
======================================

What:  Totals, this-month count, recent samples, samples per region and
       monthly environmental averages for GET /api/dashboard/stats.
How:   Each query is independent, so each runs on its own session from the
       session factory and all of them are awaited together (asyncio.gather).
       An AsyncSession runs one statement at a time, so the request session
       is not used here.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from app.exceptions import DatabaseError
from app.models.environment import EnvironmentalCondition
from app.models.location import SamplingLocation
from app.models.researcher import Researcher
from app.models.sample import PlantSample
from app.schemas.analytics import (
    DashboardStats,
    MonthlyEnvironment,
    RecentSample,
    RecentSampleLocation,
    RecentSampleResearcher,
    RegionBucket,
)

logger = logging.getLogger(__name__)

RECENT_SAMPLES_LIMIT = 5
TREND_MONTHS = 5
UNASSIGNED_REGION = "Unassigned"


def start_of_month(now: datetime) -> datetime:
    """First instant of `now`'s calendar month, in UTC."""
    return now.astimezone(timezone.utc).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def region_buckets(rows: Iterable[Tuple[Optional[str], int]]) -> List[RegionBucket]:
    """(region, count) rows → buckets; samples without a region are grouped as Unassigned."""
    counts: Dict[str, int] = {}
    for region, count in rows:
        label = region.strip() if region and region.strip() else UNASSIGNED_REGION
        counts[label] = counts.get(label, 0) + int(count)
    return [
        RegionBucket(region=region, samples=count)
        for region, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


class _RunningMean:
    __slots__ = ("count", "mean")

    def __init__(self) -> None:
        self.count = 0
        self.mean: Optional[float] = None

    def add(self, value: Optional[float]) -> None:
        if value is None:
            return
        self.count += 1
        if self.mean is None:
            self.mean = float(value)
        else:
            self.mean += (float(value) - self.mean) / self.count


def monthly_environment_trends(readings: Iterable[Any], keep: int = TREND_MONTHS) -> List[MonthlyEnvironment]:
    """
    Running mean of temperature / humidity / soil pH per calendar month.

    `readings` are objects with recorded_at, temperature, humidity and soil_ph
    attributes (ORM rows or named tuples). Each field averages only the readings
    that carry it. The most recent `keep` months are returned, oldest first.
    """
    buckets: Dict[Tuple[int, int], Dict[str, Any]] = {}
    for reading in readings:
        recorded_at = reading.recorded_at
        if recorded_at is None:
            continue
        if recorded_at.tzinfo is not None:
            recorded_at = recorded_at.astimezone(timezone.utc)
        key = (recorded_at.year, recorded_at.month)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = {
                "label": recorded_at.strftime("%b %Y"),
                "readings": 0,
                "temperature": _RunningMean(),
                "humidity": _RunningMean(),
                "soil_ph": _RunningMean(),
            }
            buckets[key] = bucket
        bucket["readings"] += 1
        bucket["temperature"].add(reading.temperature)
        bucket["humidity"].add(reading.humidity)
        bucket["soil_ph"].add(reading.soil_ph)

    def rounded(mean: _RunningMean) -> Optional[float]:
        return round(mean.mean, 2) if mean.mean is not None else None

    recent_keys = sorted(buckets)[-keep:] if keep > 0 else []
    return [
        MonthlyEnvironment(
            month=buckets[key]["label"],
            temperature=rounded(buckets[key]["temperature"]),
            humidity=rounded(buckets[key]["humidity"]),
            soil_ph=rounded(buckets[key]["soil_ph"]),
            readings=buckets[key]["readings"],
        )
        for key in recent_keys
    ]


def recent_sample(sample: PlantSample) -> RecentSample:
    location = sample.sampling_location
    researcher = sample.researcher
    return RecentSample(
        sample_id=sample.sample_id,
        scientific_name=sample.scientific_name,
        common_name=sample.common_name,
        sample_date=sample.sample_date,
        sampling_location=(
            RecentSampleLocation(name=location.name, region=location.region) if location else None
        ),
        researcher=RecentSampleResearcher(full_name=researcher.full_name) if researcher else None,
    )


class DashboardService:

    async def _count(self, session_factory: async_sessionmaker, statement) -> int:
        async with session_factory() as session:
            value = await session.scalar(statement)
        return int(value or 0)

    async def _recent_samples(self, session_factory: async_sessionmaker) -> List[PlantSample]:
        query = (
            select(PlantSample)
            .options(
                selectinload(PlantSample.sampling_location),
                selectinload(PlantSample.researcher),
            )
            .order_by(PlantSample.sample_date.desc())
            .limit(RECENT_SAMPLES_LIMIT)
        )
        async with session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _region_rows(self, session_factory: async_sessionmaker) -> Sequence[Any]:
        query = (
            select(SamplingLocation.region, func.count(PlantSample.sample_id))
            .select_from(PlantSample)
            .outerjoin(SamplingLocation, PlantSample.location_id == SamplingLocation.location_id)
            .group_by(SamplingLocation.region)
        )
        async with session_factory() as session:
            result = await session.execute(query)
            return result.all()

    async def _reading_rows(self, session_factory: async_sessionmaker) -> Sequence[Any]:
        query = select(
            EnvironmentalCondition.recorded_at,
            EnvironmentalCondition.temperature,
            EnvironmentalCondition.humidity,
            EnvironmentalCondition.soil_ph,
        ).order_by(EnvironmentalCondition.recorded_at)
        async with session_factory() as session:
            result = await session.execute(query)
            return result.all()

    async def get_stats(
        self,
        session_factory: async_sessionmaker,
        now: Optional[datetime] = None,
    ) -> DashboardStats:
        """
        Raises:
            DatabaseError: any of the queries failed
        """
        month_start = start_of_month(now or datetime.now(timezone.utc))

        try:
            (
                total_samples,
                total_locations,
                total_researchers,
                this_month_samples,
                recent,
                regions,
                readings,
            ) = await asyncio.gather(
                self._count(session_factory, select(func.count()).select_from(PlantSample)),
                self._count(session_factory, select(func.count()).select_from(SamplingLocation)),
                self._count(session_factory, select(func.count()).select_from(Researcher)),
                self._count(
                    session_factory,
                    select(func.count())
                    .select_from(PlantSample)
                    .where(PlantSample.created_at >= month_start),
                ),
                self._recent_samples(session_factory),
                self._region_rows(session_factory),
                self._reading_rows(session_factory),
            )
        except SQLAlchemyError as e:
            logger.error("Database error loading dashboard stats: %s", str(e))
            raise DatabaseError.from_exception(e, "load dashboard statistics")

        return DashboardStats(
            total_samples=total_samples,
            total_locations=total_locations,
            total_researchers=total_researchers,
            this_month_samples=this_month_samples,
            recent_samples=[recent_sample(s) for s in recent],
            samples_by_region=region_buckets(regions),
            environmental_trends=monthly_environment_trends(readings),
        )


dashboard_service = DashboardService()
