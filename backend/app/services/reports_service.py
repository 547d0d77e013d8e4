"""
PlantLog Backend — Reports Analytics Service
==============================================

What:  Time-series and summary aggregates for GET /api/reports/analytics.

Filters:
    timeRange   last-week  → now - 7 days
                last-month → same day last month, 00:00 UTC
                last-year  → same day last year, 00:00 UTC
                all        → same day two years ago, 00:00 UTC (also the fallback)
    locationId  exact location; "all" or empty means no filter
    species     case-insensitive substring of scientific_name; "all" means no filter

locationId and species apply to the samples and to the readings alike; a
reading belongs to the report only when its own sample passes both filters.

Trend bucketing:
    The pH and temperature/humidity trends fold each new reading into its
    bucket as (bucket + reading) / 2 and keep only the first five buckets.
    Charts in the client depend on these exact numbers.
"""

import calendar
import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, ValidationError
from app.models.environment import EnvironmentalCondition
from app.models.sample import PlantSample
from app.schemas.analytics import (
    ReportsAnalytics,
    SamplesOverTimePoint,
    SoilPhPoint,
    SummaryStats,
    TemperatureHumidityPoint,
)

logger = logging.getLogger(__name__)

TIME_RANGES = ("last-week", "last-month", "last-year", "all")
READINGS_LIMIT = 500
TREND_POINTS = 5
_WEEK_SECONDS = 7 * 24 * 60 * 60


# ══════════════════════════════════════════════════════════════════════════
# Pure helpers
# ══════════════════════════════════════════════════════════════════════════


def _shift_months(day: date, months: int) -> date:
    """Same day `months` away, clamped to the last day of a shorter month."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_lookback(time_range: Optional[str], now: datetime) -> datetime:
    """Start of the reporting window; unknown ranges behave like "all"."""
    now = now.astimezone(timezone.utc)
    if time_range == "last-week":
        return now - timedelta(days=7)
    if time_range == "last-month":
        start = _shift_months(now.date(), -1)
    elif time_range == "last-year":
        start = _shift_months(now.date(), -12)
    else:
        start = _shift_months(now.date(), -24)
    return datetime(start.year, start.month, start.day, tzinfo=timezone.utc)


def month_label(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%b %Y")


def round_one(value: float) -> float:
    """One decimal place, halves rounded up."""
    return math.floor(value * 10 + 0.5) / 10


def samples_over_time(sample_dates: Iterable[datetime]) -> List[SamplesOverTimePoint]:
    """Count per month label, in first-seen order (dates arrive ascending)."""
    counts: Dict[str, int] = {}
    for sample_date in sample_dates:
        label = month_label(sample_date)
        counts[label] = counts.get(label, 0) + 1
    return [SamplesOverTimePoint(month=label, samples=count) for label, count in counts.items()]


def soil_ph_trends(readings: Sequence[Any]) -> List[SoilPhPoint]:
    """
    pH per week since the first reading in the window, pairwise averaged.

    The week origin is the first reading overall, even one without a pH.
    """
    if not readings:
        return []
    origin = readings[0].recorded_at
    buckets: Dict[str, float] = {}
    for reading in readings:
        if reading.soil_ph is None:
            continue
        elapsed = (reading.recorded_at - origin).total_seconds()
        label = f"Week {math.ceil(elapsed / _WEEK_SECONDS) + 1}"
        if label in buckets:
            buckets[label] = (buckets[label] + reading.soil_ph) / 2
        else:
            buckets[label] = float(reading.soil_ph)
    return [SoilPhPoint(date=label, ph=ph) for label, ph in list(buckets.items())[:TREND_POINTS]]


def temperature_humidity_trends(readings: Iterable[Any]) -> List[TemperatureHumidityPoint]:
    """Temperature and humidity per month, pairwise averaged; readings missing either are skipped."""
    buckets: Dict[str, List[float]] = {}
    for reading in readings:
        if reading.temperature is None or reading.humidity is None:
            continue
        label = month_label(reading.recorded_at)
        if label in buckets:
            bucket = buckets[label]
            bucket[0] = (bucket[0] + reading.temperature) / 2
            bucket[1] = (bucket[1] + reading.humidity) / 2
        else:
            buckets[label] = [float(reading.temperature), float(reading.humidity)]
    return [
        TemperatureHumidityPoint(date=label, temperature=values[0], humidity=values[1])
        for label, values in list(buckets.items())[:TREND_POINTS]
    ]


def summary_stats(total_samples: int, readings: Iterable[Any]) -> SummaryStats:
    """Averages over readings that carry temperature, humidity and soil pH all at once."""
    valid = [
        r for r in readings
        if r.temperature is not None and r.humidity is not None and r.soil_ph is not None
    ]
    if not valid:
        return SummaryStats(total_samples=total_samples)
    count = len(valid)
    return SummaryStats(
        total_samples=total_samples,
        avg_temperature=round_one(sum(r.temperature for r in valid) / count),
        avg_humidity=round_one(sum(r.humidity for r in valid) / count),
        avg_soil_ph=round_one(sum(r.soil_ph for r in valid) / count),
    )


def _filter_value(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() == "all":
        return None
    return value


def _parse_location_id(value: Optional[str]) -> Optional[UUID]:
    value = _filter_value(value)
    if value is None:
        return None
    try:
        return UUID(value)
    except ValueError:
        raise ValidationError(message=f"locationId '{value}' is not a valid id", field="locationId")


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════


class ReportsService:

    async def get_analytics(
        self,
        db: AsyncSession,
        time_range: Optional[str] = "all",
        location_id: Optional[str] = None,
        species: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReportsAnalytics:
        """
        Raises:
            ValidationError: locationId is neither "all" nor a valid id
            DatabaseError:   a query failed
        """
        start = resolve_lookback(time_range, now or datetime.now(timezone.utc))
        location = _parse_location_id(location_id)
        species = _filter_value(species)

        samples_query = (
            select(PlantSample.sample_date)
            .where(PlantSample.sample_date >= start)
            .order_by(PlantSample.sample_date.asc())
        )
        readings_query = (
            select(
                EnvironmentalCondition.recorded_at,
                EnvironmentalCondition.temperature,
                EnvironmentalCondition.humidity,
                EnvironmentalCondition.soil_ph,
            )
            .join(PlantSample, EnvironmentalCondition.sample_id == PlantSample.sample_id)
            .where(EnvironmentalCondition.recorded_at >= start)
        )
        if location is not None:
            samples_query = samples_query.where(PlantSample.location_id == location)
            readings_query = readings_query.where(PlantSample.location_id == location)
        if species is not None:
            samples_query = samples_query.where(PlantSample.scientific_name.ilike(f"%{species}%"))
            readings_query = readings_query.where(PlantSample.scientific_name.ilike(f"%{species}%"))
        readings_query = readings_query.order_by(EnvironmentalCondition.recorded_at.asc()).limit(READINGS_LIMIT)

        try:
            sample_dates = list((await db.execute(samples_query)).scalars().all())
            readings = list((await db.execute(readings_query)).all())
        except SQLAlchemyError as e:
            logger.error("Database error building report analytics: %s", str(e))
            raise DatabaseError.from_exception(e, "build report analytics")

        logger.info(
            "Report analytics: range=%s since=%s samples=%d readings=%d",
            time_range, start.isoformat(), len(sample_dates), len(readings),
        )
        return ReportsAnalytics(
            samples_over_time=samples_over_time(sample_dates),
            soil_ph_trends=soil_ph_trends(readings),
            temperature_humidity_trends=temperature_humidity_trends(readings),
            summary_stats=summary_stats(len(sample_dates), readings),
        )


reports_service = ReportsService()
