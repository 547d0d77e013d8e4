"""
PlantLog Backend — Dashboard & Reports Schemas
================================================

What:  Response models for GET /api/dashboard/stats and GET /api/reports/analytics.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Dashboard
# ══════════════════════════════════════════════════════════════════════════


class RecentSampleLocation(BaseModel):
    name: Optional[str] = None
    region: Optional[str] = None


class RecentSampleResearcher(BaseModel):
    full_name: Optional[str] = None


class RecentSample(BaseModel):
    sample_id: uuid.UUID
    scientific_name: str
    common_name: Optional[str] = None
    sample_date: Optional[datetime] = None
    sampling_location: Optional[RecentSampleLocation] = None
    researcher: Optional[RecentSampleResearcher] = None


class RegionBucket(BaseModel):
    region: str = Field(description="Location region, 'Unassigned' for samples without one")
    samples: int


class MonthlyEnvironment(BaseModel):
    """Mean readings for one calendar month; a value is null when no reading had it."""
    month: str = Field(description="Month label, e.g. 'Jun 2024'")
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_ph: Optional[float] = None
    readings: int = 0


class DashboardStats(BaseModel):
    total_samples: int = 0
    total_locations: int = 0
    total_researchers: int = 0
    this_month_samples: int = 0
    recent_samples: List[RecentSample] = Field(default_factory=list)
    samples_by_region: List[RegionBucket] = Field(default_factory=list)
    environmental_trends: List[MonthlyEnvironment] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Reports
# ══════════════════════════════════════════════════════════════════════════


class SamplesOverTimePoint(BaseModel):
    month: str
    samples: int


class SoilPhPoint(BaseModel):
    date: str = Field(description="Week label relative to the first reading, e.g. 'Week 3'")
    ph: float


class TemperatureHumidityPoint(BaseModel):
    date: str = Field(description="Month label")
    temperature: float
    humidity: float


class SummaryStats(BaseModel):
    total_samples: int = 0
    avg_temperature: float = 0.0
    avg_humidity: float = 0.0
    avg_soil_ph: float = 0.0


class ReportsAnalytics(BaseModel):
    samples_over_time: List[SamplesOverTimePoint] = Field(default_factory=list)
    soil_ph_trends: List[SoilPhPoint] = Field(default_factory=list)
    temperature_humidity_trends: List[TemperatureHumidityPoint] = Field(default_factory=list)
    summary_stats: SummaryStats = Field(default_factory=SummaryStats)
