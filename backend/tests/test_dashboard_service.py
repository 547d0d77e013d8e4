"""
PlantLog Backend — Dashboard Service Unit Tests
=================================================

What we test:
    ✅ Region buckets: Unassigned grouping, ordering by count
    ✅ Monthly environmental means over the last five months
    ✅ get_stats assembles every section from independent queries
    ✅ This-month count is bounded by the first of the current month
    ✅ Query failures surface as DatabaseError
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import DatabaseError
from app.services.dashboard_service import (
    DashboardService,
    monthly_environment_trends,
    region_buckets,
    start_of_month,
)


def reading(year, month, temperature=None, humidity=None, soil_ph=None):
    return SimpleNamespace(
        recorded_at=datetime(year, month, 15, tzinfo=timezone.utc),
        temperature=temperature,
        humidity=humidity,
        soil_ph=soil_ph,
    )


class FakeSession:
    def __init__(self, scalar=None):
        self.scalar = AsyncMock(return_value=scalar)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def test_start_of_month():
    now = datetime(2024, 6, 17, 13, 45, 12, tzinfo=timezone.utc)
    assert start_of_month(now) == datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestRegionBuckets:

    def test_missing_regions_are_unassigned(self):
        buckets = region_buckets([("Metro Manila", 2), (None, 3), ("", 1), ("Benguet", 2)])
        assert [(b.region, b.samples) for b in buckets] == [
            ("Unassigned", 4),
            ("Benguet", 2),
            ("Metro Manila", 2),
        ]

    def test_empty(self):
        assert region_buckets([]) == []


class TestMonthlyEnvironmentTrends:

    def test_means_per_month_ignore_missing_values(self):
        trends = monthly_environment_trends([
            reading(2024, 5, temperature=20.0, humidity=60.0),
            reading(2024, 5, temperature=25.0),
            reading(2024, 6, soil_ph=6.333),
        ])
        assert [t.month for t in trends] == ["May 2024", "Jun 2024"]
        assert trends[0].temperature == 22.5
        assert trends[0].humidity == 60.0
        assert trends[0].soil_ph is None
        assert trends[0].readings == 2
        assert trends[1].soil_ph == 6.33

    def test_keeps_most_recent_five_months(self):
        trends = monthly_environment_trends([reading(2024, m, temperature=20.0) for m in range(1, 9)])
        assert [t.month for t in trends] == ["Apr 2024", "May 2024", "Jun 2024", "Jul 2024", "Aug 2024"]

    def test_readings_without_timestamp_skipped(self):
        stray = SimpleNamespace(recorded_at=None, temperature=1.0, humidity=None, soil_ph=None)
        assert monthly_environment_trends([stray]) == []


class TestGetStats:

    def setup_method(self):
        self.service = DashboardService()

    @pytest.mark.asyncio
    async def test_count_uses_its_own_session(self):
        session = FakeSession(scalar=7)
        assert await self.service._count(lambda: session, "SELECT 1") == 7
        session.scalar.assert_awaited_once_with("SELECT 1")

    @pytest.mark.asyncio
    async def test_assembles_every_section(self, make_sample, make_location, make_researcher):
        sample = make_sample()
        sample.sampling_location = make_location(name="Creek bank", region="Metro Manila")
        sample.researcher = make_researcher(full_name="Ana Santos")

        async def count(factory, statement):
            sql = str(statement)
            if "plant_sample" in sql:
                return 4 if "WHERE" in sql else 10
            if "sampling_location" in sql:
                return 3
            return 2

        with patch.object(DashboardService, "_count", new=AsyncMock(side_effect=count)), \
             patch.object(DashboardService, "_recent_samples", new=AsyncMock(return_value=[sample])), \
             patch.object(DashboardService, "_region_rows", new=AsyncMock(return_value=[("Metro Manila", 10)])), \
             patch.object(DashboardService, "_reading_rows", new=AsyncMock(return_value=[reading(2024, 6, temperature=28.0)])):
            stats = await self.service.get_stats(session_factory=None)

        assert stats.total_samples == 10
        assert stats.total_locations == 3
        assert stats.total_researchers == 2
        assert stats.this_month_samples == 4
        assert stats.recent_samples[0].sampling_location.name == "Creek bank"
        assert stats.recent_samples[0].researcher.full_name == "Ana Santos"
        assert stats.samples_by_region[0].region == "Metro Manila"
        assert stats.environmental_trends[0].temperature == 28.0

    @pytest.mark.asyncio
    async def test_this_month_counts_from_the_first_of_the_month(self):
        now = datetime(2024, 6, 17, 13, 45, tzinfo=timezone.utc)
        statements = []

        async def count(factory, statement):
            statements.append(statement)
            return 0

        with patch.object(DashboardService, "_count", new=AsyncMock(side_effect=count)), \
             patch.object(DashboardService, "_recent_samples", new=AsyncMock(return_value=[])), \
             patch.object(DashboardService, "_region_rows", new=AsyncMock(return_value=[])), \
             patch.object(DashboardService, "_reading_rows", new=AsyncMock(return_value=[])):
            await self.service.get_stats(session_factory=None, now=now)

        filtered = [s for s in statements if "WHERE" in str(s)]
        assert len(filtered) == 1
        assert "plant_sample.created_at >=" in str(filtered[0])
        cutoff = [v for v in filtered[0].compile().params.values() if isinstance(v, datetime)]
        assert cutoff == [datetime(2024, 6, 1, tzinfo=timezone.utc)]
        created = [
            datetime(2024, 6, 1, tzinfo=timezone.utc),
            datetime(2024, 6, 17, 9, 0, tzinfo=timezone.utc),
            datetime(2024, 5, 31, 23, 59, tzinfo=timezone.utc),
        ]
        assert len([c for c in created if c >= cutoff[0]]) == 2

    @pytest.mark.asyncio
    async def test_query_failure(self):
        failure = OperationalError("SELECT", {}, Exception("connection reset"))
        with patch.object(DashboardService, "_count", new=AsyncMock(side_effect=failure)), \
             patch.object(DashboardService, "_recent_samples", new=AsyncMock(return_value=[])), \
             patch.object(DashboardService, "_region_rows", new=AsyncMock(return_value=[])), \
             patch.object(DashboardService, "_reading_rows", new=AsyncMock(return_value=[])):
            with pytest.raises(DatabaseError) as exc_info:
                await self.service.get_stats(session_factory=None)
        assert "connection reset" in exc_info.value.message
