"""
PlantLog Backend — Sample Service Unit Tests
==============================================

What:  SampleService write paths against a mock AsyncSession; geocoding mocked.

What we test:
    ✅ One nameless entry rejects the whole batch before anything is written
    ✅ Batch create: one row per entry, each with its own reading copy
    ✅ Picked coordinates create a reverse-geocoded location
    ✅ An explicit location_id wins over coordinates (no geocoding)
    ✅ Unknown researcher_id / bad coordinates → ValidationError
    ✅ GeoJSON points are accepted; non-point GeoJSON is rejected
    ✅ Geocoding failure aborts the write
    ✅ Update replaces the environmental reading instead of patching it
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.exceptions import GeocodingError, NotFoundError, ValidationError
from app.models.location import SamplingLocation
from app.models.sample import PlantSample
from app.schemas.sample import SampleWrite
from app.services.geocoding_service import ReverseGeocodeResult
from app.services.sample_service import SampleService, validate_entries


def _persist_on_flush(session, *tracked):
    """Make flush() assign ids the way the database would, for added and tracked rows."""
    async def flush():
        objects = list(tracked)
        objects.extend(call.args[0] for call in session.add.call_args_list)
        for call in session.add_all.call_args_list:
            objects.extend(call.args[0])
        for obj in objects:
            await session.refresh(obj)
            for reading in getattr(obj, "environmental_conditions", []):
                if reading.sample_id is None:
                    reading.sample_id = obj.sample_id
                await session.refresh(reading)

    session.flush.side_effect = flush


def _added_samples(session):
    added = []
    for call in session.add_all.call_args_list:
        added.extend(obj for obj in call.args[0] if isinstance(obj, PlantSample))
    return added


def _found(session, value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    session.execute.return_value = result


@pytest.fixture
def geocoder():
    with patch("app.services.sample_service.geocoding_service") as mock_geocoder:
        mock_geocoder.reverse = AsyncMock(
            return_value=ReverseGeocodeResult(
                municipality="Quezon City",
                province="Metro Manila",
                country="Philippines",
                postal_code="1101",
                raw={"features": []},
            )
        )
        yield mock_geocoder


@pytest.fixture
def refetch(mock_db_session):
    """_fetch_by_ids returns whatever add_all() received."""
    async def fetch(db, sample_ids):
        return _added_samples(mock_db_session)

    with patch.object(SampleService, "_fetch_by_ids", new=AsyncMock(side_effect=fetch)):
        yield


class TestValidateEntries:

    def test_batch_message_names_the_entry(self):
        entries = SampleWrite.model_validate(
            {"samples": [{"scientific_name": "Ficus"}, {"scientific_name": "  "}, {"scientific_name": "Pteris"}]}
        ).entries()
        with pytest.raises(ValidationError) as exc_info:
            validate_entries(entries, batch=True)
        assert exc_info.value.message == "scientific_name is required (sample 2 of 3)"
        assert exc_info.value.field == "samples[1].scientific_name"

    def test_single_message(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_entries(SampleWrite(common_name="Fig").entries(), batch=False)
        assert exc_info.value.message == "scientific_name is required"

    def test_empty_batch(self):
        with pytest.raises(ValidationError):
            validate_entries([], batch=True)


class TestCreateSamples:

    def setup_method(self):
        self.service = SampleService()

    @pytest.mark.asyncio
    async def test_invalid_entry_rejects_whole_batch(self, mock_db_session, geocoder):
        payload = SampleWrite.model_validate({
            "samples": [{"scientific_name": "Ficus benjamina"}, {"common_name": "no name"}],
            "coordinates": {"lat": 14.676, "lng": 121.0437},
        })
        with pytest.raises(ValidationError):
            await self.service.create_samples(mock_db_session, payload)

        geocoder.reverse.assert_not_called()
        mock_db_session.add.assert_not_called()
        mock_db_session.add_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_batch_with_picked_point(self, mock_db_session, geocoder, refetch):
        _persist_on_flush(mock_db_session)
        payload = SampleWrite.model_validate({
            "samples": [
                {"scientific_name": "Ficus benjamina", "common_name": "Weeping fig"},
                {"scientific_name": "Pteris vittata", "common_name": ""},
                {"scientific_name": "Cocos nucifera"},
            ],
            "location_id": "",
            "coordinates": {"lat": 14.676, "lng": 121.0437, "desc": "Creek bank"},
            "researcher_id": "",
            "sample_date": "2024-06-01T08:00:00Z",
            "temperature": "28.5",
            "humidity": "80",
            "soil_ph": "",
            "soil_type": "Loam",
        })

        created = await self.service.create_samples(mock_db_session, payload)

        geocoder.reverse.assert_awaited_once_with(14.676, 121.0437)
        location = mock_db_session.add.call_args.args[0]
        assert isinstance(location, SamplingLocation)
        assert location.name == "Creek bank"
        assert location.region == "Metro Manila"
        assert location.country == "Philippines"
        assert location.metadata_["postal_code"] == "1101"
        assert location.coordinates == "SRID=4326;POINT(121.043700 14.676000)"

        assert len(created) == 3
        assert [s.scientific_name for s in created] == ["Ficus benjamina", "Pteris vittata", "Cocos nucifera"]
        assert created[1].common_name is None
        assert all(s.location_id == location.location_id for s in created)
        assert all(s.sample_date == datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc) for s in created)

        readings = [s.environmental_conditions[0] for s in _added_samples(mock_db_session)]
        assert len({id(r) for r in readings}) == 3
        assert all(r.temperature == 28.5 and r.humidity == 80 and r.soil_ph is None for r in readings)
        assert created[0].environmental_condition.soil_type == "Loam"

    @pytest.mark.asyncio
    async def test_single_sample_without_environment(self, mock_db_session, geocoder, refetch):
        _persist_on_flush(mock_db_session)
        created = await self.service.create_samples(
            mock_db_session, SampleWrite(scientific_name="Ficus benjamina")
        )
        assert len(created) == 1
        assert created[0].environmental_condition is None
        assert created[0].location_id is None
        geocoder.reverse.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_location_wins_over_coordinates(self, mock_db_session, geocoder, refetch):
        _persist_on_flush(mock_db_session)
        location_id = uuid.uuid4()
        payload = SampleWrite.model_validate({
            "scientific_name": "Ficus benjamina",
            "location_id": str(location_id),
            "coordinates": {"lat": 14.676, "lng": 121.0437},
        })

        created = await self.service.create_samples(mock_db_session, payload)

        geocoder.reverse.assert_not_called()
        mock_db_session.get.assert_awaited_once_with(SamplingLocation, location_id)
        assert created[0].location_id == location_id

    @pytest.mark.asyncio
    async def test_unknown_researcher(self, mock_db_session, geocoder):
        mock_db_session.get.return_value = None
        payload = SampleWrite(scientific_name="Ficus benjamina", researcher_id=uuid.uuid4())

        with pytest.raises(ValidationError) as exc_info:
            await self.service.create_samples(mock_db_session, payload)

        assert exc_info.value.field == "researcher_id"
        mock_db_session.add_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_out_of_range_coordinates(self, mock_db_session, geocoder):
        payload = SampleWrite.model_validate({
            "scientific_name": "Ficus benjamina",
            "coordinates": {"lat": 14.6, "lng": 200},
        })
        with pytest.raises(ValidationError):
            await self.service.create_samples(mock_db_session, payload)
        geocoder.reverse.assert_not_called()

    @pytest.mark.asyncio
    async def test_geojson_point_is_geocoded(self, mock_db_session, geocoder, refetch):
        _persist_on_flush(mock_db_session)
        payload = SampleWrite.model_validate({
            "scientific_name": "Ficus benjamina",
            "coordinates": {"type": "Point", "coordinates": [121.0437, 14.676]},
        })

        created = await self.service.create_samples(mock_db_session, payload)

        geocoder.reverse.assert_awaited_once_with(14.676, 121.0437)
        location = mock_db_session.add.call_args.args[0]
        assert location.coordinates == "SRID=4326;POINT(121.043700 14.676000)"
        assert location.name == "Quezon City"
        assert created[0].location_id == location.location_id

    def test_geojson_without_a_point_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            SampleWrite.model_validate({
                "scientific_name": "Ficus benjamina",
                "coordinates": {"type": "LineString", "coordinates": [[121.0, 14.6], [121.1, 14.7]]},
            })

    @pytest.mark.asyncio
    async def test_geocoding_failure_aborts(self, mock_db_session, geocoder):
        geocoder.reverse.side_effect = GeocodingError("Reverse geocoding failed with HTTP 401")
        payload = SampleWrite.model_validate({
            "scientific_name": "Ficus benjamina",
            "coordinates": {"lat": 14.6, "lng": 121.0},
        })
        with pytest.raises(GeocodingError):
            await self.service.create_samples(mock_db_session, payload)
        mock_db_session.add_all.assert_not_called()


class TestUpdateSample:

    def setup_method(self):
        self.service = SampleService()

    @pytest.mark.asyncio
    async def test_reading_is_replaced(self, mock_db_session, make_sample):
        sample = make_sample(readings=[
            {"temperature": 20.0, "humidity": 60.0},
            {"temperature": 22.0, "soil_ph": 5.5},
        ])
        _found(mock_db_session, sample)
        _persist_on_flush(mock_db_session, sample)

        payload = SampleWrite(scientific_name="Ficus elastica", temperature=30.0)
        result = await self.service.update_sample(mock_db_session, sample.sample_id, payload)

        assert len(sample.environmental_conditions) == 1
        reading = sample.environmental_conditions[0]
        assert reading.temperature == 30.0
        assert reading.humidity is None
        assert result.scientific_name == "Ficus elastica"
        assert result.environmental_condition.temperature == 30.0

    @pytest.mark.asyncio
    async def test_no_environment_clears_readings(self, mock_db_session, make_sample):
        sample = make_sample(readings=[{"temperature": 20.0}])
        _found(mock_db_session, sample)
        _persist_on_flush(mock_db_session, sample)

        result = await self.service.update_sample(
            mock_db_session, sample.sample_id, SampleWrite(scientific_name="Ficus benjamina")
        )

        assert sample.environmental_conditions == []
        assert result.environmental_condition is None

    @pytest.mark.asyncio
    async def test_absent_references_left_alone(self, mock_db_session, make_sample):
        location_id = uuid.uuid4()
        researcher_id = uuid.uuid4()
        sample = make_sample(location_id=location_id, researcher_id=researcher_id)
        _found(mock_db_session, sample)
        _persist_on_flush(mock_db_session, sample)

        await self.service.update_sample(
            mock_db_session, sample.sample_id, SampleWrite(scientific_name="Ficus benjamina")
        )

        assert sample.location_id == location_id
        assert sample.researcher_id == researcher_id

    @pytest.mark.asyncio
    async def test_batch_body_uses_first_entry(self, mock_db_session, make_sample):
        sample = make_sample()
        _found(mock_db_session, sample)
        _persist_on_flush(mock_db_session, sample)

        payload = SampleWrite.model_validate({
            "samples": [{"scientific_name": "Pteris vittata"}, {"scientific_name": "ignored"}],
        })
        result = await self.service.update_sample(mock_db_session, sample.sample_id, payload)

        assert result.scientific_name == "Pteris vittata"

    @pytest.mark.asyncio
    async def test_missing_sample(self, mock_db_session):
        _found(mock_db_session, None)
        with pytest.raises(NotFoundError):
            await self.service.update_sample(
                mock_db_session, uuid.uuid4(), SampleWrite(scientific_name="Ficus benjamina")
            )
