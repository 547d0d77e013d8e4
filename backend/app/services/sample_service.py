"""
PlantLog Backend — Sample Service (Write Orchestrator)
=======================================================

What:  Sample CRUD, including batch create and the implicit location created
       from picked coordinates.
Who:   /api/samples route handlers.

Create Flow (POST /api/samples):
    ┌────────────┐   ┌─────────────┐   ┌───────────────┐   ┌────────────┐   ┌──────────┐
    │ Validate   │──▶│ Validate    │──▶│ Reverse       │──▶│ Insert     │──▶│ Re-fetch │
    │ every      │   │ coordinates │   │ geocode +     │   │ samples +  │   │ joined   │
    │ entry name │   │ & refs      │   │ new location  │   │ readings   │   │ records  │
    └────────────┘   └─────────────┘   └───────────────┘   └────────────┘   └──────────┘

    Nothing is added to the session until every entry has passed validation,
    so one bad entry rejects the whole batch. All writes share the request's
    transaction: a failed reading insert rolls back its sample too.

Environmental readings are replace-not-patch: an update drops every reading
of the sample (delete-orphan cascade) and appends at most one new one.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import DatabaseError, NotFoundError, ValidationError
from app.geometry import GeoPoint, build_point, validate_coordinates
from app.models.environment import EnvironmentalCondition
from app.models.location import SamplingLocation
from app.models.researcher import Researcher
from app.models.sample import PlantSample
from app.schemas.sample import SampleEntry, SampleResponse, SampleWrite
from app.services.geocoding_service import geocoding_service
from app.shapers import normalize_sample

logger = logging.getLogger(__name__)


def sample_query():
    """SELECT plant_sample with location, researcher and readings eagerly loaded."""
    return select(PlantSample).options(
        selectinload(PlantSample.sampling_location),
        selectinload(PlantSample.researcher),
        selectinload(PlantSample.environmental_conditions),
    )


def sample_to_row(sample: PlantSample) -> Dict[str, Any]:
    """Column values plus the joined relations, readings as a list."""
    row = sample.to_row()
    location = sample.sampling_location
    researcher = sample.researcher
    row["sampling_location"] = location.to_row() if location is not None else None
    row["researcher"] = researcher.to_row() if researcher is not None else None
    row["environmental_condition"] = [r.to_row() for r in sample.environmental_conditions]
    return row


def to_response(sample: PlantSample) -> SampleResponse:
    return SampleResponse.model_validate(normalize_sample(sample_to_row(sample)))


def validate_entries(entries: List[SampleEntry], batch: bool) -> None:
    """
    Raises ValidationError naming the first entry without a scientific name.
    Runs before anything touches the session.
    """
    if not entries:
        raise ValidationError(message="At least one sample is required", field="samples")
    for index, entry in enumerate(entries):
        if entry.scientific_name is None or not entry.scientific_name.strip():
            if batch:
                raise ValidationError(
                    message=f"scientific_name is required (sample {index + 1} of {len(entries)})",
                    field=f"samples[{index}].scientific_name",
                )
            raise ValidationError(message="scientific_name is required", field="scientific_name")


def _picked_point(payload: SampleWrite) -> Optional[GeoPoint]:
    if payload.coordinates is None:
        return None
    return validate_coordinates(payload.coordinates.lat, payload.coordinates.lng)


class SampleService:

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_samples(
        self,
        db: AsyncSession,
        researcher_id: Optional[UUID] = None,
        location_id: Optional[UUID] = None,
        limit: Optional[int] = None,
    ) -> List[SampleResponse]:
        """Newest first by created_at."""
        query = sample_query()
        if researcher_id:
            query = query.where(PlantSample.researcher_id == researcher_id)
        if location_id:
            query = query.where(PlantSample.location_id == location_id)
        query = query.order_by(PlantSample.created_at.desc())
        if limit:
            query = query.limit(limit)

        try:
            result = await db.execute(query)
            samples = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing samples: %s", str(e))
            raise DatabaseError.from_exception(e, "list samples")

        return [to_response(s) for s in samples]

    async def get_sample_model(self, db: AsyncSession, sample_id: UUID) -> PlantSample:
        try:
            result = await db.execute(
                sample_query()
                .where(PlantSample.sample_id == sample_id)
                .execution_options(populate_existing=True)
            )
            sample = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching sample %s: %s", sample_id, str(e))
            raise DatabaseError.from_exception(e, "retrieve the sample")

        if sample is None:
            raise NotFoundError(resource="sample", resource_id=str(sample_id))
        return sample

    async def get_sample(self, db: AsyncSession, sample_id: UUID) -> SampleResponse:
        return to_response(await self.get_sample_model(db, sample_id))

    async def _fetch_by_ids(self, db: AsyncSession, sample_ids: List[UUID]) -> List[PlantSample]:
        try:
            result = await db.execute(
                sample_query()
                .where(PlantSample.sample_id.in_(sample_ids))
                .execution_options(populate_existing=True)
            )
            found = {s.sample_id: s for s in result.scalars().all()}
        except SQLAlchemyError as e:
            logger.error("Database error re-fetching samples: %s", str(e))
            raise DatabaseError.from_exception(e, "retrieve the saved samples")
        return [found[sample_id] for sample_id in sample_ids if sample_id in found]

    # ── Reference resolution ──────────────────────────────────────────────

    async def _ensure_exists(self, db: AsyncSession, model: Any, key: UUID, field: str) -> None:
        try:
            row = await db.get(model, key)
        except SQLAlchemyError as e:
            raise DatabaseError.from_exception(e, f"look up {field}")
        if row is None:
            raise ValidationError(message=f"{field} '{key}' does not exist", field=field)

    async def _create_geocoded_location(
        self,
        db: AsyncSession,
        point: GeoPoint,
        desc: Optional[str],
    ) -> SamplingLocation:
        """Insert a location for a freshly picked point, enriched by reverse geocoding."""
        geo = await geocoding_service.reverse(point.latitude, point.longitude)
        location = SamplingLocation(
            name=desc or geo.municipality,
            description=desc,
            region=geo.province,
            municipality=geo.municipality,
            province=geo.province,
            country=geo.country,
            metadata_={"geocoding": geo.raw, "postal_code": geo.postal_code},
            coordinates=build_point(point.latitude, point.longitude),
        )
        try:
            db.add(location)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating location from coordinates: %s", str(e))
            raise DatabaseError.from_exception(e, "create the sampling location")
        logger.info("Location %s created from picked coordinates", location.location_id)
        return location

    async def _resolve_location_id(
        self,
        db: AsyncSession,
        payload: SampleWrite,
        point: Optional[GeoPoint],
    ) -> Optional[UUID]:
        """An explicit location_id wins; otherwise a picked point creates a location."""
        if payload.location_id is not None:
            await self._ensure_exists(db, SamplingLocation, payload.location_id, "location_id")
            return payload.location_id
        if point is not None:
            desc = payload.coordinates.desc if payload.coordinates else None
            location = await self._create_geocoded_location(db, point, desc)
            return location.location_id
        return None

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_samples(self, db: AsyncSession, payload: SampleWrite) -> List[SampleResponse]:
        """
        Insert one sample per entry, each with its own copy of the shared reading.

        Raises:
            ValidationError: an entry lacks scientific_name, bad coordinates,
                             or a referenced location/researcher does not exist
            GeocodingError:  picked point could not be reverse geocoded
            DatabaseError:   insert or re-fetch failed
        """
        entries = payload.entries()
        validate_entries(entries, batch=payload.is_batch)
        point = None if payload.location_id else _picked_point(payload)

        if payload.researcher_id is not None:
            await self._ensure_exists(db, Researcher, payload.researcher_id, "researcher_id")
        location_id = await self._resolve_location_id(db, payload, point)

        sample_date = payload.sample_date or datetime.now(timezone.utc)
        environmental = payload.environmental_payload()
        samples = [
            PlantSample(
                scientific_name=entry.scientific_name.strip(),
                common_name=entry.common_name,
                notes=entry.notes,
                attributes=entry.attributes or None,
                sample_date=sample_date,
                location_id=location_id,
                researcher_id=payload.researcher_id,
                environmental_conditions=(
                    [EnvironmentalCondition(**environmental)] if environmental else []
                ),
            )
            for entry in entries
        ]

        try:
            db.add_all(samples)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating samples: %s", str(e))
            raise DatabaseError.from_exception(e, "create the samples")

        created = await self._fetch_by_ids(db, [s.sample_id for s in samples])
        logger.info("Created %d sample(s) at location %s", len(created), location_id)
        return [to_response(s) for s in created]

    async def update_sample(
        self,
        db: AsyncSession,
        sample_id: UUID,
        payload: SampleWrite,
    ) -> SampleResponse:
        """
        Update from the same body shapes as create; a batch body uses its first entry.

        location_id / coordinates / researcher_id are only touched when present in
        the body. The reading is always replaced: whatever existed is removed and
        a new one is stored when any environmental value is given.
        """
        entries = payload.entries()
        validate_entries(entries[:1], batch=False)
        entry = entries[0]
        fields = payload.model_fields_set

        sample = await self.get_sample_model(db, sample_id)
        point = None if payload.location_id else _picked_point(payload)

        if "researcher_id" in fields:
            if payload.researcher_id is not None:
                await self._ensure_exists(db, Researcher, payload.researcher_id, "researcher_id")
            sample.researcher_id = payload.researcher_id
        if "location_id" in fields or "coordinates" in fields:
            sample.location_id = await self._resolve_location_id(db, payload, point)

        sample.scientific_name = entry.scientific_name.strip()
        sample.common_name = entry.common_name
        sample.notes = entry.notes
        if entry.attributes is not None:
            sample.attributes = entry.attributes or None
        if payload.sample_date is not None:
            sample.sample_date = payload.sample_date
        sample.updated_at = datetime.now(timezone.utc)

        environmental = payload.environmental_payload()
        sample.environmental_conditions.clear()
        if environmental:
            sample.environmental_conditions.append(EnvironmentalCondition(**environmental))

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating sample %s: %s", sample_id, str(e))
            raise DatabaseError.from_exception(e, "update the sample")

        updated = await self.get_sample_model(db, sample_id)
        logger.info("Sample updated: %s", sample_id)
        return to_response(updated)

    async def delete_sample(self, db: AsyncSession, sample_id: UUID) -> None:
        """Readings go with the sample (ON DELETE CASCADE)."""
        sample = await self.get_sample_model(db, sample_id)
        try:
            await db.delete(sample)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting sample %s: %s", sample_id, str(e))
            raise DatabaseError.from_exception(e, "delete the sample")
        logger.info("Sample deleted: %s", sample_id)


# ── Singleton Instance ────────────────────────────────────────────────────
sample_service = SampleService()
