"""
PlantLog Backend — Sampling Location Service
==============================================

What:  CRUD for sampling locations.
How:   Direct create/update takes municipality/province/country from the
       caller and never geocodes; the geocoded path lives in SampleService.
       Coordinates are range-checked before the row is added to the session.
Who:   /api/locations route handlers and SampleService.

Transactions:
    Methods flush, never commit. get_db_session commits once the request
    succeeds and rolls everything back otherwise.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, NotFoundError
from app.geometry import build_point, validate_coordinates
from app.models.location import SamplingLocation
from app.schemas.location import LocationResponse, LocationWrite
from app.shapers import normalize_location

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("name", "description", "region", "municipality", "province", "country")


def to_response(location: SamplingLocation) -> LocationResponse:
    return LocationResponse.model_validate(normalize_location(location.to_row()))


class LocationService:

    async def list_locations(
        self,
        db: AsyncSession,
        region: Optional[str] = None,
    ) -> List[LocationResponse]:
        """Newest first; `region` is a case-insensitive substring filter."""
        query = select(SamplingLocation)
        if region:
            query = query.where(SamplingLocation.region.ilike(f"%{region}%"))
        query = query.order_by(SamplingLocation.created_at.desc())

        try:
            result = await db.execute(query)
            locations = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing locations: %s", str(e))
            raise DatabaseError.from_exception(e, "list locations")

        return [to_response(location) for location in locations]

    async def get_location_model(self, db: AsyncSession, location_id: UUID) -> SamplingLocation:
        try:
            result = await db.execute(
                select(SamplingLocation).where(SamplingLocation.location_id == location_id)
            )
            location = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching location %s: %s", location_id, str(e))
            raise DatabaseError.from_exception(e, "retrieve the location")

        if location is None:
            raise NotFoundError(resource="location", resource_id=str(location_id))
        return location

    async def get_location(self, db: AsyncSession, location_id: UUID) -> LocationResponse:
        location = await self.get_location_model(db, location_id)
        return to_response(location)

    async def create_location(self, db: AsyncSession, payload: LocationWrite) -> LocationResponse:
        """
        Insert a location exactly as given.

        Raises:
            ValidationError: coordinate out of range or half a pair (nothing is added)
            DatabaseError:   insert failed
        """
        point = validate_coordinates(payload.latitude, payload.longitude)

        location = SamplingLocation(
            name=payload.name,
            description=payload.description,
            region=payload.region,
            municipality=payload.municipality,
            province=payload.province,
            country=payload.country,
            metadata_=payload.metadata or None,
            coordinates=build_point(point.latitude, point.longitude) if point else None,
        )

        try:
            db.add(location)
            await db.flush()
            await db.refresh(location)
        except SQLAlchemyError as e:
            logger.error("Database error creating location: %s", str(e))
            raise DatabaseError.from_exception(e, "create the location")

        logger.info("Location created: %s", location.location_id)
        return to_response(location)

    async def update_location(
        self,
        db: AsyncSession,
        location_id: UUID,
        payload: LocationWrite,
    ) -> LocationResponse:
        """
        Apply the fields present in the body. Coordinates are replaced as a pair;
        sending both as null clears them.
        """
        location = await self.get_location_model(db, location_id)
        fields = payload.model_fields_set

        if payload.coordinates_given:
            point = validate_coordinates(payload.latitude, payload.longitude)
            location.coordinates = build_point(point.latitude, point.longitude) if point else None

        for name in _TEXT_FIELDS:
            if name in fields:
                setattr(location, name, getattr(payload, name))
        if "metadata" in fields:
            location.metadata_ = payload.metadata or None
        location.updated_at = datetime.now(timezone.utc)

        try:
            await db.flush()
            await db.refresh(location)
        except SQLAlchemyError as e:
            logger.error("Database error updating location %s: %s", location_id, str(e))
            raise DatabaseError.from_exception(e, "update the location")

        logger.info("Location updated: %s", location_id)
        return to_response(location)

    async def delete_location(self, db: AsyncSession, location_id: UUID) -> None:
        """Samples that referenced the location keep existing with location_id NULL."""
        location = await self.get_location_model(db, location_id)
        try:
            await db.delete(location)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting location %s: %s", location_id, str(e))
            raise DatabaseError.from_exception(e, "delete the location")
        logger.info("Location deleted: %s", location_id)


# ── Singleton Instance ────────────────────────────────────────────────────
location_service = LocationService()
