"""
PlantLog Backend — Sampling Location Routes
=============================================

    GET    /api/locations?region=       list, newest first
    POST   /api/locations               create (no geocoding)
    GET    /api/locations/{id}
    PUT    /api/locations/{id}
    DELETE /api/locations/{id}          samples keep existing, location_id → null
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import require_session
from app.database import get_db_session
from app.schemas.common import ErrorResponse
from app.schemas.location import LocationResponse, LocationWrite
from app.services.location_service import location_service

router = APIRouter(
    prefix="/api",
    tags=["Locations"],
    dependencies=[Depends(require_session)],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
)


@router.get("/locations", response_model=List[LocationResponse], summary="List sampling locations")
async def list_locations(
    region: Optional[str] = Query(default=None, description="Case-insensitive substring of the region"),
    db: AsyncSession = Depends(get_db_session),
) -> List[LocationResponse]:
    return await location_service.list_locations(db, region=region)


@router.post(
    "/locations",
    response_model=LocationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid coordinates", "model": ErrorResponse}},
    summary="Create a sampling location",
)
async def create_location(
    payload: LocationWrite,
    db: AsyncSession = Depends(get_db_session),
) -> LocationResponse:
    return await location_service.create_location(db, payload)


@router.get(
    "/locations/{location_id}",
    response_model=LocationResponse,
    responses={404: {"description": "Location not found", "model": ErrorResponse}},
    summary="Get a sampling location",
)
async def get_location(
    location_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> LocationResponse:
    return await location_service.get_location(db, location_id)


@router.put(
    "/locations/{location_id}",
    response_model=LocationResponse,
    responses={
        400: {"description": "Invalid coordinates", "model": ErrorResponse},
        404: {"description": "Location not found", "model": ErrorResponse},
    },
    summary="Update a sampling location",
)
async def update_location(
    location_id: UUID,
    payload: LocationWrite,
    db: AsyncSession = Depends(get_db_session),
) -> LocationResponse:
    return await location_service.update_location(db, location_id, payload)


@router.delete(
    "/locations/{location_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Location not found", "model": ErrorResponse}},
    summary="Delete a sampling location",
)
async def delete_location(
    location_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await location_service.delete_location(db, location_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
