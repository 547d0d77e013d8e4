"""
PlantLog Backend — Plant Sample Routes
========================================

    GET    /api/samples?researcher_id=&location_id=&limit=
    POST   /api/samples                 single body → one sample, batch body → list
    GET    /api/samples/{id}
    PUT    /api/samples/{id}            replaces the environmental reading
    DELETE /api/samples/{id}
"""

from typing import List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import require_session
from app.database import get_db_session
from app.schemas.common import ErrorResponse
from app.schemas.sample import SampleResponse, SampleWrite
from app.services.sample_service import sample_service

router = APIRouter(
    prefix="/api",
    tags=["Samples"],
    dependencies=[Depends(require_session)],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
)


@router.get("/samples", response_model=List[SampleResponse], summary="List plant samples")
async def list_samples(
    researcher_id: Optional[UUID] = Query(default=None),
    location_id: Optional[UUID] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=1000, description="Maximum rows returned"),
    db: AsyncSession = Depends(get_db_session),
) -> List[SampleResponse]:
    return await sample_service.list_samples(
        db,
        researcher_id=researcher_id,
        location_id=location_id,
        limit=limit,
    )


@router.post(
    "/samples",
    response_model=Union[List[SampleResponse], SampleResponse],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "An entry lacks scientific_name or coordinates are invalid", "model": ErrorResponse},
        503: {"description": "Reverse geocoding failed", "model": ErrorResponse},
    },
    summary="Log one sample or a batch",
    description=(
        "Send `samples: [...]` to log several plants sharing one location, researcher, "
        "date and environmental reading. Any entry without a scientific name rejects "
        "the whole batch. Picked `coordinates` without a `location_id` create a new, "
        "reverse-geocoded location."
    ),
)
async def create_samples(
    payload: SampleWrite,
    db: AsyncSession = Depends(get_db_session),
) -> Union[List[SampleResponse], SampleResponse]:
    created = await sample_service.create_samples(db, payload)
    if payload.is_batch:
        return created
    return created[0]


@router.get(
    "/samples/{sample_id}",
    response_model=SampleResponse,
    responses={404: {"description": "Sample not found", "model": ErrorResponse}},
    summary="Get a plant sample",
)
async def get_sample(
    sample_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> SampleResponse:
    return await sample_service.get_sample(db, sample_id)


@router.put(
    "/samples/{sample_id}",
    response_model=SampleResponse,
    responses={
        400: {"description": "scientific_name missing or coordinates invalid", "model": ErrorResponse},
        404: {"description": "Sample not found", "model": ErrorResponse},
        503: {"description": "Reverse geocoding failed", "model": ErrorResponse},
    },
    summary="Update a plant sample",
)
async def update_sample(
    sample_id: UUID,
    payload: SampleWrite,
    db: AsyncSession = Depends(get_db_session),
) -> SampleResponse:
    return await sample_service.update_sample(db, sample_id, payload)


@router.delete(
    "/samples/{sample_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Sample not found", "model": ErrorResponse}},
    summary="Delete a plant sample",
)
async def delete_sample(
    sample_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await sample_service.delete_sample(db, sample_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
