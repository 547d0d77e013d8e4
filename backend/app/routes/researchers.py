"""
PlantLog Backend — Researcher Routes
======================================

    GET    /api/researchers?q=          list, newest first
    POST   /api/researchers             explicit add
    GET    /api/researchers/me          caller's own profile
    POST   /api/researchers/me          registration
    PUT    /api/researchers/me          self-service edit
    DELETE /api/researchers/me          deletes the profile AND the identity
    GET    /api/researchers/{id}
    PUT    /api/researchers/{id}        owner or admin only when linked
    DELETE /api/researchers/{id}        owner or admin only when linked

The /me routes are declared before /{researcher_id} so "me" is never parsed
as an id.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import SessionContext, require_session
from app.database import get_db_session
from app.schemas.common import ErrorResponse
from app.schemas.researcher import ResearcherResponse, ResearcherWrite
from app.services.researcher_service import researcher_service

router = APIRouter(
    prefix="/api",
    tags=["Researchers"],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
)


@router.get("/researchers", response_model=List[ResearcherResponse], summary="List researchers")
async def list_researchers(
    q: Optional[str] = Query(default=None, description="Matches name, affiliation or contact email"),
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> List[ResearcherResponse]:
    return await researcher_service.list_researchers(db, q=q)


@router.post(
    "/researchers",
    response_model=ResearcherResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "full_name missing", "model": ErrorResponse},
        403: {"description": "Only admins may set auth_id", "model": ErrorResponse},
    },
    summary="Add a researcher",
)
async def create_researcher(
    payload: ResearcherWrite,
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> ResearcherResponse:
    return await researcher_service.create_researcher(db, session, payload)


# ── Self-service profile ──────────────────────────────────────────────────


@router.get(
    "/researchers/me",
    response_model=ResearcherResponse,
    responses={404: {"description": "No profile registered yet", "model": ErrorResponse}},
    summary="Get my researcher profile",
)
async def get_me(
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> ResearcherResponse:
    return await researcher_service.get_me(db, session)


@router.post(
    "/researchers/me",
    response_model=ResearcherResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "full_name missing or profile exists", "model": ErrorResponse}},
    summary="Register my researcher profile",
)
async def register_me(
    payload: ResearcherWrite,
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> ResearcherResponse:
    return await researcher_service.register_me(db, session, payload)


@router.put(
    "/researchers/me",
    response_model=ResearcherResponse,
    responses={404: {"description": "No profile registered yet", "model": ErrorResponse}},
    summary="Update my researcher profile",
)
async def update_me(
    payload: ResearcherWrite,
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> ResearcherResponse:
    return await researcher_service.update_me(db, session, payload)


@router.delete(
    "/researchers/me",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"description": "No profile registered yet", "model": ErrorResponse},
        503: {"description": "Identity provider unavailable", "model": ErrorResponse},
    },
    summary="Delete my profile and account",
)
async def delete_me(
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await researcher_service.delete_me(db, session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── By id ─────────────────────────────────────────────────────────────────


@router.get(
    "/researchers/{researcher_id}",
    response_model=ResearcherResponse,
    responses={404: {"description": "Researcher not found", "model": ErrorResponse}},
    summary="Get a researcher",
)
async def get_researcher(
    researcher_id: UUID,
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> ResearcherResponse:
    return await researcher_service.get_researcher(db, researcher_id)


@router.put(
    "/researchers/{researcher_id}",
    response_model=ResearcherResponse,
    responses={
        403: {"description": "Profile belongs to another account", "model": ErrorResponse},
        404: {"description": "Researcher not found", "model": ErrorResponse},
    },
    summary="Update a researcher",
)
async def update_researcher(
    researcher_id: UUID,
    payload: ResearcherWrite,
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> ResearcherResponse:
    return await researcher_service.update_researcher(db, session, researcher_id, payload)


@router.delete(
    "/researchers/{researcher_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Profile belongs to another account", "model": ErrorResponse},
        404: {"description": "Researcher not found", "model": ErrorResponse},
    },
    summary="Delete a researcher",
)
async def delete_researcher(
    researcher_id: UUID,
    session: SessionContext = Depends(require_session),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await researcher_service.delete_researcher(db, session, researcher_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
