"""
PlantLog Backend — Researcher Service
=======================================

What:  Researcher CRUD plus the self-service profile (/api/researchers/me).
Who:   /api/researchers route handlers.

Ownership:
    A row linked to an identity (auth_id set) may only be updated or deleted
    by that identity or an administrator; see app.auth.ensure_can_modify_researcher.

Self-delete ordering:
    1. Delete the researcher row and flush (FK on samples → SET NULL)
    2. Delete the external identity
    If step 2 fails the request errors out and get_db_session rolls back step 1,
    so the profile is never left pointing at a dead identity or vice versa.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import SessionContext, ensure_can_modify_researcher
from app.exceptions import AuthorizationError, DatabaseError, NotFoundError, ValidationError
from app.models.researcher import Researcher
from app.schemas.researcher import ResearcherResponse, ResearcherWrite
from app.services.identity_service import identity_service
from app.shapers import normalize_researcher

logger = logging.getLogger(__name__)


def to_response(researcher: Researcher) -> ResearcherResponse:
    return ResearcherResponse.model_validate(normalize_researcher(researcher.to_row()))


def _required_full_name(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError(message="full_name is required", field="full_name")
    return value.strip()


class ResearcherService:

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_researchers(
        self,
        db: AsyncSession,
        q: Optional[str] = None,
    ) -> List[ResearcherResponse]:
        """Newest first; `q` matches full_name, affiliation or contact email (case-insensitive)."""
        query = select(Researcher)
        if q:
            pattern = f"%{q}%"
            query = query.where(
                or_(
                    Researcher.full_name.ilike(pattern),
                    Researcher.affiliation.ilike(pattern),
                    Researcher.contact["email"].astext.ilike(pattern),
                )
            )
        query = query.order_by(Researcher.created_at.desc())

        try:
            result = await db.execute(query)
            researchers = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing researchers: %s", str(e))
            raise DatabaseError.from_exception(e, "list researchers")

        return [to_response(r) for r in researchers]

    async def get_researcher_model(self, db: AsyncSession, researcher_id: UUID) -> Researcher:
        try:
            result = await db.execute(
                select(Researcher).where(Researcher.researcher_id == researcher_id)
            )
            researcher = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching researcher %s: %s", researcher_id, str(e))
            raise DatabaseError.from_exception(e, "retrieve the researcher")

        if researcher is None:
            raise NotFoundError(resource="researcher", resource_id=str(researcher_id))
        return researcher

    async def find_by_auth_id(self, db: AsyncSession, auth_id: str) -> Optional[Researcher]:
        try:
            result = await db.execute(select(Researcher).where(Researcher.auth_id == auth_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching researcher for identity %s: %s", auth_id, str(e))
            raise DatabaseError.from_exception(e, "retrieve your researcher profile")

    async def get_researcher(self, db: AsyncSession, researcher_id: UUID) -> ResearcherResponse:
        return to_response(await self.get_researcher_model(db, researcher_id))

    # ── Writes ────────────────────────────────────────────────────────────

    async def _insert(self, db: AsyncSession, researcher: Researcher) -> ResearcherResponse:
        try:
            db.add(researcher)
            await db.flush()
            await db.refresh(researcher)
        except SQLAlchemyError as e:
            logger.error("Database error creating researcher: %s", str(e))
            raise DatabaseError.from_exception(e, "create the researcher")
        logger.info("Researcher created: %s", researcher.researcher_id)
        return to_response(researcher)

    async def create_researcher(
        self,
        db: AsyncSession,
        session: SessionContext,
        payload: ResearcherWrite,
    ) -> ResearcherResponse:
        """
        Explicit add. Linking the new row to an identity (`auth_id`) is
        reserved for administrators.
        """
        full_name = _required_full_name(payload.full_name)
        if payload.auth_id and not session.is_admin:
            raise AuthorizationError("Only administrators can link a researcher to an account")

        researcher = Researcher(
            full_name=full_name,
            affiliation=payload.affiliation,
            contact=dict(payload.contact or {}),
            auth_id=payload.auth_id or None,
        )
        return await self._insert(db, researcher)

    async def _apply_update(
        self,
        db: AsyncSession,
        researcher: Researcher,
        payload: ResearcherWrite,
        allow_relink: bool,
    ) -> ResearcherResponse:
        fields = payload.model_fields_set
        if "full_name" in fields:
            researcher.full_name = _required_full_name(payload.full_name)
        if "affiliation" in fields:
            researcher.affiliation = payload.affiliation
        if "contact" in fields:
            researcher.contact = dict(payload.contact or {})
        if "auth_id" in fields and payload.auth_id != researcher.auth_id:
            if not allow_relink:
                raise AuthorizationError("Only administrators can change a researcher's linked account")
            researcher.auth_id = payload.auth_id or None
        researcher.updated_at = datetime.now(timezone.utc)

        try:
            await db.flush()
            await db.refresh(researcher)
        except SQLAlchemyError as e:
            logger.error("Database error updating researcher %s: %s", researcher.researcher_id, str(e))
            raise DatabaseError.from_exception(e, "update the researcher")
        logger.info("Researcher updated: %s", researcher.researcher_id)
        return to_response(researcher)

    async def update_researcher(
        self,
        db: AsyncSession,
        session: SessionContext,
        researcher_id: UUID,
        payload: ResearcherWrite,
    ) -> ResearcherResponse:
        researcher = await self.get_researcher_model(db, researcher_id)
        ensure_can_modify_researcher(session, researcher)
        return await self._apply_update(db, researcher, payload, allow_relink=session.is_admin)

    async def delete_researcher(
        self,
        db: AsyncSession,
        session: SessionContext,
        researcher_id: UUID,
    ) -> None:
        """Removes the row only; the linked identity (if any) is left alone."""
        researcher = await self.get_researcher_model(db, researcher_id)
        ensure_can_modify_researcher(session, researcher)
        try:
            await db.delete(researcher)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting researcher %s: %s", researcher_id, str(e))
            raise DatabaseError.from_exception(e, "delete the researcher")
        logger.info("Researcher deleted: %s", researcher_id)

    # ── Self-service (/me) ────────────────────────────────────────────────

    async def _require_me(self, db: AsyncSession, session: SessionContext) -> Researcher:
        researcher = await self.find_by_auth_id(db, session.auth_id)
        if researcher is None:
            raise NotFoundError(resource="researcher profile")
        return researcher

    async def get_me(self, db: AsyncSession, session: SessionContext) -> ResearcherResponse:
        return to_response(await self._require_me(db, session))

    async def register_me(
        self,
        db: AsyncSession,
        session: SessionContext,
        payload: ResearcherWrite,
    ) -> ResearcherResponse:
        """
        Create the caller's own profile, linked to their identity.

        The token's email fills contact.email when the form leaves it out.
        """
        full_name = _required_full_name(payload.full_name)
        if await self.find_by_auth_id(db, session.auth_id) is not None:
            raise ValidationError(
                message="A researcher profile already exists for this account",
                field="auth_id",
            )

        contact = dict(payload.contact or {})
        if session.email and not contact.get("email"):
            contact["email"] = session.email

        researcher = Researcher(
            full_name=full_name,
            affiliation=payload.affiliation,
            contact=contact,
            auth_id=session.auth_id,
        )
        return await self._insert(db, researcher)

    async def update_me(
        self,
        db: AsyncSession,
        session: SessionContext,
        payload: ResearcherWrite,
    ) -> ResearcherResponse:
        researcher = await self._require_me(db, session)
        return await self._apply_update(db, researcher, payload, allow_relink=False)

    async def delete_me(self, db: AsyncSession, session: SessionContext) -> None:
        researcher = await self._require_me(db, session)
        try:
            await db.delete(researcher)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting own profile %s: %s", researcher.researcher_id, str(e))
            raise DatabaseError.from_exception(e, "delete your researcher profile")

        await identity_service.delete_user(session.auth_id)
        logger.info("Researcher %s deleted their profile and account", researcher.researcher_id)


# ── Singleton Instance ────────────────────────────────────────────────────
researcher_service = ResearcherService()
