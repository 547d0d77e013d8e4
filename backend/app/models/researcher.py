"""
PlantLog Backend — Researcher SQLAlchemy Model
================================================

What:  ORM model for the `researcher` table.
Who:   Used by ResearcherService and by the sample joins.

Lifecycle:
    1. Created on registration (linked to an identity via auth_id) or by an
       explicit add (auth_id may stay NULL)
    2. Updated through self-service profile edit or admin edit
    3. Deleted explicitly; samples keep existing with researcher_id = NULL
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import Index, String, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.sample import PlantSample


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Researcher(Base):
    __tablename__ = "researcher"

    researcher_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    # Subject id of the linked identity-provider account
    auth_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="External identity subject (JWT sub)",
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    affiliation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Free-form: email / phone / affiliation keys, nothing enforced
    contact: Mapped[Dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    samples: Mapped[List["PlantSample"]] = relationship(
        back_populates="researcher",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_researcher_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Researcher(researcher_id={self.researcher_id}, full_name='{self.full_name}')>"
