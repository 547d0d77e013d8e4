"""
PlantLog Backend — PlantSample SQLAlchemy Model
=================================================

What:  ORM model for the `plant_sample` table.

Relations:
    sampling_location   many-to-one, nullable, ON DELETE SET NULL
    researcher          many-to-one, nullable, ON DELETE SET NULL
    environmental_conditions
                        one-to-many in storage, ON DELETE CASCADE; treated as
                        "at most one current reading" (latest recorded_at)

Query Patterns:
    - List newest first: ORDER BY created_at DESC  → idx_plant_sample_created_at
    - Dashboard "recent": ORDER BY sample_date DESC LIMIT 5 → idx_plant_sample_sample_date
    - Filter by researcher / location → FK indexes
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.environment import EnvironmentalCondition
    from app.models.location import SamplingLocation
    from app.models.researcher import Researcher


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlantSample(Base):
    __tablename__ = "plant_sample"

    sample_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    scientific_name: Mapped[str] = mapped_column(String(255), nullable=False)
    common_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    sample_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sampling_location.location_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    researcher_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("researcher.researcher_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    attributes: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)

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

    sampling_location: Mapped[Optional["SamplingLocation"]] = relationship(
        back_populates="samples",
    )
    researcher: Mapped[Optional["Researcher"]] = relationship(
        back_populates="samples",
    )
    environmental_conditions: Mapped[List["EnvironmentalCondition"]] = relationship(
        back_populates="sample",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_plant_sample_created_at", created_at.desc()),
        Index("idx_plant_sample_sample_date", sample_date.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<PlantSample(sample_id={self.sample_id}, "
            f"scientific_name='{self.scientific_name}')>"
        )
