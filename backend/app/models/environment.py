"""
PlantLog Backend — EnvironmentalCondition SQLAlchemy Model
============================================================

What:  ORM model for the `environmental_condition` table: a snapshot of
       ambient conditions recorded with one sample.

Replace-not-patch:
    Readings are never edited in place. A sample update deletes every reading
    of the sample and inserts at most one fresh row.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TYPE_CHECKING

from sqlalchemy import Float, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.sample import PlantSample


class EnvironmentalCondition(Base):
    __tablename__ = "environmental_condition"

    environment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    sample_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("plant_sample.sample_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    temperature: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    humidity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    soil_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    soil_ph: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    extra: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONB, nullable=True)

    recorded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    sample: Mapped["PlantSample"] = relationship(back_populates="environmental_conditions")

    __table_args__ = (
        Index("idx_environmental_condition_recorded_at", recorded_at),
    )

    def __repr__(self) -> str:
        return (
            f"<EnvironmentalCondition(environment_id={self.environment_id}, "
            f"sample_id={self.sample_id})>"
        )
