"""
PlantLog Backend — SamplingLocation SQLAlchemy Model
======================================================

What:  ORM model for the `sampling_location` table.
How:   `coordinates` is a PostGIS geography(POINT, 4326) column managed by
       GeoAlchemy2. Writes assign EWKT text built by app.geometry.build_point;
       reads return a WKBElement that app.geometry.parse_point decodes.

Invariant:
    latitude ∈ [-90, 90] and longitude ∈ [-180, 180] whenever coordinates
    is not NULL (checked by app.geometry.validate_coordinates before writes).

Note on `metadata_`:
    `metadata` is reserved on declarative classes, so the attribute is named
    `metadata_` while the column keeps the name `metadata`.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from geoalchemy2 import Geography
from sqlalchemy import Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.sample import PlantSample


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SamplingLocation(Base):
    __tablename__ = "sampling_location"

    location_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    region: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Administrative names, either typed in or filled by reverse geocoding
    municipality: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    province: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    metadata_: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
    )

    coordinates: Mapped[Optional[Any]] = mapped_column(
        Geography(geometry_type="POINT", srid=4326, spatial_index=True),
        nullable=True,
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
        back_populates="sampling_location",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_sampling_location_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<SamplingLocation(location_id={self.location_id}, name='{self.name}')>"
