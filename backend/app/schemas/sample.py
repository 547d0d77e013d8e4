"""
PlantLog Backend — Plant Sample Schemas
=========================================

What:  Request and response models for /api/samples.

Two create shapes share one model:

    Single:
        {"scientific_name": "Ficus benjamina", "location_id": "...", "temperature": 28.5}

    Batch (one row per entry, each with its own copy of the shared reading):
        {
            "samples": [{"scientific_name": "Ficus benjamina"}, {"scientific_name": "Pteris vittata"}],
            "coordinates": {"lat": 14.676, "lng": 121.0437, "desc": "Creek bank"},
            "researcher_id": "...",
            "sample_date": "2024-06-01T08:00:00Z",
            "temperature": 28.5, "humidity": 80, "soil_ph": 6.4, "soil_type": "Loam"
        }

Environmental values may be sent flat (as above) or nested under
`environmental`; nested values win when both are present.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.geometry import parse_point
from app.schemas.location import LocationResponse
from app.schemas.researcher import ResearcherResponse

ENVIRONMENT_FIELDS = ("temperature", "humidity", "soil_ph", "altitude", "soil_type")


def _blank_to_none(value: Any) -> Any:
    # HTML forms submit "" for untouched inputs
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CoordinatesInput(BaseModel):
    """
    A picked point: {lat, lng, desc} from the map picker, {latitude, longitude},
    or a GeoJSON point {"type": "Point", "coordinates": [lng, lat]}.

    A GeoJSON body that does not describe a two-number point is rejected
    rather than treated as "no point".
    """
    lat: Optional[float] = None
    lng: Optional[float] = None
    desc: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_long_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "latitude" in data and "lat" not in data:
            data["lat"] = data.pop("latitude")
        if "longitude" in data and "lng" not in data:
            data["lng"] = data.pop("longitude")
        if "description" in data and "desc" not in data:
            data["desc"] = data.pop("description")
        if "coordinates" in data:
            point = parse_point({"type": data.pop("type", "Point"), "coordinates": data.pop("coordinates")})
            if point is None:
                raise ValueError("coordinates must be a GeoJSON Point with [longitude, latitude]")
            data.setdefault("lat", point.latitude)
            data.setdefault("lng", point.longitude)
        return {key: _blank_to_none(value) for key, value in data.items()}


class EnvironmentalInput(BaseModel):
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_ph: Optional[float] = None
    altitude: Optional[float] = None
    soil_type: Optional[str] = Field(default=None, max_length=100)
    extra: Optional[Dict[str, Any]] = None

    @field_validator("temperature", "humidity", "soil_ph", "altitude", "soil_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class SampleEntry(BaseModel):
    """One plant within a batch."""
    scientific_name: Optional[str] = Field(default=None, max_length=255)
    common_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None

    @field_validator("common_name", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)


class SampleWrite(BaseModel):
    """
    Body for POST /api/samples and PUT /api/samples/{id}.

    `scientific_name` is checked by the service for every entry before any
    row is written, so one bad entry rejects the whole batch.
    """
    scientific_name: Optional[str] = Field(default=None, max_length=255)
    common_name: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    attributes: Optional[Dict[str, Any]] = None
    samples: Optional[List[SampleEntry]] = None

    sample_date: Optional[datetime] = None
    location_id: Optional[uuid.UUID] = None
    researcher_id: Optional[uuid.UUID] = None
    coordinates: Optional[CoordinatesInput] = None

    environmental: Optional[EnvironmentalInput] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_ph: Optional[float] = None
    altitude: Optional[float] = None
    soil_type: Optional[str] = Field(default=None, max_length=100)

    @field_validator(
        "common_name", "notes", "sample_date", "location_id", "researcher_id",
        "temperature", "humidity", "soil_ph", "altitude", "soil_type",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @property
    def is_batch(self) -> bool:
        return self.samples is not None

    def entries(self) -> List[SampleEntry]:
        """The plants to write: the batch entries, or the top-level fields as one entry."""
        if self.samples is not None:
            return list(self.samples)
        return [
            SampleEntry(
                scientific_name=self.scientific_name,
                common_name=self.common_name,
                notes=self.notes,
                attributes=self.attributes,
            )
        ]

    def environmental_payload(self) -> Dict[str, Any]:
        """
        Non-empty environmental values, nested taking precedence over flat.

        An empty dict means no reading should be stored.
        """
        payload: Dict[str, Any] = {}
        for name in ENVIRONMENT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        if self.environmental is not None:
            nested = self.environmental.model_dump(exclude_none=True)
            payload.update(nested)
        return payload


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class EnvironmentalResponse(BaseModel):
    environment_id: uuid.UUID
    sample_id: uuid.UUID
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_type: Optional[str] = None
    soil_ph: Optional[float] = None
    altitude: Optional[float] = None
    extra: Optional[Dict[str, Any]] = None
    recorded_at: Optional[datetime] = None


class SampleResponse(BaseModel):
    """
    A sample with its relations inlined as singletons.

    `environmental_condition` is the current reading (latest recorded_at),
    not a list.
    """
    sample_id: uuid.UUID
    scientific_name: str
    common_name: Optional[str] = None
    notes: Optional[str] = None
    sample_date: Optional[datetime] = None
    location_id: Optional[uuid.UUID] = None
    researcher_id: Optional[uuid.UUID] = None
    attributes: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sampling_location: Optional[LocationResponse] = None
    researcher: Optional[ResearcherResponse] = None
    environmental_condition: Optional[EnvironmentalResponse] = None
