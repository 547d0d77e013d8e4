"""
PlantLog Backend — Sampling Location Schemas
==============================================

What:  Request and response models for /api/locations.

Coordinate input shapes (all normalized to latitude/longitude):
    {"latitude": 14.67, "longitude": 121.04}
    {"lat": 14.67, "lng": 121.04, "desc": "Near the creek"}      desc → description
    {"coordinates": {"type": "Point", "coordinates": [121.04, 14.67]}}

Coordinate output shape (GeoJSON, longitude first):
    {"type": "Point", "coordinates": [121.04, 14.67]}
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.geometry import parse_point


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class LocationWrite(BaseModel):
    """
    Body for POST /api/locations and PUT /api/locations/{id}.

    On update only the fields present in the body are written
    (`model_fields_set`); sending both coordinates as null clears the point.
    Range checks happen in the service so that the error carries the field name.
    """
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    region: Optional[str] = Field(default=None, max_length=255)
    municipality: Optional[str] = Field(default=None, max_length=255)
    province: Optional[str] = Field(default=None, max_length=255)
    country: Optional[str] = Field(default=None, max_length=255)
    metadata: Optional[Dict[str, Any]] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def accept_short_coordinate_keys(cls, data: Any) -> Any:
        """Maps {lat, lng, desc} and GeoJSON `coordinates` onto the canonical fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "lat" in data and "latitude" not in data:
            data["latitude"] = data.pop("lat")
        if "lng" in data and "longitude" not in data:
            data["longitude"] = data.pop("lng")
        if "desc" in data and "description" not in data:
            data["description"] = data.pop("desc")
        raw = data.pop("coordinates", None)
        if raw is not None and "latitude" not in data and "longitude" not in data:
            point = parse_point(raw)
            if point is not None:
                data["latitude"] = point.latitude
                data["longitude"] = point.longitude
        # Forms submit "" for untouched inputs
        for key in ("latitude", "longitude"):
            if data.get(key) == "":
                data[key] = None
        return data

    @property
    def coordinates_given(self) -> bool:
        return bool({"latitude", "longitude"} & self.model_fields_set)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PointGeometry(BaseModel):
    """GeoJSON point, longitude first."""
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2, description="[longitude, latitude]")


class LocationResponse(BaseModel):
    """A sampling location as returned by every endpoint that includes one."""
    location_id: uuid.UUID
    name: Optional[str] = None
    description: Optional[str] = None
    region: Optional[str] = None
    municipality: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    coordinates: Optional[PointGeometry] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
