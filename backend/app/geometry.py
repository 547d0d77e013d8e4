"""
PlantLog Backend — Geometry Normalizer
========================================

What:  Converts between the point representations used at each layer.
How:   Pure functions; no I/O.

Representations:
    Storage (write):  EWKT text       "SRID=4326;POINT(121.0437 14.6760)"
    Storage (read):   GeoAlchemy2 WKBElement, or WKT text from raw SQL
    Internal:         GeoPoint(longitude, latitude)
    External (API):   GeoJSON          {"type": "Point", "coordinates": [lng, lat]}

Longitude always comes first in both WKT and GeoJSON. Callers must not
transpose the pair.
"""

import math
import re
from typing import Any, Dict, NamedTuple, Optional

from geoalchemy2.elements import WKBElement, WKTElement
from geoalchemy2.shape import to_shape

from app.exceptions import ValidationError

SRID = 4326

# Digits kept when rendering a point for storage (~0.1 m at the equator)
POINT_PRECISION = 6

_NUMBER = r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?"
_POINT_PATTERN = re.compile(
    rf"^\s*(?:SRID=\d+\s*;)?\s*POINT\s*\(\s*({_NUMBER})\s+({_NUMBER})\s*\)\s*$",
    re.IGNORECASE,
)


class GeoPoint(NamedTuple):
    """A single WGS84 coordinate pair, longitude first."""

    longitude: float
    latitude: float

    def to_geojson(self) -> Dict[str, Any]:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


def _is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _pair(longitude: Any, latitude: Any) -> Optional[GeoPoint]:
    if _is_finite_number(longitude) and _is_finite_number(latitude):
        return GeoPoint(float(longitude), float(latitude))
    return None


def parse_point(raw: Any) -> Optional[GeoPoint]:
    """
    Parse any supported point representation into a GeoPoint.

    Accepted inputs:
        - "POINT(lng lat)" text, optionally prefixed with "SRID=4326;"
        - GeoJSON-style mapping {"type": "Point", "coordinates": [lng, lat]}
        - {"latitude": ..., "longitude": ...} mapping
        - GeoAlchemy2 WKBElement / WKTElement read from a geography column

    Returns None for anything else: absent, malformed, wrong geometry type,
    coordinate arrays that are not exactly two numbers, non-finite members.
    Never raises.
    """
    if raw is None:
        return None

    if isinstance(raw, str):
        match = _POINT_PATTERN.match(raw)
        if not match:
            return None
        return _pair(float(match.group(1)), float(match.group(2)))

    if isinstance(raw, (WKBElement, WKTElement)):
        try:
            shape = to_shape(raw)
        except Exception:
            return None
        if shape.geom_type != "Point" or shape.is_empty:
            return None
        return _pair(shape.x, shape.y)

    if isinstance(raw, dict):
        if "coordinates" in raw:
            if raw.get("type", "Point") != "Point":
                return None
            coordinates = raw["coordinates"]
            if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
                return None
            return _pair(coordinates[0], coordinates[1])
        if "latitude" in raw and "longitude" in raw:
            return _pair(raw["longitude"], raw["latitude"])

    return None


def build_point(latitude: Any, longitude: Any) -> Optional[str]:
    """
    Render an EWKT point for storage.

    Returns None unless both inputs are finite numbers. Range checks are
    the caller's job (see validate_coordinates).

    Example:
        >>> build_point(14.676, 121.0437)
        'SRID=4326;POINT(121.043700 14.676000)'
    """
    if not (_is_finite_number(latitude) and _is_finite_number(longitude)):
        return None
    return (
        f"SRID={SRID};POINT("
        f"{longitude:.{POINT_PRECISION}f} {latitude:.{POINT_PRECISION}f})"
    )


def validate_coordinates(
    latitude: Optional[float],
    longitude: Optional[float],
) -> Optional[GeoPoint]:
    """
    Check a coordinate pair coming from a client.

    Returns:
        GeoPoint when both values are present and in range,
        None when both are absent.

    Raises:
        ValidationError when only one value is given, a value is not finite,
        or latitude ∉ [-90, 90] / longitude ∉ [-180, 180].
    """
    if latitude is None and longitude is None:
        return None
    if latitude is None or longitude is None:
        raise ValidationError(
            message="Both latitude and longitude are required when setting coordinates",
            field="latitude" if latitude is None else "longitude",
        )
    if not _is_finite_number(latitude):
        raise ValidationError(message="latitude must be a finite number", field="latitude")
    if not _is_finite_number(longitude):
        raise ValidationError(message="longitude must be a finite number", field="longitude")
    if not -90 <= latitude <= 90:
        raise ValidationError(
            message=f"latitude {latitude} is out of range (must be between -90 and 90)",
            field="latitude",
        )
    if not -180 <= longitude <= 180:
        raise ValidationError(
            message=f"longitude {longitude} is out of range (must be between -180 and 180)",
            field="longitude",
        )
    return GeoPoint(float(longitude), float(latitude))
