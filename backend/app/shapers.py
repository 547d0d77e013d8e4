"""
PlantLog Backend — Record Shapers
===================================

What:  Turn raw rows (plain dicts, as produced by `Base.to_row()` or a raw
       SQL mapping) into the canonical nested objects returned to clients.
How:   Pure functions: no I/O, never raise, never mutate their input.
       Absent relations normalize to None.

Relation shapes accepted by normalize_sample:
    "researcher": {...}            → {...}
    "researcher": [{...}]          → {...}
    "researcher": []  / None       → None
    "environmental_condition": [{recorded_at: t1}, {recorded_at: t2}]
                                   → the reading with the latest recorded_at
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from app.geometry import parse_point

Row = Mapping[str, Any]


def _point_geojson(raw: Any) -> Optional[Dict[str, Any]]:
    point = parse_point(raw)
    return point.to_geojson() if point else None


def normalize_location(row: Optional[Row]) -> Optional[Dict[str, Any]]:
    """
    Shape a sampling_location row.

    - coordinates: parsed and rendered as GeoJSON (None if unrecognized)
    - country: the row's own value, else metadata["country"]
    - metadata: empty mappings become None
    """
    if not row:
        return None
    shaped = dict(row)
    metadata = row.get("metadata")
    if not isinstance(metadata, Mapping) or not metadata:
        metadata = None

    shaped["coordinates"] = _point_geojson(row.get("coordinates"))
    country = row.get("country")
    if not country and metadata is not None:
        country = metadata.get("country")
    shaped["country"] = country or None
    shaped["metadata"] = dict(metadata) if metadata is not None else None
    return shaped


def normalize_researcher(row: Optional[Row]) -> Optional[Dict[str, Any]]:
    """Shape a researcher row; `contact` is always a mapping."""
    if not row:
        return None
    shaped = dict(row)
    contact = row.get("contact")
    shaped["contact"] = dict(contact) if isinstance(contact, Mapping) else {}
    return shaped


def _single(value: Any) -> Optional[Row]:
    """First element of a list/tuple, the value itself otherwise."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value or None


_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _recorded_at_key(reading: Row) -> datetime:
    """recorded_at as an aware UTC instant; naive values are UTC, unreadable ones sort first."""
    recorded_at = reading.get("recorded_at")
    if isinstance(recorded_at, str):
        try:
            recorded_at = datetime.fromisoformat(recorded_at.strip().replace("Z", "+00:00"))
        except ValueError:
            return _NEVER
    if not isinstance(recorded_at, datetime):
        return _NEVER
    if recorded_at.tzinfo is None:
        return recorded_at.replace(tzinfo=timezone.utc)
    return recorded_at.astimezone(timezone.utc)


def _latest_reading(value: Any) -> Optional[Row]:
    if isinstance(value, (list, tuple)):
        readings = [r for r in value if r]
        if not readings:
            return None
        # max() keeps the first of equal keys, so ties resolve to storage order
        return max(readings, key=_recorded_at_key)
    return value or None


def normalize_sample(row: Optional[Row]) -> Optional[Dict[str, Any]]:
    """
    Shape a plant_sample row joined with its location, researcher and
    environmental readings.

    Each relation may arrive as a singleton or as an array; the output
    always holds a singleton or None.
    """
    if not row:
        return None
    shaped = dict(row)
    location = _single(row.get("sampling_location"))
    researcher = _single(row.get("researcher"))
    reading = _latest_reading(row.get("environmental_condition"))

    shaped["sampling_location"] = normalize_location(location)
    shaped["researcher"] = normalize_researcher(researcher)
    shaped["environmental_condition"] = dict(reading) if reading else None
    return shaped
