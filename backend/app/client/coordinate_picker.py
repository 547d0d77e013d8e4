"""
PlantLog Client — Coordinate Picker
=====================================

State model of the single-marker map picker on the sample form. The map
widget calls `drag_end` with the marker's position; the picker rounds it,
keeps it, and reports it through `on_change`. It stores nothing itself.
"""

from typing import Callable, Dict, Optional, Tuple

DEFAULT_CENTER: Tuple[float, float] = (122.0, 13.0)  # (lng, lat)
DEFAULT_ZOOM = 4
DECIMALS = 4

ChangeCallback = Callable[[float, float], None]


def round_coordinate(value: float) -> float:
    return round(float(value), DECIMALS)


class CoordinatePicker:
    def __init__(
        self,
        on_change: Optional[ChangeCallback] = None,
        center: Tuple[float, float] = DEFAULT_CENTER,
        zoom: int = DEFAULT_ZOOM,
    ):
        self.on_change = on_change
        self.center = center
        self.zoom = zoom
        # The marker starts on the map center; nothing is picked until a drag ends
        self.marker: Tuple[float, float] = center
        self.coords: Optional[Tuple[float, float]] = None

    def drag_end(self, lng: float, lat: float) -> Tuple[float, float]:
        """Record the dropped marker as (lng, lat) rounded to 4 places and notify."""
        picked = (round_coordinate(lng), round_coordinate(lat))
        self.marker = (float(lng), float(lat))
        self.coords = picked
        if self.on_change is not None:
            self.on_change(*picked)
        return picked

    def reset(self) -> None:
        self.marker = self.center
        self.coords = None

    def as_location(self, desc: str = "") -> Optional[Dict[str, object]]:
        """The {lng, lat, desc} payload the sample form sends, or None before a pick."""
        if self.coords is None:
            return None
        lng, lat = self.coords
        return {"lng": lng, "lat": lat, "desc": desc}
