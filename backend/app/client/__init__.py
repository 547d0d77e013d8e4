"""
PlantLog Client — state containers and widgets that talk to the HTTP API.
"""

from app.client.coordinate_picker import CoordinatePicker
from app.client.hooks import (
    LocationsHook,
    Notification,
    ProfileHook,
    ReportsAnalyticsHook,
    ResearchersHook,
    SamplesHook,
    build_client,
)

__all__ = [
    "CoordinatePicker",
    "LocationsHook",
    "Notification",
    "ProfileHook",
    "ReportsAnalyticsHook",
    "ResearchersHook",
    "SamplesHook",
    "build_client",
]
