"""
PlantLog Backend — ORM Models

Importing this package registers every table on Base.metadata and lets the
string-based relationship() targets resolve.
"""

from app.models.environment import EnvironmentalCondition
from app.models.location import SamplingLocation
from app.models.researcher import Researcher
from app.models.sample import PlantSample

__all__ = [
    "EnvironmentalCondition",
    "PlantSample",
    "Researcher",
    "SamplingLocation",
]
