"""
PlantLog Backend — Pydantic Request/Response Schemas

Schemas are kept apart from the ORM models: the API exposes GeoJSON points
and inlined relations that have no direct column counterpart.
"""
