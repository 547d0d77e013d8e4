"""
PlantLog Backend — Researcher Schemas
=======================================

`contact` is free-form: `email`, `phone` and `affiliation` are the keys the
client forms use, but any mapping is stored as given.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ResearcherWrite(BaseModel):
    """
    Body for researcher create/update, both admin and self-service.

    `full_name` is optional here and enforced by the service, so a missing
    or blank name yields a descriptive 400 instead of a schema error.
    `auth_id` is honored on admin create only.
    """
    full_name: Optional[str] = Field(default=None, max_length=255)
    affiliation: Optional[str] = Field(default=None, max_length=255)
    contact: Optional[Dict[str, Any]] = None
    auth_id: Optional[str] = Field(default=None, max_length=255)


class ResearcherResponse(BaseModel):
    researcher_id: uuid.UUID
    auth_id: Optional[str] = None
    full_name: str
    affiliation: Optional[str] = None
    contact: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
