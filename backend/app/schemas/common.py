"""
PlantLog Backend — Shared Response Schemas
============================================

What:  Models used by every resource: the error envelope and the health report.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error envelope for all API errors.

    Example:
        {
            "error": "latitude 100.0 is out of range (must be between -90 and 90)",
            "code": "validation_error",
            "details": {"field": "latitude"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Human-readable error description")
    code: str = Field(description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for container and load balancer probes."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoding: str = Field(description="Reverse geocoding: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
