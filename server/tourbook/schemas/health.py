"""Health and readiness schemas."""

from datetime import datetime
from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field

from .. import __version__


class HealthStatus(str, Enum):
    """Health status enumeration."""
    HEALTHY = "healthy"
    READY = "ready"
    DEGRADED = "degraded"


class HealthResponse(BaseModel):
    """Liveness ping response."""

    status: HealthStatus = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")
    version: str = Field(__version__, description="API version")


class ReadinessResponse(BaseModel):
    """Readiness response with per-dependency checks."""

    status: HealthStatus = Field(..., description="READY when every check passed")
    service: str = Field(..., description="Service name")
    checks: Dict[str, str] = Field(default_factory=dict, description="Dependency name to 'ok' or error text")
