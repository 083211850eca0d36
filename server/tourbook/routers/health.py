"""Health check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .. import __version__
from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping() -> JSONResponse:
    """Return current service status and timestamp."""
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
        version=__version__
    )

    logger.debug("Health ping", extra={"timestamp": response_data.timestamp.isoformat()})

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
