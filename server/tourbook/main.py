"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from . import __version__
from .core.config import settings
from .core.database import async_session_factory, close_db, engine, init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_NAME,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import availability, booking, health, metrics, payment, review, tour
from .schemas.health import HealthStatus, ReadinessResponse

# Configure structured logging
setup_structured_logging()

# Configure stdlib logging for service modules
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Sets up tracing and metrics, creates missing tables and disposes of the
    engine on shutdown.
    """
    logger.info("Starting tourbook API", extra={"environment": settings.environment})

    try:
        setup_tracing(SERVICE_NAME)
        setup_metrics(SERVICE_NAME)
        instrument_sqlalchemy(engine)
        await init_db()
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down tourbook API")
    await close_db()
    logger.info("Application shutdown complete")


async def _check_database() -> str:
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Readiness check failed - database", extra={"error": str(e)})
        return f"error: {e.__class__.__name__}"
    return "ok"


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Tourbook API",
        description="RPC-over-HTTP API for tour availability, bookings, payments and reviews",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)

    # Instrument FastAPI with OpenTelemetry
    instrument_fastapi(app)

    # Register exception handlers
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        response_model=dict,
    )
    async def health_check():
        """Liveness: the process is up and serving requests."""
        return {
            "status": HealthStatus.HEALTHY.value,
            "service": SERVICE_NAME,
            "version": __version__,
            "environment": settings.environment,
        }

    @app.get(
        "/ready",
        tags=["Health"],
        summary="Readiness Check",
        response_model=ReadinessResponse,
    )
    async def readiness_check() -> JSONResponse:
        """Readiness: the database answers a trivial query."""
        checks = {"database": await _check_database()}
        ready = all(value == "ok" for value in checks.values())
        response_data = ReadinessResponse(
            status=HealthStatus.READY if ready else HealthStatus.DEGRADED,
            service=SERVICE_NAME,
            checks=checks,
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response_data.model_dump(mode="json"),
        )

    @app.get(
        "/info",
        status_code=status.HTTP_200_OK,
        tags=["Info"],
        summary="Service Information",
        response_model=dict,
    )
    async def service_info():
        """Service information endpoint."""
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "description": "Tour availability ledger and booking lifecycle service",
            "environment": settings.environment,
            "features": {
                "authentication": True,
                "tracing": True,
                "problem_details": True,
                "payment_webhooks": ["STRIPE", "PAYSTACK", "FLUTTERWAVE"],
            },
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "info": "/info",
                "metrics": "/metrics",
                "docs": "/docs" if settings.debug else None,
            },
        }

    # Register API routers
    app.include_router(health.router)
    app.include_router(tour.router)
    app.include_router(availability.router)
    app.include_router(booking.router)
    app.include_router(payment.router)
    app.include_router(review.router)
    app.include_router(metrics.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tourbook.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
