"""Observability setup for OpenTelemetry, Prometheus metrics and structured logging."""

import logging
from typing import Optional

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from .. import __version__
from .config import settings

SERVICE_NAME = "tourbook-api"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
BOOKINGS_CREATED = Counter(
    'tourbook_bookings_created_total',
    'Total bookings created in PENDING state',
    ['tour_id'],
    registry=REGISTRY
)

BOOKINGS_CONFIRMED = Counter(
    'tourbook_bookings_confirmed_total',
    'Total bookings confirmed',
    ['tour_id'],
    registry=REGISTRY
)

BOOKINGS_CANCELLED = Counter(
    'tourbook_bookings_cancelled_total',
    'Total bookings cancelled',
    ['previous_status'],
    registry=REGISTRY
)

CAPACITY_REJECTIONS = Counter(
    'tourbook_capacity_rejections_total',
    'Requests rejected because an availability had too few slots',
    ['operation'],
    registry=REGISTRY
)

SLOTS_RESERVED = Counter(
    'tourbook_slots_reserved_total',
    'Slots taken from availability ledgers',
    registry=REGISTRY
)

SLOTS_RELEASED = Counter(
    'tourbook_slots_released_total',
    'Slots returned to availability ledgers',
    registry=REGISTRY
)

PAYMENT_OUTCOMES = Counter(
    'tourbook_payment_outcomes_total',
    'Payment outcomes applied, by provider and status',
    ['provider', 'status'],
    registry=REGISTRY
)

AVAILABLE_SLOTS = Gauge(
    'tourbook_availability_slots_available',
    'Free slots on an availability after the last ledger change',
    ['availability_id'],
    registry=REGISTRY
)


def add_trace_context(logger, method_name, event_dict):
    """Add the active OpenTelemetry span to log events."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict['trace_id'] = format(ctx.trace_id, '032x')
        event_dict['span_id'] = format(ctx.span_id, '016x')
    return event_dict


def setup_structured_logging():
    """
    Configure structlog.

    Request-scoped values (request_id, trace_id) are bound by the middleware
    through ``structlog.contextvars`` and merged into every event.
    """
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource(app_name: str) -> Resource:
    return Resource.create({
        "service.name": app_name,
        "service.version": __version__,
        "environment": settings.environment,
    })


def setup_tracing(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing, exporting over OTLP when an endpoint is configured."""
    provider = TracerProvider(resource=_resource(app_name))

    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000,
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(app_name), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine=None):
    """Instrument SQLAlchemy with OpenTelemetry."""
    instrumentor = SQLAlchemyInstrumentor()
    if instrumentor.is_instrumented_by_opentelemetry:
        return
    if engine is not None:
        instrumentor.instrument(engine=engine.sync_engine)
    else:
        instrumentor.instrument()


class MetricsCollector:
    """Collector for booking engine metrics."""

    @staticmethod
    def record_booking_created(tour_id: str):
        BOOKINGS_CREATED.labels(tour_id=tour_id).inc()

    @staticmethod
    def record_booking_confirmed(tour_id: str):
        BOOKINGS_CONFIRMED.labels(tour_id=tour_id).inc()

    @staticmethod
    def record_booking_cancelled(previous_status: str):
        BOOKINGS_CANCELLED.labels(previous_status=previous_status).inc()

    @staticmethod
    def record_capacity_rejection(operation: str):
        """Record a request refused for lack of slots."""
        CAPACITY_REJECTIONS.labels(operation=operation).inc()

    @staticmethod
    def record_slots_reserved(availability_id: str, count: int, remaining: Optional[int] = None):
        SLOTS_RESERVED.inc(count)
        if remaining is not None:
            AVAILABLE_SLOTS.labels(availability_id=availability_id).set(remaining)

    @staticmethod
    def record_slots_released(availability_id: str, count: int, remaining: Optional[int] = None):
        SLOTS_RELEASED.inc(count)
        if remaining is not None:
            AVAILABLE_SLOTS.labels(availability_id=availability_id).set(remaining)

    @staticmethod
    def record_payment_outcome(provider: str, status: str):
        PAYMENT_OUTCOMES.labels(provider=provider, status=status).inc()

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
        """Record one served HTTP request."""
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


class StructuredLogger:
    """Structured logger with business context."""

    def __init__(self, name_or_logger):
        if isinstance(name_or_logger, str):
            self.logger = structlog.get_logger(name_or_logger)
        else:
            self.logger = name_or_logger

    def info(self, message: str, **kwargs):
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(message, **kwargs)

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, **kwargs)

    def with_context(self, **kwargs) -> "StructuredLogger":
        """Return a logger with ``kwargs`` bound to every event."""
        return StructuredLogger(self.logger.bind(**kwargs))


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)
