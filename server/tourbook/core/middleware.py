"""Custom middleware for request tracking, trace propagation and access logging."""

import logging
import re
import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .config import settings
from .observability import metrics_collector

logger = logging.getLogger(__name__)

TRACEPARENT_PATTERN = re.compile(r"^([0-9a-f]{2})-([0-9a-f]{32})-([0-9a-f]{16})-([0-9a-f]{2})$")


def parse_traceparent(traceparent: Optional[str]) -> Optional[dict]:
    """
    Parse a W3C traceparent header.

    Only version 00 is accepted; all-zero trace or parent IDs are invalid.

    https://www.w3.org/TR/trace-context/
    """
    if not traceparent:
        return None

    match = TRACEPARENT_PATTERN.match(traceparent.strip().lower())
    if not match:
        return None

    version, trace_id, parent_id, flags = match.groups()
    if version != "00" or trace_id == "0" * 32 or parent_id == "0" * 16:
        return None

    return {"trace_id": trace_id, "parent_id": parent_id, "flags": flags}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Attach a request ID and W3C trace context to every request.

    The request ID comes from ``X-Request-ID`` when present. A valid incoming
    ``traceparent`` continues that trace; otherwise a new trace is started.
    Both values are bound into ``structlog.contextvars`` for the duration of
    the request and echoed on the response.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())

        incoming = parse_traceparent(request.headers.get("traceparent"))
        trace_id = incoming["trace_id"] if incoming else uuid.uuid4().hex
        flags = incoming["flags"] if incoming else "01"
        span_id = uuid.uuid4().hex[:16]
        tracestate = request.headers.get("tracestate")

        request.state.request_id = request_id
        request.state.trace_context = {
            "trace_id": trace_id,
            "span_id": span_id,
            "parent_span_id": incoming["parent_id"] if incoming else None,
            "flags": flags,
        }

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, trace_id=trace_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[self.header_name] = request_id
        response.headers["traceparent"] = f"00-{trace_id}-{span_id}-{flags}"
        if tracestate:
            response.headers["tracestate"] = tracestate

        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log each request with its outcome and record request metrics."""

    def __init__(self, app: ASGIApp, skip_paths: Optional[list] = None):
        super().__init__(app)
        self.skip_paths = skip_paths or ["/health", "/metrics", "/favicon.ico"]

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        if request.client:
            return request.client.host

        return "unknown"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.skip_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        metrics_collector.record_request(request.method, endpoint, response.status_code, duration)

        log_data = {
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration * 1000, 2),
            "client_ip": self._get_client_ip(request),
        }

        if response.status_code >= 500:
            logger.error("HTTP request completed with server error", extra=log_data)
        elif response.status_code >= 400:
            logger.warning("HTTP request completed with client error", extra=log_data)
        else:
            logger.info("HTTP request completed", extra=log_data)

        return response


def setup_middleware(app, enable_logging: bool = True) -> None:
    """
    Setup all middleware on the FastAPI app.

    Middleware added last runs first, so request context is in place before
    access logging reads it.
    """
    if enable_logging:
        app.add_middleware(AccessLogMiddleware)

    app.add_middleware(RequestContextMiddleware)

    logger.debug("Middleware configured", extra={"environment": settings.environment})
