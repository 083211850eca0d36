"""Domain exceptions rendered as RFC 9457 Problem Details."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    """Failure kinds surfaced by the booking engine."""
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    IDEMPOTENCY_VIOLATION = "IDEMPOTENCY_VIOLATION"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    CONFLICT = "CONFLICT"
    AUTHENTICATION = "AUTHENTICATION"
    INTERNAL = "INTERNAL"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    Every subclass carries an ``ErrorKind`` so callers can branch on the
    failure without matching on HTTP status codes.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.title = title
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}
        self.message = detail or title

        self.problem_details: Dict[str, Any] = {
            "type": self.type_uri,
            "title": self.title,
            "status": status_code,
            "code": self.kind.value,
        }

        if detail:
            self.problem_details["detail"] = detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )

    def __str__(self) -> str:
        return self.message


class ValidationError(ProblemDetailsException):
    """Malformed or out-of-range input, caught before persistence."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        detail: str = "The request data failed validation",
        errors: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if errors:
            extensions["errors"] = errors

        super().__init__(
            status_code=400,
            title="Validation Error",
            detail=detail,
            type_uri="https://tourbook.dev/problems/validation-error",
            instance=instance,
            extensions=extensions,
        )


class AuthenticationError(ProblemDetailsException):
    """Missing or invalid principal credentials."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(
        self,
        detail: str = "Authentication credentials are required",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=401,
            title="Authentication Required",
            detail=detail,
            type_uri="https://tourbook.dev/problems/authentication-required",
            instance=instance,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundError(ProblemDetailsException):
    """Referenced tour, availability, booking or payment is missing."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://tourbook.dev/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """The request conflicts with the current state of a resource."""

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
        title: str = "Resource Conflict",
        type_uri: str = "https://tourbook.dev/problems/resource-conflict",
    ):
        extensions = {}
        if conflicting_resource:
            extensions["conflicting_resource"] = conflicting_resource

        super().__init__(
            status_code=409,
            title=title,
            detail=detail,
            type_uri=type_uri,
            instance=instance,
            extensions=extensions,
        )


class CapacityExceededError(ConflictError):
    """Not enough slots left on an availability."""

    kind = ErrorKind.CAPACITY_EXCEEDED

    def __init__(
        self,
        availability_id: str,
        requested_slots: int,
        available_slots: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        if not detail:
            detail = f"Availability {availability_id} cannot accommodate {requested_slots} travelers"
            if available_slots is not None:
                detail += f" (available: {available_slots})"

        conflicting_resource: Dict[str, Any] = {
            "availability_id": availability_id,
            "requested_slots": requested_slots,
        }
        if available_slots is not None:
            conflicting_resource["available_slots"] = available_slots

        super().__init__(
            detail=detail,
            conflicting_resource=conflicting_resource,
            title="Capacity Exceeded",
            type_uri="https://tourbook.dev/problems/capacity-exceeded",
        )
        self.problem_details["retryable"] = False


class IdempotencyViolationError(ConflictError):
    """A terminal transition was applied a second time."""

    kind = ErrorKind.IDEMPOTENCY_VIOLATION

    def __init__(self, booking_id: str, status: str, detail: Optional[str] = None):
        super().__init__(
            detail=detail or f"Booking {booking_id} is already {status}",
            conflicting_resource={"booking_id": booking_id, "status": status},
            title="Transition Already Applied",
            type_uri="https://tourbook.dev/problems/idempotency-violation",
        )


class BusinessRuleViolationError(ProblemDetailsException):
    """Role, permission, pricing or lifecycle rule was broken."""

    kind = ErrorKind.BUSINESS_RULE_VIOLATION

    def __init__(
        self,
        detail: str,
        rule: Optional[str] = None,
        status_code: int = 422,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if rule:
            extensions["rule"] = rule

        super().__init__(
            status_code=status_code,
            title="Business Rule Violation",
            detail=detail,
            type_uri="https://tourbook.dev/problems/business-rule-violation",
            instance=instance,
            extensions=extensions,
        )


class PermissionDeniedError(BusinessRuleViolationError):
    """Caller's role is below the one the action requires."""

    def __init__(self, detail: str, required_role: Optional[str] = None):
        super().__init__(detail=detail, rule="role", status_code=403)
        if required_role:
            self.problem_details["required_role"] = required_role


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """Render a Problem Details exception."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body validation failures as Problem Details with violations."""
    violations = [
        {
            "path": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "type": "https://tourbook.dev/problems/validation-error",
            "title": "Request Validation Failed",
            "status": 422,
            "code": ErrorKind.VALIDATION.value,
            "instance": str(request.url.path),
            "violations": violations,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Convert unhandled exceptions to Problem Details format."""
    problem_details = {
        "type": "https://tourbook.dev/problems/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "code": ErrorKind.INTERNAL.value,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": str(uuid.uuid4()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
    )
