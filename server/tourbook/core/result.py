"""Tagged result variants for callers that branch on failure kind."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Generic, TypeVar, Union

from .exceptions import ErrorKind, ProblemDetailsException

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome."""

    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    """Failed outcome with its kind and a human-readable message."""

    kind: ErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    ok: bool = field(default=False, init=False)

    @classmethod
    def from_exception(cls, exc: ProblemDetailsException) -> "Err":
        return cls(kind=exc.kind, message=exc.message, details=dict(exc.problem_details))


Result = Union[Ok[T], Err]


async def capture(operation: Awaitable[T]) -> "Result[T]":
    """
    Await an engine operation and fold domain failures into ``Err``.

    Only ``ProblemDetailsException`` subclasses are captured; anything else
    (driver errors, programming errors) propagates unchanged.
    """
    try:
        return Ok(await operation)
    except ProblemDetailsException as exc:
        return Err.from_exception(exc)
