"""
Business rule validation.

Every function here is pure: it inspects its arguments, raises a domain
exception on the first broken rule and returns ``None`` otherwise. Nothing
is coerced or persisted. The booking and availability services call these
before every state transition.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from ..core.exceptions import (
    BusinessRuleViolationError,
    CapacityExceededError,
    IdempotencyViolationError,
    PermissionDeniedError,
    ValidationError,
)
from ..core.principal import Principal, UserRole
from ..models.availability import TourAvailability
from ..models.booking import BookingStatus
from ..models.tour import Tour, TourStatus

Number = Union[int, float, Decimal]

MAX_PRICE_PER_PERSON = Decimal("100000")
MAX_GROUP_SIZE = 100
MAX_REVENUE_PER_TOUR = Decimal("1000000")
MAX_PAYMENT_AMOUNT = Decimal("1000000")
MAX_DURATION_DAYS = 365
MAX_AVAILABILITY_SLOTS = 1000
PRICE_TOLERANCE = Decimal("0.01")

MIN_COMMENT_LENGTH = 10
MAX_COMMENT_LENGTH = 1000

SUPPORTED_CURRENCIES = frozenset({"USD", "EUR", "GBP", "NGN", "GHS", "KES"})

PROVIDER_METHODS: dict[str, frozenset[str]] = {
    "STRIPE": frozenset({"CARD"}),
    "PAYSTACK": frozenset({"CARD", "MOBILE_MONEY", "BANK"}),
    "FLUTTERWAVE": frozenset({"CARD", "MOBILE_MONEY", "BANK"}),
}

# Forward moves only; re-entering a terminal state is reported separately.
_ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _enum_value(value: Any) -> str:
    return value.value if hasattr(value, "value") else str(value)


def validate_user_role(principal: Principal, required_role: UserRole) -> None:
    """
    Require the caller's role to be at least ``required_role``.

    Raises:
        PermissionDeniedError: If the role ranks below the required one
    """
    if not UserRole(principal.role).satisfies(required_role):
        raise PermissionDeniedError(
            f"Insufficient permissions. Required role: {UserRole(required_role).value}",
            required_role=UserRole(required_role).value,
        )


def validate_admin_access(principal: Principal) -> None:
    """Only administrators manage tours and availabilities."""
    if UserRole(principal.role) is not UserRole.ADMIN:
        raise PermissionDeniedError(
            "Only administrators can perform this action",
            required_role=UserRole.ADMIN.value,
        )


def validate_pricing(price_per_person: Number, max_group_size: int) -> None:
    """
    Check a tour's price and group size against the catalogue limits.

    Args:
        price_per_person: Price charged per traveler
        max_group_size: Largest party a single booking may hold

    Raises:
        BusinessRuleViolationError: If any pricing limit is broken
    """
    price = _to_decimal(price_per_person)

    if price <= 0:
        raise BusinessRuleViolationError("Price per person must be greater than 0", rule="pricing")

    if price > MAX_PRICE_PER_PERSON:
        raise BusinessRuleViolationError("Price per person cannot exceed 100,000", rule="pricing")

    if max_group_size < 1:
        raise BusinessRuleViolationError("Maximum group size must be at least 1", rule="pricing")

    if max_group_size > MAX_GROUP_SIZE:
        raise BusinessRuleViolationError("Maximum group size cannot exceed 100", rule="pricing")

    if price * max_group_size > MAX_REVENUE_PER_TOUR:
        raise BusinessRuleViolationError(
            "Total maximum revenue per tour cannot exceed 1,000,000",
            rule="pricing",
        )


def validate_availability(
    tour: Tour,
    availability: TourAvailability,
    requested_slots: int,
    today: Optional[date] = None,
) -> None:
    """
    Check that ``requested_slots`` can be booked on ``availability`` now.

    Args:
        tour: Tour the availability belongs to
        availability: Dated availability being booked
        requested_slots: Number of travelers requested
        today: Reference date, defaults to the current date

    Raises:
        BusinessRuleViolationError: If the tour is inactive or already started
        CapacityExceededError: If fewer slots remain than requested
        ValidationError: If the request exceeds the tour's group size
    """
    today = today or date.today()

    if TourStatus(tour.status) is not TourStatus.ACTIVE:
        raise BusinessRuleViolationError("Cannot book inactive tours", rule="tour_active")

    if availability.available_slots < requested_slots:
        raise CapacityExceededError(
            availability_id=str(availability.id),
            requested_slots=requested_slots,
            available_slots=availability.available_slots,
            detail=(
                f"Insufficient availability. Requested: {requested_slots}, "
                f"Available: {availability.available_slots}"
            ),
        )

    if requested_slots > tour.max_group_size:
        raise ValidationError(
            f"Requested slots ({requested_slots}) exceed tour's maximum group size ({tour.max_group_size})",
            errors={"travelers_count": requested_slots, "max_group_size": tour.max_group_size},
        )

    if availability.start_date < today:
        raise BusinessRuleViolationError("Cannot book tours that have already started", rule="start_date")


def validate_booking(
    principal: Principal,
    tour: Tour,
    availability: TourAvailability,
    travelers_count: int,
    total_price: Number,
    today: Optional[date] = None,
) -> None:
    """
    Check a booking request before it is persisted.

    Applies the availability rule, then the traveler count bounds, then
    requires ``total_price`` to equal ``price_per_person * travelers_count``
    within one cent.

    Raises:
        ValidationError: If the traveler count is out of range
        BusinessRuleViolationError: If the price does not match
        CapacityExceededError: If fewer slots remain than requested
    """
    if travelers_count < 1:
        raise ValidationError(
            "Number of travelers must be at least 1",
            errors={"travelers_count": travelers_count},
        )

    validate_availability(tour, availability, travelers_count, today=today)

    if travelers_count > tour.max_group_size:
        raise ValidationError(
            f"Number of travelers ({travelers_count}) cannot exceed tour's maximum group size ({tour.max_group_size})",
            errors={"travelers_count": travelers_count, "max_group_size": tour.max_group_size},
        )

    expected = _to_decimal(tour.price_per_person) * travelers_count
    provided = _to_decimal(total_price)
    if abs(provided - expected) > PRICE_TOLERANCE:
        raise BusinessRuleViolationError(
            f"Price mismatch. Expected: {expected:.2f}, Provided: {provided:.2f}",
            rule="price_match",
        )


def validate_review(
    principal: Principal,
    rating: Any,
    comment: Optional[str],
    has_completed_booking: bool,
) -> None:
    """
    Check review eligibility and content.

    Raises:
        BusinessRuleViolationError: If the caller has no confirmed booking for the tour
        ValidationError: If the rating or comment is malformed
    """
    if not has_completed_booking:
        raise BusinessRuleViolationError(
            "Only customers with completed bookings can leave reviews",
            rule="review_eligibility",
        )

    if isinstance(rating, bool) or not isinstance(rating, int) or rating < 1 or rating > 5:
        raise ValidationError("Rating must be an integer between 1 and 5", errors={"rating": rating})

    if not comment or not comment.strip():
        raise ValidationError("Review comment is required", errors={"comment": "missing"})

    if len(comment.strip()) < MIN_COMMENT_LENGTH:
        raise ValidationError(
            f"Review comment must be at least {MIN_COMMENT_LENGTH} characters long",
            errors={"comment": "too_short"},
        )

    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"Review comment cannot exceed {MAX_COMMENT_LENGTH} characters",
            errors={"comment": "too_long"},
        )


def validate_payment(amount: Number, currency: str, method: Any, provider: Any) -> None:
    """
    Check a payment's amount, currency and method/provider pairing.

    Raises:
        ValidationError: If any of the values is unsupported
    """
    value = _to_decimal(amount)
    if value <= 0:
        raise ValidationError("Payment amount must be a positive number", errors={"amount": str(amount)})

    if value > MAX_PAYMENT_AMOUNT:
        raise ValidationError("Payment amount cannot exceed 1,000,000", errors={"amount": str(amount)})

    if not currency or currency.upper() not in SUPPORTED_CURRENCIES:
        raise ValidationError(f"Unsupported currency: {currency}", errors={"currency": currency})

    provider_name = _enum_value(provider)
    method_name = _enum_value(method)

    methods = PROVIDER_METHODS.get(provider_name)
    if methods is None:
        raise ValidationError(f"Unsupported payment provider: {provider_name}", errors={"provider": provider_name})

    if method_name not in methods:
        raise ValidationError(
            f"Payment method {method_name} not supported by provider {provider_name}",
            errors={"method": method_name, "provider": provider_name},
        )


def validate_itinerary(itinerary: Iterable[Mapping[str, Any]]) -> None:
    """Day numbers must be positive, unique and consecutive from 1."""
    days = [entry.get("day") for entry in itinerary]

    for day in days:
        if isinstance(day, bool) or not isinstance(day, int) or day < 1:
            raise ValidationError("Itinerary day numbers must be positive integers", errors={"day": day})

    if len(set(days)) != len(days):
        raise ValidationError("Itinerary day numbers must be unique")

    if sorted(days) != list(range(1, len(days) + 1)):
        raise ValidationError("Itinerary days must be consecutive starting from day 1")


def validate_tour_creation(
    duration_days: int,
    price_per_person: Number,
    max_group_size: int,
    itinerary: list[Mapping[str, Any]],
) -> None:
    """
    Check a new tour before it is stored.

    Raises:
        BusinessRuleViolationError: If the pricing rule fails
        ValidationError: If the duration or itinerary is malformed
    """
    validate_pricing(price_per_person, max_group_size)

    if duration_days < 1:
        raise ValidationError("Tour duration must be at least 1 day", errors={"duration_days": duration_days})

    if duration_days > MAX_DURATION_DAYS:
        raise ValidationError(
            f"Tour duration cannot exceed {MAX_DURATION_DAYS} days",
            errors={"duration_days": duration_days},
        )

    if len(itinerary) != duration_days:
        raise ValidationError(
            f"Itinerary must have exactly {duration_days} days, but has {len(itinerary)}",
            errors={"itinerary": len(itinerary)},
        )

    validate_itinerary(itinerary)


def validate_availability_creation(
    start_date: date,
    end_date: date,
    total_slots: int,
    today: Optional[date] = None,
) -> None:
    """Start may not be in the past, end may not precede start, slots within [0, 1000]."""
    today = today or date.today()

    if start_date < today:
        raise ValidationError("Start date cannot be in the past", errors={"start_date": start_date.isoformat()})

    if end_date < start_date:
        raise ValidationError(
            "End date must be on or after start date",
            errors={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    if total_slots < 0:
        raise ValidationError("Available slots cannot be negative", errors={"total_slots": total_slots})

    if total_slots > MAX_AVAILABILITY_SLOTS:
        raise ValidationError(
            f"Available slots cannot exceed {MAX_AVAILABILITY_SLOTS}",
            errors={"total_slots": total_slots},
        )


def validate_status_transition(
    booking_id: str,
    current: BookingStatus,
    target: BookingStatus,
) -> None:
    """
    Check a booking status move against the lifecycle.

    Raises:
        IdempotencyViolationError: If ``target`` is the terminal state already held
        BusinessRuleViolationError: If the move goes backwards
    """
    current = BookingStatus(current)
    target = BookingStatus(target)

    if current is target and current is not BookingStatus.PENDING:
        raise IdempotencyViolationError(booking_id=booking_id, status=current.value)

    if target not in _ALLOWED_TRANSITIONS[current]:
        raise BusinessRuleViolationError(
            f"Invalid booking status transition from {current.value} to {target.value}",
            rule="status_transition",
        )
