"""Unit tests for the business rule validators."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from tourbook.core.exceptions import (
    BusinessRuleViolationError,
    CapacityExceededError,
    IdempotencyViolationError,
    PermissionDeniedError,
    ValidationError,
)
from tourbook.core.principal import Principal, UserRole
from tourbook.models import BookingStatus, PaymentMethod, PaymentProvider, Tour, TourAvailability, TourStatus
from tourbook.validation import (
    validate_admin_access,
    validate_availability,
    validate_availability_creation,
    validate_booking,
    validate_itinerary,
    validate_payment,
    validate_pricing,
    validate_review,
    validate_status_transition,
    validate_tour_creation,
    validate_user_role,
)

TODAY = date(2026, 6, 1)
CUSTOMER = Principal(user_id="u1", role=UserRole.CUSTOMER)


def make_tour(price="100.00", max_group_size=10, status=TourStatus.ACTIVE):
    return Tour(
        id=uuid4(),
        title="Test Tour",
        duration_days=1,
        price_per_person=Decimal(price),
        max_group_size=max_group_size,
        status=status,
        itinerary=[{"day": 1, "title": "Day 1", "description": ""}],
    )


def make_availability(available=5, total=5, start=TODAY + timedelta(days=10)):
    return TourAvailability(
        id=uuid4(),
        tour_id=uuid4(),
        start_date=start,
        end_date=start,
        total_slots=total,
        available_slots=available,
    )


class TestRoles:
    def test_role_ordering(self):
        assert UserRole.CUSTOMER.rank < UserRole.STAFF.rank < UserRole.ADMIN.rank
        assert UserRole.ADMIN.satisfies(UserRole.STAFF)
        assert not UserRole.CUSTOMER.satisfies(UserRole.STAFF)

    @pytest.mark.parametrize("role", [UserRole.STAFF, UserRole.ADMIN])
    def test_staff_and_above_pass(self, role):
        validate_user_role(Principal(user_id="x", role=role), UserRole.STAFF)

    def test_customer_below_staff_is_denied(self):
        with pytest.raises(PermissionDeniedError) as exc_info:
            validate_user_role(CUSTOMER, UserRole.STAFF)

        assert exc_info.value.status_code == 403
        assert exc_info.value.problem_details["required_role"] == "STAFF"
        assert "Required role: STAFF" in str(exc_info.value)

    def test_admin_access_rejects_staff(self):
        with pytest.raises(PermissionDeniedError):
            validate_admin_access(Principal(user_id="s", role=UserRole.STAFF))

        validate_admin_access(Principal(user_id="a", role=UserRole.ADMIN))

    def test_permission_denied_is_business_rule_violation(self):
        with pytest.raises(BusinessRuleViolationError):
            validate_user_role(CUSTOMER, UserRole.ADMIN)


class TestPricing:
    def test_valid_pricing(self):
        validate_pricing(Decimal("100"), 10)
        validate_pricing(Decimal("100000"), 10)

    @pytest.mark.parametrize(
        "price,group,message",
        [
            (Decimal("0"), 10, "greater than 0"),
            (Decimal("-5"), 10, "greater than 0"),
            (Decimal("100000.01"), 1, "cannot exceed 100,000"),
            (Decimal("10"), 0, "at least 1"),
            (Decimal("10"), 101, "cannot exceed 100"),
            (Decimal("20000"), 51, "1,000,000"),
        ],
    )
    def test_invalid_pricing(self, price, group, message):
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            validate_pricing(price, group)

        assert message in str(exc_info.value)
        assert exc_info.value.problem_details["rule"] == "pricing"

    def test_revenue_boundary_is_inclusive(self):
        validate_pricing(Decimal("10000"), 100)


class TestAvailabilityRule:
    def test_bookable(self):
        validate_availability(make_tour(), make_availability(), 3, today=TODAY)

    def test_inactive_tour(self):
        with pytest.raises(BusinessRuleViolationError, match="inactive"):
            validate_availability(make_tour(status=TourStatus.INACTIVE), make_availability(), 1, today=TODAY)

    def test_insufficient_slots_is_capacity_exceeded(self):
        with pytest.raises(CapacityExceededError) as exc_info:
            validate_availability(make_tour(), make_availability(available=2), 3, today=TODAY)

        assert exc_info.value.status_code == 409
        assert exc_info.value.problem_details["code"] == "CAPACITY_EXCEEDED"

    def test_exceeds_group_size(self):
        with pytest.raises(ValidationError, match="maximum group size"):
            validate_availability(make_tour(max_group_size=2), make_availability(), 3, today=TODAY)

    def test_already_started(self):
        availability = make_availability(start=TODAY - timedelta(days=1))
        with pytest.raises(BusinessRuleViolationError, match="already started"):
            validate_availability(make_tour(), availability, 1, today=TODAY)

    def test_starting_today_is_bookable(self):
        validate_availability(make_tour(), make_availability(start=TODAY), 1, today=TODAY)


class TestBookingRule:
    def test_matching_price(self):
        validate_booking(CUSTOMER, make_tour(), make_availability(), 2, Decimal("200.00"), today=TODAY)

    def test_price_within_tolerance(self):
        validate_booking(CUSTOMER, make_tour(), make_availability(), 2, Decimal("200.01"), today=TODAY)

    def test_price_mismatch(self):
        with pytest.raises(BusinessRuleViolationError, match="Price mismatch. Expected: 200.00, Provided: 150.00"):
            validate_booking(CUSTOMER, make_tour(), make_availability(), 2, Decimal("150"), today=TODAY)

    @pytest.mark.parametrize("count", [0, -1])
    def test_non_positive_travelers(self, count):
        with pytest.raises(ValidationError, match="at least 1"):
            validate_booking(CUSTOMER, make_tour(), make_availability(), count, Decimal("0"), today=TODAY)

    def test_float_price_accepted(self):
        validate_booking(CUSTOMER, make_tour(price="19.99"), make_availability(), 3, 59.97, today=TODAY)


class TestReviewRule:
    def test_valid_review(self):
        validate_review(CUSTOMER, 5, "Wonderful guides and views", True)

    def test_requires_completed_booking(self):
        with pytest.raises(BusinessRuleViolationError, match="completed bookings"):
            validate_review(CUSTOMER, 5, "Wonderful guides and views", False)

    @pytest.mark.parametrize("rating", [0, 6, 4.5, "5", True])
    def test_rating_must_be_integer_in_range(self, rating):
        with pytest.raises(ValidationError, match="Rating"):
            validate_review(CUSTOMER, rating, "Wonderful guides and views", True)

    def test_comment_required(self):
        with pytest.raises(ValidationError, match="required"):
            validate_review(CUSTOMER, 4, "   ", True)

    def test_comment_trimmed_length(self):
        with pytest.raises(ValidationError, match="at least 10"):
            validate_review(CUSTOMER, 4, "   short     ", True)

    def test_comment_too_long(self):
        with pytest.raises(ValidationError, match="cannot exceed 1000"):
            validate_review(CUSTOMER, 4, "x" * 1001, True)

    def test_comment_bounds_inclusive(self):
        validate_review(CUSTOMER, 1, "x" * 10, True)
        validate_review(CUSTOMER, 1, "x" * 1000, True)


class TestPaymentRule:
    def test_valid_payment(self):
        validate_payment(Decimal("250"), "usd", PaymentMethod.CARD, PaymentProvider.STRIPE)
        validate_payment(Decimal("250"), "NGN", "MOBILE_MONEY", "PAYSTACK")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1"), Decimal("1000000.01")])
    def test_amount_bounds(self, amount):
        with pytest.raises(ValidationError, match="amount"):
            validate_payment(amount, "USD", "CARD", "STRIPE")

    def test_unsupported_currency(self):
        with pytest.raises(ValidationError, match="Unsupported currency: JPY"):
            validate_payment(Decimal("10"), "JPY", "CARD", "STRIPE")

    def test_stripe_only_takes_cards(self):
        with pytest.raises(ValidationError, match="not supported by provider STRIPE"):
            validate_payment(Decimal("10"), "USD", PaymentMethod.MOBILE_MONEY, PaymentProvider.STRIPE)

    def test_unknown_provider(self):
        with pytest.raises(ValidationError, match="Unsupported payment provider"):
            validate_payment(Decimal("10"), "USD", "CARD", "PAYPAL")


class TestTourCreationRule:
    def test_valid_tour(self):
        validate_tour_creation(2, Decimal("100"), 10, [{"day": 2}, {"day": 1}])

    def test_itinerary_length_must_match_duration(self):
        with pytest.raises(ValidationError, match="exactly 3 days, but has 2"):
            validate_tour_creation(3, Decimal("100"), 10, [{"day": 1}, {"day": 2}])

    @pytest.mark.parametrize("duration", [0, 366])
    def test_duration_bounds(self, duration):
        with pytest.raises(ValidationError, match="duration"):
            validate_tour_creation(duration, Decimal("100"), 10, [])

    def test_pricing_checked_first(self):
        with pytest.raises(BusinessRuleViolationError):
            validate_tour_creation(1, Decimal("0"), 10, [{"day": 1}])

    @pytest.mark.parametrize(
        "itinerary",
        [
            [{"day": 0}],
            [{"day": 1}, {"day": 1}],
            [{"day": 1}, {"day": 3}],
            [{"day": "1"}],
        ],
    )
    def test_invalid_itinerary(self, itinerary):
        with pytest.raises(ValidationError):
            validate_itinerary(itinerary)


class TestAvailabilityCreationRule:
    def test_valid(self):
        validate_availability_creation(TODAY, TODAY + timedelta(days=2), 40, today=TODAY)

    def test_start_in_past(self):
        with pytest.raises(ValidationError, match="past"):
            validate_availability_creation(TODAY - timedelta(days=1), TODAY, 10, today=TODAY)

    def test_end_before_start(self):
        with pytest.raises(ValidationError, match="on or after"):
            validate_availability_creation(TODAY + timedelta(days=2), TODAY + timedelta(days=1), 10, today=TODAY)

    @pytest.mark.parametrize("slots", [-1, 1001])
    def test_slot_bounds(self, slots):
        with pytest.raises(ValidationError):
            validate_availability_creation(TODAY, TODAY, slots, today=TODAY)


class TestStatusTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (BookingStatus.PENDING, BookingStatus.PENDING),
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            (BookingStatus.PENDING, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        ],
    )
    def test_forward_moves(self, current, target):
        validate_status_transition("b1", current, target)

    @pytest.mark.parametrize("status", [BookingStatus.CONFIRMED, BookingStatus.CANCELLED])
    def test_reapplying_terminal_state(self, status):
        with pytest.raises(IdempotencyViolationError) as exc_info:
            validate_status_transition("b1", status, status)

        assert exc_info.value.problem_details["code"] == "IDEMPOTENCY_VIOLATION"

    @pytest.mark.parametrize(
        "current,target",
        [
            (BookingStatus.CONFIRMED, BookingStatus.PENDING),
            (BookingStatus.CANCELLED, BookingStatus.PENDING),
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
        ],
    )
    def test_backward_moves(self, current, target):
        with pytest.raises(BusinessRuleViolationError, match="Invalid booking status transition"):
            validate_status_transition("b1", current, target)

    def test_accepts_plain_strings(self):
        validate_status_transition("b1", "PENDING", "CONFIRMED")
