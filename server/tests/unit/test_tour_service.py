"""Unit tests for tour service."""

from decimal import Decimal
from uuid import uuid4

import pytest

from tourbook.core.exceptions import (
    BusinessRuleViolationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from tourbook.models import PaymentMethod, PaymentProvider, TourStatus
from tourbook.schemas.booking import CreateBookingRequest
from tourbook.schemas.payment import InitializePaymentRequest
from tourbook.schemas.tour import CreateTourRequest
from tourbook.services.availability_service import AvailabilityService
from tourbook.services.booking_service import BookingService
from tourbook.services.payment_service import PaymentService
from tourbook.services.tour_service import TourService


class TestTourService:
    """Test tour service operations."""

    @pytest.mark.asyncio
    async def test_create_tour_success(self, test_session, admin, sample_tour_data):
        """Test successful tour creation."""
        tour_service = TourService(test_session)
        request = CreateTourRequest(**sample_tour_data)

        tour = await tour_service.create_tour(admin, request)

        assert tour.id is not None
        assert tour.title == "Northern Lights Adventure"
        assert tour.price_per_person == Decimal("299.99")
        assert tour.max_group_size == 12
        assert TourStatus(tour.status) is TourStatus.ACTIVE
        assert [day["day"] for day in tour.itinerary] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_create_tour_sorts_itinerary(self, test_session, admin, sample_tour_data):
        sample_tour_data["itinerary"] = list(reversed(sample_tour_data["itinerary"]))

        tour = await TourService(test_session).create_tour(admin, CreateTourRequest(**sample_tour_data))

        assert [day["title"] for day in tour.itinerary] == ["Arrival", "Golden Circle", "Blue Lagoon"]

    @pytest.mark.asyncio
    async def test_create_tour_requires_admin(self, test_session, staff, sample_tour_data):
        with pytest.raises(PermissionDeniedError):
            await TourService(test_session).create_tour(staff, CreateTourRequest(**sample_tour_data))

    @pytest.mark.asyncio
    async def test_create_tour_pricing_rule(self, test_session, admin, sample_tour_data):
        sample_tour_data["price_per_person"] = "100000.50"

        with pytest.raises(BusinessRuleViolationError, match="cannot exceed 100,000"):
            await TourService(test_session).create_tour(admin, CreateTourRequest(**sample_tour_data))

    @pytest.mark.asyncio
    async def test_create_tour_itinerary_mismatch(self, test_session, admin, sample_tour_data):
        sample_tour_data["duration_days"] = 5

        with pytest.raises(ValidationError, match="exactly 5 days"):
            await TourService(test_session).create_tour(admin, CreateTourRequest(**sample_tour_data))

    @pytest.mark.asyncio
    async def test_get_tour_by_id(self, test_session, tour_factory):
        """Test getting tour by ID."""
        tour = await tour_factory()
        tour_service = TourService(test_session)

        found = await tour_service.get_tour_by_id(tour.id)

        assert found is not None
        assert found.id == tour.id
        assert await tour_service.get_tour_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_tour_by_id_or_raise_not_found(self, test_session):
        """Test getting tour by ID raises NotFoundError when not found."""
        with pytest.raises(NotFoundError) as exc_info:
            await TourService(test_session).get_tour_by_id_or_raise(uuid4())

        assert exc_info.value.status_code == 404


class TestDeleteTour:
    """Test tour deletion."""

    @pytest.mark.asyncio
    async def test_delete_tour_with_pending_bookings(
        self, test_session, tour_factory, availability_factory, admin, customer
    ):
        tour = await tour_factory()
        availability = await availability_factory(tour)
        tour_id, availability_id = tour.id, availability.id
        await BookingService(test_session).create_booking(
            customer,
            CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=1),
        )

        await TourService(test_session).delete_tour(admin, tour_id)

        assert await TourService(test_session).get_tour_by_id(tour_id) is None
        assert await AvailabilityService(test_session).get_availability_by_id(availability_id) is None
        assert await BookingService(test_session).get_user_bookings(customer.user_id) == []

    @pytest.mark.asyncio
    async def test_delete_tour_with_confirmed_bookings(
        self, test_session, tour_factory, availability_factory, admin, customer, staff
    ):
        tour = await tour_factory()
        availability = await availability_factory(tour)
        tour_id, availability_id = tour.id, availability.id
        booking_service = BookingService(test_session)
        confirmed = await booking_service.create_booking(
            customer,
            CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=1),
        )
        pending = await booking_service.create_booking(
            customer,
            CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=1),
        )
        pending_id = pending.id
        payment = await PaymentService(test_session).initialize_payment(
            customer,
            InitializePaymentRequest(
                booking_id=pending_id,
                currency="USD",
                method=PaymentMethod.CARD,
                provider=PaymentProvider.STRIPE,
            ),
        )
        payment_id = payment.id
        await booking_service.confirm_booking(confirmed.id, staff)

        with pytest.raises(ConflictError, match="confirmed bookings"):
            await TourService(test_session).delete_tour(admin, tour_id)

        # The blocked deletion rolls back the unconfirmed rows it removed
        assert await TourService(test_session).count_confirmed_bookings(tour_id) == 1
        assert await TourService(test_session).get_tour_by_id(tour_id) is not None
        assert await AvailabilityService(test_session).get_availability_by_id(availability_id) is not None
        assert await booking_service.get_booking_by_id(pending_id) is not None
        assert await PaymentService(test_session).get_payment_by_id(payment_id) is not None

    @pytest.mark.asyncio
    async def test_delete_tour_after_confirmation_from_another_session(
        self, session_factory, tour_factory, availability_factory, admin, customer, staff
    ):
        tour = await tour_factory()
        availability = await availability_factory(tour)
        tour_id, availability_id = tour.id, availability.id

        async with session_factory() as admin_session, session_factory() as staff_session:
            # Admin has the tour loaded before the booking is confirmed elsewhere
            assert await TourService(admin_session).get_tour_by_id(tour_id) is not None

            booking_service = BookingService(staff_session)
            booking = await booking_service.create_booking(
                customer,
                CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=1),
            )
            await booking_service.confirm_booking(booking.id, staff)

            with pytest.raises(ConflictError):
                await TourService(admin_session).delete_tour(admin, tour_id)

        async with session_factory() as session:
            assert await TourService(session).count_confirmed_bookings(tour_id) == 1

    @pytest.mark.asyncio
    async def test_delete_tour_requires_admin(self, test_session, tour_factory, staff):
        tour = await tour_factory()

        with pytest.raises(PermissionDeniedError):
            await TourService(test_session).delete_tour(staff, tour.id)

    @pytest.mark.asyncio
    async def test_delete_unknown_tour(self, test_session, admin):
        with pytest.raises(NotFoundError):
            await TourService(test_session).delete_tour(admin, uuid4())
