"""Booking lifecycle: creation, confirmation and cancellation."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import transaction
from ..core.exceptions import CapacityExceededError, ConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..core.principal import Principal, UserRole
from ..models.booking import Booking, BookingStatus
from ..schemas.booking import CreateBookingRequest
from ..validation.business_rules import validate_booking, validate_status_transition, validate_user_role
from .availability_service import AvailabilityService
from .tour_service import TourService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class BookingService:
    """
    Service for booking lifecycle operations.

    Bookings move PENDING -> CONFIRMED -> CANCELLED or PENDING -> CANCELLED.
    Slots are taken from the availability ledger only on confirmation and
    returned only when a confirmed booking is cancelled. Each confirm or
    cancel commits the status change and the ledger change together.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tour_service = TourService(db)
        self.availability_service = AvailabilityService(db)

    async def create_booking(
        self,
        principal: Principal,
        request: CreateBookingRequest,
        today: Optional[date] = None,
    ) -> Booking:
        """
        Create a PENDING booking for the caller.

        No slots are taken here; the booking only holds a claim until it is
        confirmed.

        Args:
            principal: Caller that will own the booking
            request: Booking creation request
            today: Reference date for the start-date rule

        Returns:
            Created booking entity

        Raises:
            NotFoundError: If the tour or availability does not exist
            ValidationError: If the availability belongs to another tour or the traveler count is out of range
            CapacityExceededError: If the availability cannot take the travelers
            BusinessRuleViolationError: If the tour is inactive, already started or the price does not match
        """
        tour = await self.tour_service.get_tour_by_id_or_raise(request.tour_id)
        availability = await self.availability_service.get_availability_by_id_or_raise(request.availability_id)

        if availability.tour_id != tour.id:
            raise ValidationError(
                "Availability does not belong to the requested tour",
                errors={"tour_id": str(tour.id), "availability_id": str(availability.id)},
            )

        if request.travelers_count >= 1 and not await self.availability_service.can_accommodate(
            availability.id, request.travelers_count
        ):
            metrics_collector.record_capacity_rejection("create")
            logger.warning(
                "Booking creation failed - insufficient capacity",
                extra={
                    "availability_id": str(availability.id),
                    "requested_slots": request.travelers_count,
                    "available_slots": availability.available_slots,
                    "user_id": principal.user_id,
                }
            )
            raise CapacityExceededError(
                availability_id=str(availability.id),
                requested_slots=request.travelers_count,
                available_slots=availability.available_slots,
            )

        expected_price = (Decimal(tour.price_per_person) * request.travelers_count).quantize(CENTS)
        provided_price = request.total_price if request.total_price is not None else expected_price

        validate_booking(
            principal,
            tour,
            availability,
            request.travelers_count,
            provided_price,
            today=today,
        )

        booking = Booking(
            user_id=principal.user_id,
            tour_id=tour.id,
            availability_id=availability.id,
            travelers_count=request.travelers_count,
            total_price=expected_price,
            status=BookingStatus.PENDING,
        )

        self.db.add(booking)
        await self.db.commit()
        await self.db.refresh(booking)

        metrics_collector.record_booking_created(str(tour.id))

        logger.info(
            "Booking created",
            extra={
                "booking_id": str(booking.id),
                "user_id": principal.user_id,
                "tour_id": str(tour.id),
                "availability_id": str(availability.id),
                "travelers_count": booking.travelers_count,
                "total_price": str(booking.total_price),
            }
        )

        return booking

    async def confirm_booking(self, booking_id: UUID, principal: Optional[Principal] = None) -> Booking:
        """
        Confirm a PENDING booking and take its slots from the ledger.

        Args:
            booking_id: Booking to confirm
            principal: Caller, must be staff when given; omitted for payment callbacks

        Returns:
            Confirmed booking entity

        Raises:
            NotFoundError: If booking not found
            PermissionDeniedError: If the caller is below STAFF
            IdempotencyViolationError: If the booking is already CONFIRMED
            BusinessRuleViolationError: If the booking is CANCELLED
            CapacityExceededError: If the availability no longer has enough slots;
                the booking stays PENDING and the ledger is unchanged
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if principal is not None:
            validate_user_role(principal, UserRole.STAFF)

        validate_status_transition(str(booking_id), booking.status, BookingStatus.CONFIRMED)

        availability_id = booking.availability_id
        travelers_count = booking.travelers_count

        async with transaction(self.db):
            await self._transition(booking_id, BookingStatus.PENDING, BookingStatus.CONFIRMED)
            remaining = await self.availability_service.reserve_slots(availability_id, travelers_count)

        booking = await self.get_booking_by_id_or_raise(booking_id)
        metrics_collector.record_booking_confirmed(str(booking.tour_id))

        logger.info(
            "Booking confirmed",
            extra={
                "booking_id": str(booking_id),
                "availability_id": str(availability_id),
                "reserved_slots": travelers_count,
                "remaining_slots": remaining,
            }
        )

        return booking

    async def cancel_booking(self, booking_id: UUID, principal: Optional[Principal] = None) -> Booking:
        """
        Cancel a PENDING or CONFIRMED booking.

        Slots are returned to the ledger only when the booking was CONFIRMED.

        Args:
            booking_id: Booking to cancel
            principal: Caller, must own the booking or be staff when given

        Returns:
            Cancelled booking entity

        Raises:
            NotFoundError: If booking not found
            PermissionDeniedError: If the caller neither owns the booking nor is staff
            IdempotencyViolationError: If the booking is already CANCELLED
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if principal is not None and not principal.owns(booking.user_id):
            validate_user_role(principal, UserRole.STAFF)

        previous = BookingStatus(booking.status)
        validate_status_transition(str(booking_id), previous, BookingStatus.CANCELLED)

        availability_id = booking.availability_id
        travelers_count = booking.travelers_count
        remaining = None

        async with transaction(self.db):
            await self._transition(booking_id, previous, BookingStatus.CANCELLED)
            if previous is BookingStatus.CONFIRMED:
                remaining = await self.availability_service.release_slots(availability_id, travelers_count)

        booking = await self.get_booking_by_id_or_raise(booking_id)
        metrics_collector.record_booking_cancelled(previous.value)

        logger.info(
            "Booking cancelled",
            extra={
                "booking_id": str(booking_id),
                "previous_status": previous.value,
                "released_slots": travelers_count if remaining is not None else 0,
                "remaining_slots": remaining,
            }
        )

        return booking

    async def update_booking_status(
        self,
        booking_id: UUID,
        target: BookingStatus,
        principal: Optional[Principal] = None,
    ) -> Booking:
        """
        Move a booking to ``target``, routing through confirm or cancel.

        Raises:
            NotFoundError: If booking not found
            PermissionDeniedError: If the caller is below STAFF
            IdempotencyViolationError: If ``target`` is the terminal state already held
            BusinessRuleViolationError: If the move goes backwards
            CapacityExceededError: If confirming and slots ran out
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if principal is not None:
            validate_user_role(principal, UserRole.STAFF)

        target = BookingStatus(target)
        validate_status_transition(str(booking_id), booking.status, target)

        if target is BookingStatus.CONFIRMED:
            return await self.confirm_booking(booking_id)
        if target is BookingStatus.CANCELLED:
            return await self.cancel_booking(booking_id)

        # PENDING -> PENDING touches the row only
        async with transaction(self.db):
            await self._transition(booking_id, BookingStatus.PENDING, BookingStatus.PENDING)

        return await self.get_booking_by_id_or_raise(booking_id)

    async def get_booking(self, booking_id: UUID, principal: Principal) -> Booking:
        """
        Get a booking visible to ``principal``.

        Raises:
            NotFoundError: If booking not found
            PermissionDeniedError: If the caller neither owns the booking nor is an administrator
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if not principal.owns(booking.user_id):
            validate_user_role(principal, UserRole.ADMIN)
        return booking

    async def get_user_bookings(self, user_id: str, principal: Optional[Principal] = None) -> list[Booking]:
        """Bookings owned by ``user_id``, newest first."""
        if principal is not None and not principal.owns(user_id):
            validate_user_role(principal, UserRole.ADMIN)

        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def has_confirmed_booking(self, user_id: str, tour_id: UUID) -> bool:
        """True if ``user_id`` holds a CONFIRMED booking on ``tour_id``."""
        stmt = select(Booking.id).where(
            Booking.user_id == user_id,
            Booking.tour_id == tour_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        """Get booking by ID, always reading the stored status."""
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking

    async def _transition(self, booking_id: UUID, expected: BookingStatus, target: BookingStatus) -> None:
        """
        Flip the stored status only if it still equals ``expected``.

        A concurrent writer that got there first makes the UPDATE match no
        rows; the fresh status then decides which error is raised.
        """
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected.value)
            .values(status=target.value)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 1:
            return

        current = await self.get_booking_by_id_or_raise(booking_id)
        validate_status_transition(str(booking_id), current.status, target)
        raise ConflictError(
            detail=f"Booking {booking_id} changed while it was being updated",
            conflicting_resource={"booking_id": str(booking_id), "status": BookingStatus(current.status).value},
        )
