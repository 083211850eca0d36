"""Booking notifications emitted as structured events."""

from ..core.observability import get_logger
from ..models.booking import Booking, BookingStatus


class NotificationService:
    """
    Announces booking lifecycle changes.

    Delivery (email, SMS) happens downstream; this service only emits the
    structured events a delivery worker consumes.
    """

    def __init__(self):
        self.logger = get_logger(__name__)

    def _booking_logger(self, booking: Booking):
        return self.logger.with_context(
            booking_id=str(booking.id),
            user_id=booking.user_id,
            tour_id=str(booking.tour_id),
        )

    async def booking_created(self, booking: Booking) -> None:
        self._booking_logger(booking).info(
            "notification.booking_created",
            travelers_count=booking.travelers_count,
            total_price=str(booking.total_price),
        )

    async def booking_confirmed(self, booking: Booking) -> None:
        self._booking_logger(booking).info(
            "notification.booking_confirmed",
            travelers_count=booking.travelers_count,
            availability_id=str(booking.availability_id),
        )

    async def booking_cancelled(self, booking: Booking) -> None:
        self._booking_logger(booking).info(
            "notification.booking_cancelled",
            status=BookingStatus(booking.status).value,
        )

    async def status_changed(self, booking: Booking) -> None:
        """Dispatch on the booking's current status."""
        status = BookingStatus(booking.status)
        if status is BookingStatus.CONFIRMED:
            await self.booking_confirmed(booking)
        elif status is BookingStatus.CANCELLED:
            await self.booking_cancelled(booking)
