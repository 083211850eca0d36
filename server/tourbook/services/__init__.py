"""Service layer package."""

from .availability_service import AvailabilityService
from .booking_service import BookingService
from .notification_service import NotificationService
from .payment_service import AppliedOutcome, PaymentService
from .review_service import ReviewService
from .tour_service import TourService

__all__ = [
    "AppliedOutcome",
    "AvailabilityService",
    "BookingService",
    "NotificationService",
    "PaymentService",
    "ReviewService",
    "TourService",
]
