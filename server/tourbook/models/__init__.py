"""Models module exporting all database models."""

from .availability import TourAvailability
from .booking import Booking, BookingStatus
from .payment import Payment, PaymentMethod, PaymentProvider, PaymentStatus
from .review import Review
from .tour import Tour, TourStatus

__all__ = [
    # Catalogue entities
    "Tour",
    "TourStatus",
    "TourAvailability",

    # Booking entities
    "Booking",
    "BookingStatus",

    # Payment entities
    "Payment",
    "PaymentMethod",
    "PaymentProvider",
    "PaymentStatus",

    # Feedback
    "Review",
]
