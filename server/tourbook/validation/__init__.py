"""Stateless business rule checks."""

from .business_rules import (
    PROVIDER_METHODS,
    SUPPORTED_CURRENCIES,
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

__all__ = [
    "PROVIDER_METHODS",
    "SUPPORTED_CURRENCIES",
    "validate_admin_access",
    "validate_availability",
    "validate_availability_creation",
    "validate_booking",
    "validate_itinerary",
    "validate_payment",
    "validate_pricing",
    "validate_review",
    "validate_status_transition",
    "validate_tour_creation",
    "validate_user_role",
]
