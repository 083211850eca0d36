"""Booking-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus


class CreateBookingRequest(BaseModel):
    """Request schema for creating a booking."""

    tour_id: UUID = Field(..., description="Tour being booked")
    availability_id: UUID = Field(..., description="Dated availability being booked")
    travelers_count: int = Field(..., description="Number of travelers")
    total_price: Optional[Decimal] = Field(
        None,
        description="Client-computed total; must equal price_per_person x travelers_count when given"
    )


class BookingIdRequest(BaseModel):
    """Request schema for get, confirm and cancel operations."""

    booking_id: UUID = Field(..., description="Booking to act on")


class UpdateBookingStatusRequest(BaseModel):
    """Request schema for a direct status change."""

    booking_id: UUID = Field(..., description="Booking to act on")
    status: BookingStatus = Field(..., description="Target status")


class BookingHistoryRequest(BaseModel):
    """Request schema for listing a user's bookings."""

    user_id: Optional[str] = Field(None, max_length=128, description="Defaults to the caller")


class Booking(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique booking ID")
    user_id: str = Field(..., description="Owning user")
    tour_id: str = Field(..., description="Associated tour ID")
    availability_id: str = Field(..., description="Associated availability ID")
    travelers_count: int = Field(..., ge=1, description="Number of travelers")
    total_price: Decimal = Field(..., description="Total price")
    status: BookingStatus = Field(..., description="Booking status")
    created_at: Optional[datetime] = Field(None, description="Booking creation time (ISO 8601)")


class BookingList(BaseModel):
    """Response schema for booking history."""

    items: List[Booking] = Field(default_factory=list, description="Bookings, newest first")
