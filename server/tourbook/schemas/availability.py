"""Availability-related Pydantic schemas."""

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CreateAvailabilityRequest(BaseModel):
    """Request schema for opening a dated availability on a tour."""

    tour_id: UUID = Field(..., description="Tour the availability belongs to")
    start_date: date = Field(..., description="First day of the tour instance")
    end_date: date = Field(..., description="Last day of the tour instance")
    total_slots: int = Field(..., description="Slots allocated to this instance")


class CheckAvailabilityRequest(BaseModel):
    """Request schema for listing bookable availabilities of a tour."""

    tour_id: UUID = Field(..., description="Tour to inspect")
    start_date: Optional[date] = Field(None, description="Only availabilities starting on or after")
    end_date: Optional[date] = Field(None, description="Only availabilities ending on or before")


class Availability(BaseModel):
    """Availability response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique availability ID")
    tour_id: str = Field(..., description="Associated tour ID")
    start_date: date = Field(..., description="Start date")
    end_date: date = Field(..., description="End date")
    total_slots: int = Field(..., ge=0, description="Original slot allocation")
    available_slots: int = Field(..., ge=0, description="Slots still free")


class AvailabilityInfo(BaseModel):
    """Read-only projection returned by an availability check."""

    availability_id: str = Field(..., description="Availability ID")
    start_date: date = Field(..., description="Start date")
    end_date: date = Field(..., description="End date")
    available_slots: int = Field(..., ge=0, description="Slots still free")
    max_group_size: int = Field(..., ge=1, description="Tour's largest party per booking")
    can_book: bool = Field(..., description="True while any slot is free")


class AvailabilityList(BaseModel):
    """Response schema for availability checks."""

    items: list[AvailabilityInfo] = Field(default_factory=list, description="Bookable availabilities")


class UpcomingAvailabilitiesRequest(BaseModel):
    """Request schema for a tour's upcoming availabilities, full ones included."""

    tour_id: UUID = Field(..., description="Tour to inspect")
    limit: int = Field(10, ge=1, le=100, description="Maximum number of availabilities")


class UpcomingAvailabilityList(BaseModel):
    """Response schema for upcoming availabilities."""

    items: list[Availability] = Field(default_factory=list, description="Availabilities, soonest first")
