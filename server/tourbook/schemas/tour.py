"""Tour-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.tour import TourStatus


class ItineraryDay(BaseModel):
    """One day of a tour itinerary."""

    day: int = Field(..., description="Day number, starting at 1")
    title: str = Field(..., min_length=1, max_length=255, description="Day title")
    description: str = Field("", max_length=2000, description="What happens that day")


class CreateTourRequest(BaseModel):
    """Request schema for creating a tour."""

    title: str = Field(..., min_length=1, max_length=255, description="Tour title")
    description: Optional[str] = Field(None, max_length=5000, description="Tour description")
    duration_days: int = Field(..., description="Tour length in days")
    price_per_person: Decimal = Field(..., description="Price per traveler")
    max_group_size: int = Field(..., description="Largest party a single booking may hold")
    itinerary: List[ItineraryDay] = Field(default_factory=list, description="Day-by-day plan")


class GetTourRequest(BaseModel):
    """Request schema for fetching or deleting a tour."""

    tour_id: UUID = Field(..., description="Tour to retrieve")


class Tour(BaseModel):
    """Tour response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique tour ID")
    title: str = Field(..., description="Tour title")
    description: Optional[str] = Field(None, description="Tour description")
    duration_days: int = Field(..., description="Tour length in days")
    price_per_person: Decimal = Field(..., description="Price per traveler")
    max_group_size: int = Field(..., description="Largest party per booking")
    status: TourStatus = Field(..., description="Tour status")
    itinerary: List[ItineraryDay] = Field(default_factory=list, description="Day-by-day plan")
    created_at: Optional[datetime] = Field(None, description="Creation time (ISO 8601)")
