"""Review-related Pydantic schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CreateReviewRequest(BaseModel):
    """Request schema for reviewing a tour."""

    tour_id: UUID = Field(..., description="Tour being reviewed")
    rating: int = Field(..., description="Rating from 1 to 5")
    comment: str = Field(..., description="Review text")


class ListReviewsRequest(BaseModel):
    """Request schema for listing reviews of a tour."""

    tour_id: UUID = Field(..., description="Tour whose reviews to list")
    include_unapproved: bool = Field(False, description="Staff only: include unmoderated reviews")


class Review(BaseModel):
    """Review response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique review ID")
    user_id: str = Field(..., description="Author")
    tour_id: str = Field(..., description="Reviewed tour")
    rating: int = Field(..., ge=1, le=5, description="Rating")
    comment: str = Field(..., description="Review text")
    approved: bool = Field(..., description="Moderation flag")
    created_at: Optional[datetime] = Field(None, description="Creation time (ISO 8601)")


class ReviewList(BaseModel):
    """Response schema for review listings."""

    items: List[Review] = Field(default_factory=list)
