"""Tour model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Integer, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .availability import TourAvailability


class TourStatus(str, Enum):
    """Tour lifecycle status."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Tour(Base):
    """Tour entity representing a bookable product."""

    __tablename__ = "tours"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Tour information
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing and group limits
    price_per_person: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_group_size: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[TourStatus] = mapped_column(
        String(20),
        nullable=False,
        default=TourStatus.ACTIVE,
        index=True
    )

    # Ordered list of {"day", "title", "description"} entries
    itinerary: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
        onupdate=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("price_per_person > 0", name="ck_tour_price_positive"),
        CheckConstraint("price_per_person <= 100000", name="ck_tour_price_max"),
        CheckConstraint("max_group_size >= 1", name="ck_tour_group_size_min"),
        CheckConstraint("max_group_size <= 100", name="ck_tour_group_size_max"),
        CheckConstraint("duration_days >= 1", name="ck_tour_duration_positive"),
    )

    # Relationships
    availabilities: Mapped[list["TourAvailability"]] = relationship(
        "TourAvailability",
        back_populates="tour",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<Tour(id={self.id}, title='{self.title}', "
            f"price_per_person={self.price_per_person}, max_group_size={self.max_group_size})>"
        )
