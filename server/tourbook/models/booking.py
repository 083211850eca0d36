"""Booking model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class BookingStatus(str, Enum):
    """Booking lifecycle status."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(Base):
    """A customer's claim against one tour availability."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Principal that owns the booking, issued by the auth collaborator
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    tour_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    availability_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tour_availabilities.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Booking details
    travelers_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True
    )

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
        CheckConstraint("travelers_count > 0", name="ck_booking_travelers_positive"),
        CheckConstraint("total_price > 0", name="ck_booking_total_price_positive"),
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED')",
            name="ck_booking_status_valid"
        ),
        CheckConstraint("length(user_id) > 0", name="ck_booking_user_id_not_empty"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, availability_id={self.availability_id}, "
            f"travelers_count={self.travelers_count}, status={self.status})>"
        )
