"""Tour availability model definition."""

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .tour import Tour


class TourAvailability(Base):
    """A dated instance of a tour with a finite slot counter."""

    __tablename__ = "tour_availabilities"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Foreign key to tour
    tour_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Date range
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Slot ledger: total_slots is the original allocation
    total_slots: Mapped[int] = mapped_column(Integer, nullable=False)
    available_slots: Mapped[int] = mapped_column(Integer, nullable=False)

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
        CheckConstraint("total_slots >= 0", name="ck_availability_total_non_negative"),
        CheckConstraint("total_slots <= 1000", name="ck_availability_total_max"),
        CheckConstraint("available_slots >= 0", name="ck_availability_available_non_negative"),
        CheckConstraint("available_slots <= total_slots", name="ck_availability_available_lte_total"),
        CheckConstraint("end_date >= start_date", name="ck_availability_date_range"),
    )

    # Relationships
    tour: Mapped["Tour"] = relationship("Tour", back_populates="availabilities")

    def __repr__(self) -> str:
        return (
            f"<TourAvailability(id={self.id}, tour_id={self.tour_id}, "
            f"dates={self.start_date}..{self.end_date}, "
            f"slots={self.available_slots}/{self.total_slots})>"
        )
