"""Tour service for catalogue operations."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import transaction
from ..core.exceptions import ConflictError, NotFoundError
from ..core.principal import Principal
from ..models.availability import TourAvailability
from ..models.booking import Booking, BookingStatus
from ..models.payment import Payment
from ..models.review import Review
from ..models.tour import Tour, TourStatus
from ..schemas.tour import CreateTourRequest
from ..validation.business_rules import validate_admin_access, validate_tour_creation

logger = logging.getLogger(__name__)


class TourService:
    """Service for tour-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_tour(self, principal: Principal, request: CreateTourRequest) -> Tour:
        """
        Create a new tour.

        Args:
            principal: Caller, must be an administrator
            request: Tour creation request

        Returns:
            Created tour entity

        Raises:
            PermissionDeniedError: If the caller is not an administrator
            BusinessRuleViolationError: If the pricing rule fails
            ValidationError: If duration or itinerary are malformed
            ConflictError: If a database constraint rejects the row
        """
        validate_admin_access(principal)

        itinerary = [day.model_dump() for day in request.itinerary]
        validate_tour_creation(
            duration_days=request.duration_days,
            price_per_person=request.price_per_person,
            max_group_size=request.max_group_size,
            itinerary=itinerary,
        )

        tour = Tour(
            title=request.title,
            description=request.description,
            duration_days=request.duration_days,
            price_per_person=request.price_per_person,
            max_group_size=request.max_group_size,
            status=TourStatus.ACTIVE,
            itinerary=sorted(itinerary, key=lambda day: day["day"]),
        )

        try:
            self.db.add(tour)
            await self.db.commit()
            await self.db.refresh(tour)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Tour creation failed due to integrity constraint",
                extra={
                    "title": request.title,
                    "error": str(e)
                }
            )
            raise ConflictError(detail="Tour creation failed due to constraint violation") from e

        logger.info(
            "Tour created successfully",
            extra={
                "tour_id": str(tour.id),
                "title": tour.title,
                "price_per_person": str(tour.price_per_person),
                "created_by": principal.user_id,
            }
        )

        return tour

    async def delete_tour(self, principal: Principal, tour_id: UUID) -> None:
        """
        Delete a tour and its availabilities.

        Only unconfirmed bookings are deleted; the confirmed count is taken
        afterwards in the same transaction, so a booking confirmed while the
        deletion runs survives and blocks it.

        Raises:
            PermissionDeniedError: If the caller is not an administrator
            NotFoundError: If tour not found
            ConflictError: If confirmed bookings still reference the tour
        """
        validate_admin_access(principal)
        tour = await self.get_tour_by_id_or_raise(tour_id)

        unconfirmed = select(Booking.id).where(
            Booking.tour_id == tour_id,
            Booking.status != BookingStatus.CONFIRMED.value,
        )
        async with transaction(self.db):
            await self.db.execute(delete(Payment).where(Payment.booking_id.in_(unconfirmed)))
            await self.db.execute(
                delete(Booking)
                .where(Booking.tour_id == tour_id, Booking.status != BookingStatus.CONFIRMED.value)
                .execution_options(synchronize_session=False)
            )

            confirmed = await self.count_confirmed_bookings(tour_id)
            if confirmed:
                logger.warning(
                    "Tour deletion blocked by confirmed bookings",
                    extra={"tour_id": str(tour_id), "confirmed_bookings": confirmed}
                )
                raise ConflictError(
                    detail="Cannot delete tour with confirmed bookings",
                    conflicting_resource={"tour_id": str(tour_id), "confirmed_bookings": confirmed},
                )

            await self.db.execute(delete(Review).where(Review.tour_id == tour_id))
            await self.db.execute(delete(TourAvailability).where(TourAvailability.tour_id == tour_id))
            await self.db.execute(delete(Tour).where(Tour.id == tour.id))

        logger.info(
            "Tour deleted",
            extra={"tour_id": str(tour_id), "deleted_by": principal.user_id}
        )

    async def count_confirmed_bookings(self, tour_id: UUID) -> int:
        stmt = select(func.count(Booking.id)).where(
            Booking.tour_id == tour_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def get_tour_by_id(self, tour_id: UUID) -> Optional[Tour]:
        """
        Get tour by ID.

        Args:
            tour_id: Tour ID to search for

        Returns:
            Tour if found, None otherwise
        """
        stmt = select(Tour).where(Tour.id == tour_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tour_by_id_or_raise(self, tour_id: UUID) -> Tour:
        """
        Get tour by ID or raise NotFoundError.

        Raises:
            NotFoundError: If tour not found
        """
        tour = await self.get_tour_by_id(tour_id)
        if not tour:
            logger.warning(
                "Tour not found",
                extra={"tour_id": str(tour_id)}
            )
            raise NotFoundError(
                resource_type="tour",
                resource_id=str(tour_id)
            )
        return tour
