"""Availability ledger: slot counters for dated tour instances."""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import CapacityExceededError, ConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..core.principal import Principal
from ..models.availability import TourAvailability
from ..schemas.availability import AvailabilityInfo, CreateAvailabilityRequest
from ..validation.business_rules import validate_admin_access, validate_availability_creation
from .tour_service import TourService

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service for availability reads and ledger mutations.

    ``reserve_slots`` and ``release_slots`` are single conditional UPDATE
    statements: the capacity check and the counter change happen in the same
    statement, so concurrent callers can never drive ``available_slots``
    below zero or above ``total_slots``. Neither method commits; the caller
    owns the transaction that also changes the booking.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tour_service = TourService(db)

    async def create_availability(
        self,
        principal: Principal,
        request: CreateAvailabilityRequest,
        today: Optional[date] = None,
    ) -> TourAvailability:
        """
        Open a dated availability on a tour with every slot free.

        Args:
            principal: Caller, must be an administrator
            request: Availability creation request
            today: Reference date for the start-date check

        Returns:
            Created availability entity

        Raises:
            PermissionDeniedError: If the caller is not an administrator
            NotFoundError: If the tour does not exist
            ValidationError: If dates or slot count are invalid
        """
        validate_admin_access(principal)
        await self.tour_service.get_tour_by_id_or_raise(request.tour_id)
        validate_availability_creation(
            request.start_date,
            request.end_date,
            request.total_slots,
            today=today,
        )

        availability = TourAvailability(
            tour_id=request.tour_id,
            start_date=request.start_date,
            end_date=request.end_date,
            total_slots=request.total_slots,
            available_slots=request.total_slots,
        )

        self.db.add(availability)
        await self.db.commit()
        await self.db.refresh(availability)

        logger.info(
            "Availability created successfully",
            extra={
                "availability_id": str(availability.id),
                "tour_id": str(availability.tour_id),
                "start_date": availability.start_date.isoformat(),
                "total_slots": availability.total_slots,
                "created_by": principal.user_id,
            }
        )

        return availability

    async def check_availability(
        self,
        tour_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[AvailabilityInfo]:
        """
        List the availabilities of a tour that still have free slots.

        Args:
            tour_id: Tour to inspect
            start_date: Only include availabilities starting on or after this date
            end_date: Only include availabilities ending on or before this date

        Returns:
            Availability projections ordered by start date

        Raises:
            NotFoundError: If the tour does not exist
        """
        tour = await self.tour_service.get_tour_by_id_or_raise(tour_id)

        stmt = select(TourAvailability).where(
            TourAvailability.tour_id == tour_id,
            TourAvailability.available_slots > 0,
        )
        if start_date is not None:
            stmt = stmt.where(TourAvailability.start_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(TourAvailability.end_date <= end_date)
        stmt = stmt.order_by(TourAvailability.start_date.asc()).execution_options(populate_existing=True)

        result = await self.db.execute(stmt)

        return [
            AvailabilityInfo(
                availability_id=str(availability.id),
                start_date=availability.start_date,
                end_date=availability.end_date,
                available_slots=availability.available_slots,
                max_group_size=tour.max_group_size,
                can_book=availability.available_slots > 0,
            )
            for availability in result.scalars()
        ]

    async def can_accommodate(self, availability_id: UUID, travelers_count: int) -> bool:
        """Return True if the availability exists and has at least ``travelers_count`` free slots."""
        availability = await self.get_availability_by_id(availability_id)
        if availability is None:
            return False
        return travelers_count <= availability.available_slots

    async def reserve_slots(self, availability_id: UUID, travelers_count: int) -> int:
        """
        Take ``travelers_count`` slots from the ledger.

        Args:
            availability_id: Availability to decrement
            travelers_count: Number of slots to take

        Returns:
            Slots left after the reservation

        Raises:
            ValidationError: If ``travelers_count`` is not positive
            NotFoundError: If the availability does not exist
            CapacityExceededError: If fewer slots remain than requested
        """
        if travelers_count < 1:
            raise ValidationError(
                "Number of slots to reserve must be at least 1",
                errors={"travelers_count": travelers_count},
            )

        stmt = (
            update(TourAvailability)
            .where(
                TourAvailability.id == availability_id,
                TourAvailability.available_slots >= travelers_count,
            )
            .values(available_slots=TourAvailability.available_slots - travelers_count)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            availability = await self.get_availability_by_id_or_raise(availability_id)
            metrics_collector.record_capacity_rejection("reserve")
            logger.warning(
                "Slot reservation failed - insufficient capacity",
                extra={
                    "availability_id": str(availability_id),
                    "requested_slots": travelers_count,
                    "available_slots": availability.available_slots,
                }
            )
            raise CapacityExceededError(
                availability_id=str(availability_id),
                requested_slots=travelers_count,
                available_slots=availability.available_slots,
            )

        remaining = await self._current_slots(availability_id)
        metrics_collector.record_slots_reserved(str(availability_id), travelers_count, remaining)

        logger.info(
            "Slots reserved",
            extra={
                "availability_id": str(availability_id),
                "reserved_slots": travelers_count,
                "remaining_slots": remaining,
            }
        )

        return remaining

    async def release_slots(self, availability_id: UUID, travelers_count: int) -> int:
        """
        Return ``travelers_count`` slots to the ledger.

        The increment is refused when it would push ``available_slots`` past
        ``total_slots``.

        Returns:
            Slots free after the release

        Raises:
            ValidationError: If ``travelers_count`` is not positive
            NotFoundError: If the availability does not exist
            ConflictError: If the release would exceed the original allocation
        """
        if travelers_count < 1:
            raise ValidationError(
                "Number of slots to release must be at least 1",
                errors={"travelers_count": travelers_count},
            )

        stmt = (
            update(TourAvailability)
            .where(
                TourAvailability.id == availability_id,
                TourAvailability.available_slots + travelers_count <= TourAvailability.total_slots,
            )
            .values(available_slots=TourAvailability.available_slots + travelers_count)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        if result.rowcount == 0:
            availability = await self.get_availability_by_id_or_raise(availability_id)
            logger.error(
                "Slot release refused - ledger would exceed total allocation",
                extra={
                    "availability_id": str(availability_id),
                    "released_slots": travelers_count,
                    "available_slots": availability.available_slots,
                    "total_slots": availability.total_slots,
                }
            )
            raise ConflictError(
                detail=(
                    f"Releasing {travelers_count} slots would exceed the total of "
                    f"{availability.total_slots} for availability {availability_id}"
                ),
                conflicting_resource={
                    "availability_id": str(availability_id),
                    "available_slots": availability.available_slots,
                    "total_slots": availability.total_slots,
                },
            )

        remaining = await self._current_slots(availability_id)
        metrics_collector.record_slots_released(str(availability_id), travelers_count, remaining)

        logger.info(
            "Slots released",
            extra={
                "availability_id": str(availability_id),
                "released_slots": travelers_count,
                "remaining_slots": remaining,
            }
        )

        return remaining

    async def get_upcoming_availabilities(
        self,
        tour_id: UUID,
        limit: int = 10,
        today: Optional[date] = None,
    ) -> list[TourAvailability]:
        """Availabilities of a tour starting today or later, soonest first."""
        today = today or date.today()
        stmt = (
            select(TourAvailability)
            .where(
                TourAvailability.tour_id == tour_id,
                TourAvailability.start_date >= today,
            )
            .order_by(TourAvailability.start_date.asc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_availability_by_id(self, availability_id: UUID) -> TourAvailability | None:
        """Get availability by ID, always reading the stored slot counters."""
        stmt = (
            select(TourAvailability)
            .where(TourAvailability.id == availability_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_availability_by_id_or_raise(self, availability_id: UUID) -> TourAvailability:
        """Get availability by ID or raise NotFoundError."""
        availability = await self.get_availability_by_id(availability_id)
        if not availability:
            logger.warning(
                "Availability not found",
                extra={"availability_id": str(availability_id)}
            )
            raise NotFoundError(
                resource_type="availability",
                resource_id=str(availability_id)
            )
        return availability

    async def _current_slots(self, availability_id: UUID) -> int:
        stmt = select(TourAvailability.available_slots).where(TourAvailability.id == availability_id)
        result = await self.db.execute(stmt)
        return result.scalar_one()
