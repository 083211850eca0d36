"""Review service."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, PermissionDeniedError
from ..core.principal import Principal, UserRole
from ..models.review import Review
from ..schemas.review import CreateReviewRequest
from ..validation.business_rules import validate_review, validate_user_role
from .booking_service import BookingService
from .tour_service import TourService

logger = logging.getLogger(__name__)


class ReviewService:
    """Service for tour reviews."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tour_service = TourService(db)
        self.booking_service = BookingService(db)

    async def create_review(self, principal: Principal, request: CreateReviewRequest) -> Review:
        """
        Record a review by a customer who travelled on the tour.

        Raises:
            NotFoundError: If tour not found
            BusinessRuleViolationError: If the caller has no confirmed booking on the tour
            ValidationError: If rating or comment are malformed
            ConflictError: If the caller already reviewed the tour
        """
        await self.tour_service.get_tour_by_id_or_raise(request.tour_id)

        has_completed_booking = await self.booking_service.has_confirmed_booking(
            principal.user_id, request.tour_id
        )
        validate_review(principal, request.rating, request.comment, has_completed_booking)

        existing = await self.get_user_review(principal.user_id, request.tour_id)
        if existing:
            raise ConflictError(
                detail="You have already reviewed this tour",
                conflicting_resource={"review_id": str(existing.id), "tour_id": str(request.tour_id)},
            )

        review = Review(
            user_id=principal.user_id,
            tour_id=request.tour_id,
            rating=request.rating,
            comment=request.comment.strip(),
            approved=False,
        )

        try:
            self.db.add(review)
            await self.db.commit()
            await self.db.refresh(review)
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(detail="You have already reviewed this tour") from e

        logger.info(
            "Review created",
            extra={
                "review_id": str(review.id),
                "tour_id": str(review.tour_id),
                "user_id": principal.user_id,
                "rating": review.rating,
            }
        )

        return review

    async def list_reviews(
        self,
        tour_id: UUID,
        principal: Principal | None = None,
        include_unapproved: bool = False,
    ) -> list[Review]:
        """Reviews of a tour, newest first; unapproved ones only for staff."""
        await self.tour_service.get_tour_by_id_or_raise(tour_id)

        stmt = select(Review).where(Review.tour_id == tour_id)
        if include_unapproved:
            if principal is None:
                raise PermissionDeniedError(
                    "Staff access is required to list unapproved reviews",
                    required_role=UserRole.STAFF.value,
                )
            validate_user_role(principal, UserRole.STAFF)
        else:
            stmt = stmt.where(Review.approved.is_(True))

        result = await self.db.execute(stmt.order_by(Review.created_at.desc()))
        return list(result.scalars())

    async def get_user_review(self, user_id: str, tour_id: UUID) -> Review | None:
        stmt = select(Review).where(Review.user_id == user_id, Review.tour_id == tour_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
