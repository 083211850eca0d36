"""Unit tests for tour reviews."""

from uuid import uuid4

import pytest

from tourbook.core.exceptions import (
    BusinessRuleViolationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from tourbook.schemas.booking import CreateBookingRequest
from tourbook.schemas.review import CreateReviewRequest
from tourbook.services.booking_service import BookingService
from tourbook.services.review_service import ReviewService

COMMENT = "Guides were excellent and the views unforgettable"


@pytest.fixture
def travelled_tour(test_session, tour_factory, availability_factory, customer, staff):
    """A tour on which ``customer`` holds a CONFIRMED booking."""
    async def _create():
        tour = await tour_factory()
        availability = await availability_factory(tour)
        service = BookingService(test_session)
        booking = await service.create_booking(
            customer,
            CreateBookingRequest(tour_id=tour.id, availability_id=availability.id, travelers_count=1),
        )
        await service.confirm_booking(booking.id, staff)
        return tour
    return _create


class TestCreateReview:
    """Test review creation."""

    @pytest.mark.asyncio
    async def test_create_review(self, test_session, travelled_tour, customer):
        tour = await travelled_tour()

        review = await ReviewService(test_session).create_review(
            customer, CreateReviewRequest(tour_id=tour.id, rating=5, comment=f"  {COMMENT}  ")
        )

        assert review.rating == 5
        assert review.comment == COMMENT
        assert review.approved is False

    @pytest.mark.asyncio
    async def test_review_requires_confirmed_booking(self, test_session, tour_factory, other_customer):
        tour = await tour_factory()

        with pytest.raises(BusinessRuleViolationError, match="completed bookings"):
            await ReviewService(test_session).create_review(
                other_customer, CreateReviewRequest(tour_id=tour.id, rating=4, comment=COMMENT)
            )

    @pytest.mark.asyncio
    async def test_review_rating_out_of_range(self, test_session, travelled_tour, customer):
        tour = await travelled_tour()

        with pytest.raises(ValidationError, match="Rating"):
            await ReviewService(test_session).create_review(
                customer, CreateReviewRequest(tour_id=tour.id, rating=6, comment=COMMENT)
            )

    @pytest.mark.asyncio
    async def test_second_review_conflicts(self, test_session, travelled_tour, customer):
        tour = await travelled_tour()
        service = ReviewService(test_session)
        await service.create_review(customer, CreateReviewRequest(tour_id=tour.id, rating=5, comment=COMMENT))

        with pytest.raises(ConflictError, match="already reviewed"):
            await service.create_review(customer, CreateReviewRequest(tour_id=tour.id, rating=3, comment=COMMENT))

    @pytest.mark.asyncio
    async def test_review_unknown_tour(self, test_session, customer):
        with pytest.raises(NotFoundError):
            await ReviewService(test_session).create_review(
                customer, CreateReviewRequest(tour_id=uuid4(), rating=5, comment=COMMENT)
            )


class TestListReviews:
    """Test review listings."""

    @pytest.mark.asyncio
    async def test_unapproved_hidden_from_public(self, test_session, travelled_tour, customer, staff):
        tour = await travelled_tour()
        service = ReviewService(test_session)
        review = await service.create_review(
            customer, CreateReviewRequest(tour_id=tour.id, rating=5, comment=COMMENT)
        )

        assert await service.list_reviews(tour.id) == []

        moderated = await service.list_reviews(tour.id, staff, include_unapproved=True)
        assert [r.id for r in moderated] == [review.id]

        review.approved = True
        await test_session.commit()

        assert [r.id for r in await service.list_reviews(tour.id)] == [review.id]

    @pytest.mark.asyncio
    async def test_unapproved_requires_staff(self, test_session, tour_factory, customer):
        tour = await tour_factory()
        service = ReviewService(test_session)

        with pytest.raises(PermissionDeniedError):
            await service.list_reviews(tour.id, customer, include_unapproved=True)
        with pytest.raises(PermissionDeniedError):
            await service.list_reviews(tour.id, include_unapproved=True)
