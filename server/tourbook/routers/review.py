"""Review router."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_principal
from ..core.principal import Principal
from ..schemas.review import CreateReviewRequest, ListReviewsRequest, Review, ReviewList
from ..services.review_service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/review", tags=["review"])

DB_DEPENDENCY = Depends(get_db)
PRINCIPAL_DEPENDENCY = Depends(get_current_principal)


def _convert_review_to_schema(review_model) -> Review:
    """Convert review model to schema."""
    return Review(
        id=str(review_model.id),
        user_id=review_model.user_id,
        tour_id=str(review_model.tour_id),
        rating=review_model.rating,
        comment=review_model.comment,
        approved=review_model.approved,
        created_at=review_model.created_at,
    )


@router.post("/create", response_model=Review)
async def create_review(
    request: CreateReviewRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Review a tour the caller has a confirmed booking on. New reviews await moderation."""
    review_service = ReviewService(db)
    review = await review_service.create_review(principal, request)
    return JSONResponse(
        status_code=201,
        content=_convert_review_to_schema(review).model_dump(mode="json")
    )


@router.post("/list", response_model=ReviewList)
async def list_reviews(
    request: ListReviewsRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List approved reviews of a tour; staff may include unapproved ones."""
    review_service = ReviewService(db)
    reviews = await review_service.list_reviews(
        request.tour_id,
        principal=principal,
        include_unapproved=request.include_unapproved,
    )
    response_data = ReviewList(items=[_convert_review_to_schema(r) for r in reviews])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
