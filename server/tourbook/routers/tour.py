"""Tour router for catalogue management operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_principal
from ..core.exceptions import ProblemDetailsException
from ..core.principal import Principal
from ..schemas.tour import CreateTourRequest, GetTourRequest, ItineraryDay, Tour
from ..services.tour_service import TourService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/tour", tags=["tour"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
PRINCIPAL_DEPENDENCY = Depends(get_current_principal)


def _convert_tour_to_schema(tour_model) -> Tour:
    """Convert tour model to schema."""
    return Tour(
        id=str(tour_model.id),
        title=tour_model.title,
        description=tour_model.description,
        duration_days=tour_model.duration_days,
        price_per_person=tour_model.price_per_person,
        max_group_size=tour_model.max_group_size,
        status=tour_model.status,
        itinerary=[ItineraryDay(**day) for day in tour_model.itinerary or []],
        created_at=tour_model.created_at,
    )


@router.post("/create", response_model=Tour)
async def create_tour(
    request: CreateTourRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Create a new tour.

    Administrators only. Pricing, duration and itinerary rules are checked
    before the tour is stored.
    """
    tour_service = TourService(db)

    try:
        tour = await tour_service.create_tour(principal, request)
        return JSONResponse(
            status_code=201,
            content=_convert_tour_to_schema(tour).model_dump(mode="json")
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in tour creation",
            extra={"title": request.title, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/get", response_model=Tour)
async def get_tour(
    request: GetTourRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a tour by ID."""
    tour_service = TourService(db)
    tour = await tour_service.get_tour_by_id_or_raise(request.tour_id)
    return JSONResponse(
        status_code=200,
        content=_convert_tour_to_schema(tour).model_dump(mode="json")
    )


@router.post("/delete")
async def delete_tour(
    request: GetTourRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Delete a tour with its availabilities.

    Refused while any confirmed booking references the tour.
    """
    tour_service = TourService(db)

    try:
        await tour_service.delete_tour(principal, request.tour_id)
        return JSONResponse(
            status_code=200,
            content={"tour_id": str(request.tour_id), "deleted": True}
        )

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in tour deletion",
            extra={"tour_id": str(request.tour_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
