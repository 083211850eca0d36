"""Availability router for dated tour instances."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_principal
from ..core.principal import Principal
from ..schemas.availability import (
    Availability,
    AvailabilityList,
    CheckAvailabilityRequest,
    CreateAvailabilityRequest,
    UpcomingAvailabilitiesRequest,
    UpcomingAvailabilityList,
)
from ..services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/availability", tags=["availability"])

DB_DEPENDENCY = Depends(get_db)
PRINCIPAL_DEPENDENCY = Depends(get_current_principal)


def _convert_availability_to_schema(availability_model) -> Availability:
    """Convert availability model to schema."""
    return Availability(
        id=str(availability_model.id),
        tour_id=str(availability_model.tour_id),
        start_date=availability_model.start_date,
        end_date=availability_model.end_date,
        total_slots=availability_model.total_slots,
        available_slots=availability_model.available_slots,
    )


@router.post("/create", response_model=Availability)
async def create_availability(
    request: CreateAvailabilityRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Open a dated availability on a tour. Administrators only."""
    availability_service = AvailabilityService(db)
    availability = await availability_service.create_availability(principal, request)
    return JSONResponse(
        status_code=201,
        content=_convert_availability_to_schema(availability).model_dump(mode="json")
    )


@router.post("/check", response_model=AvailabilityList)
async def check_availability(
    request: CheckAvailabilityRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    List bookable availabilities of a tour.

    Only availabilities with free slots are returned, ordered by start date.
    """
    availability_service = AvailabilityService(db)
    items = await availability_service.check_availability(
        request.tour_id,
        start_date=request.start_date,
        end_date=request.end_date,
    )

    logger.debug(
        "Availability checked",
        extra={"tour_id": str(request.tour_id), "results": len(items)}
    )

    return JSONResponse(
        status_code=200,
        content=AvailabilityList(items=items).model_dump(mode="json")
    )


@router.post("/upcoming", response_model=UpcomingAvailabilityList)
async def get_upcoming_availabilities(
    request: UpcomingAvailabilitiesRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List a tour's availabilities starting today or later, whether or not slots remain."""
    availability_service = AvailabilityService(db)
    availabilities = await availability_service.get_upcoming_availabilities(
        request.tour_id,
        limit=request.limit,
    )

    return JSONResponse(
        status_code=200,
        content=UpcomingAvailabilityList(
            items=[_convert_availability_to_schema(a) for a in availabilities]
        ).model_dump(mode="json")
    )
