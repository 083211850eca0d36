"""Booking router for lifecycle operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import get_current_principal
from ..core.exceptions import ProblemDetailsException
from ..core.principal import Principal
from ..schemas.booking import (
    Booking,
    BookingHistoryRequest,
    BookingIdRequest,
    BookingList,
    CreateBookingRequest,
    UpdateBookingStatusRequest,
)
from ..services.booking_service import BookingService
from ..services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
PRINCIPAL_DEPENDENCY = Depends(get_current_principal)


def _convert_booking_to_schema(booking_model) -> Booking:
    """Convert booking model to schema."""
    return Booking(
        id=str(booking_model.id),
        user_id=booking_model.user_id,
        tour_id=str(booking_model.tour_id),
        availability_id=str(booking_model.availability_id),
        travelers_count=booking_model.travelers_count,
        total_price=booking_model.total_price,
        status=booking_model.status,
        created_at=booking_model.created_at,
    )


def _booking_response(booking_model, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=_convert_booking_to_schema(booking_model).model_dump(mode="json")
    )


@router.post("/create", response_model=Booking)
async def create_booking(
    request: CreateBookingRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Create a PENDING booking for the caller.

    Slots are not taken until the booking is confirmed.
    """
    booking_service = BookingService(db)

    try:
        booking = await booking_service.create_booking(principal, request)
        await NotificationService().booking_created(booking)
        return _booking_response(booking, status_code=201)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking creation",
            extra={
                "tour_id": str(request.tour_id),
                "availability_id": str(request.availability_id),
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/get", response_model=Booking)
async def get_booking(
    request: BookingIdRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get a booking owned by the caller, or any booking for administrators."""
    booking_service = BookingService(db)
    booking = await booking_service.get_booking(request.booking_id, principal)
    return _booking_response(booking)


@router.post("/confirm", response_model=Booking)
async def confirm_booking(
    request: BookingIdRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Confirm a PENDING booking and take its slots.

    Staff only. Fails with 409 CAPACITY_EXCEEDED when the availability ran
    out, leaving the booking PENDING.
    """
    booking_service = BookingService(db)

    try:
        booking = await booking_service.confirm_booking(request.booking_id, principal)
        await NotificationService().booking_confirmed(booking)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking confirmation",
            extra={"booking_id": str(request.booking_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/cancel", response_model=Booking)
async def cancel_booking(
    request: BookingIdRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Cancel a booking.

    The owner or staff may cancel. Slots return to the availability when the
    booking was CONFIRMED. Cancelling twice fails with 409.
    """
    booking_service = BookingService(db)

    try:
        booking = await booking_service.cancel_booking(request.booking_id, principal)
        await NotificationService().booking_cancelled(booking)
        return _booking_response(booking)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking cancellation",
            extra={"booking_id": str(request.booking_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/update-status", response_model=Booking)
async def update_booking_status(
    request: UpdateBookingStatusRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Move a booking to a new status through the lifecycle rules. Staff only."""
    booking_service = BookingService(db)
    booking = await booking_service.update_booking_status(request.booking_id, request.status, principal)
    await NotificationService().status_changed(booking)
    return _booking_response(booking)


@router.post("/history", response_model=BookingList)
async def booking_history(
    request: BookingHistoryRequest,
    principal: Principal = PRINCIPAL_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """List bookings of the caller, or of any user for administrators."""
    booking_service = BookingService(db)
    bookings = await booking_service.get_user_bookings(request.user_id or principal.user_id, principal)
    response_data = BookingList(items=[_convert_booking_to_schema(b) for b in bookings])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
