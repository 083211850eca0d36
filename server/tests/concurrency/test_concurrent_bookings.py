"""Concurrency tests for booking operations."""

import asyncio

import pytest
from sqlalchemy import func, select

from tourbook.core.exceptions import CapacityExceededError, IdempotencyViolationError
from tourbook.models import Booking, BookingStatus
from tourbook.schemas.booking import CreateBookingRequest
from tourbook.services.availability_service import AvailabilityService
from tourbook.services.booking_service import BookingService


async def create_pending(session_factory, principal, tour_id, availability_id, travelers_count=1):
    async with session_factory() as session:
        booking = await BookingService(session).create_booking(
            principal,
            CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=travelers_count),
        )
        return booking.id


async def ledger_state(session_factory, availability_id):
    """Return (available_slots, total_slots, travelers held by CONFIRMED bookings)."""
    async with session_factory() as session:
        availability = await AvailabilityService(session).get_availability_by_id_or_raise(availability_id)
        held = await session.execute(
            select(func.coalesce(func.sum(Booking.travelers_count), 0)).where(
                Booking.availability_id == availability_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
        )
        return availability.available_slots, availability.total_slots, held.scalar_one()


@pytest.mark.asyncio
async def test_stale_read_cannot_overbook(
    session_factory, tour_factory, availability_factory, customer, other_customer, staff
):
    """Two requests that both saw five free slots cannot both take three."""
    tour = await tour_factory()
    availability = await availability_factory(tour, total_slots=5)
    tour_id, availability_id = tour.id, availability.id

    async with session_factory() as session_a, session_factory() as session_b:
        service_a = BookingService(session_a)
        service_b = BookingService(session_b)

        booking_a = await service_a.create_booking(
            customer,
            CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=3),
        )
        booking_b = await service_b.create_booking(
            other_customer,
            CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=3),
        )
        booking_a_id = booking_a.id

        # Session A holds a snapshot taken before B confirms
        stale = await AvailabilityService(session_a).get_availability_by_id_or_raise(availability_id)
        assert stale.available_slots == 5

        await service_b.confirm_booking(booking_b.id, staff)

        with pytest.raises(CapacityExceededError):
            await service_a.confirm_booking(booking_a_id, staff)

        booking_a = await service_a.get_booking_by_id_or_raise(booking_a_id)
        assert BookingStatus(booking_a.status) is BookingStatus.PENDING

    async with session_factory() as session:
        availability = await AvailabilityService(session).get_availability_by_id_or_raise(availability_id)
        assert availability.available_slots == 2


@pytest.mark.asyncio
async def test_concurrent_confirmations_no_overbooking(
    session_factory, tour_factory, availability_factory, customer, staff
):
    """Ten single-traveler confirmations racing for five slots."""
    tour = await tour_factory()
    availability = await availability_factory(tour, total_slots=5)
    tour_id, availability_id = tour.id, availability.id

    booking_ids = [
        await create_pending(session_factory, customer, tour_id, availability_id)
        for _ in range(10)
    ]

    async def confirm(booking_id):
        async with session_factory() as session:
            return await BookingService(session).confirm_booking(booking_id, staff)

    tasks = [confirm(booking_id) for booking_id in booking_ids]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    confirmed = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]

    assert len(confirmed) == 5
    assert all(isinstance(f, CapacityExceededError) for f in failures)

    available, total, held = await ledger_state(session_factory, availability_id)
    assert available >= 0
    assert held + available == total
    assert available == 0


@pytest.mark.asyncio
async def test_concurrent_cancels_release_once(
    session_factory, tour_factory, availability_factory, customer, staff
):
    """Five cancels of one CONFIRMED booking: one wins, the rest are no-ops."""
    tour = await tour_factory()
    availability = await availability_factory(tour, total_slots=5)
    tour_id, availability_id = tour.id, availability.id

    booking_id = await create_pending(session_factory, customer, tour_id, availability_id, travelers_count=2)
    async with session_factory() as session:
        await BookingService(session).confirm_booking(booking_id, staff)

    async def cancel():
        async with session_factory() as session:
            return await BookingService(session).cancel_booking(booking_id, customer)

    results = await asyncio.gather(*[cancel() for _ in range(5)], return_exceptions=True)

    cancelled = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]

    assert len(cancelled) == 1
    assert all(isinstance(f, IdempotencyViolationError) for f in failures)

    available, total, held = await ledger_state(session_factory, availability_id)
    assert held == 0
    assert available == total == 5


@pytest.mark.asyncio
async def test_concurrent_confirms_and_cancels_keep_ledger_balanced(
    session_factory, tour_factory, availability_factory, customer, other_customer, staff
):
    """Cancels freeing slots while new confirmations race to take them."""
    tour = await tour_factory()
    availability = await availability_factory(tour, total_slots=5)
    tour_id, availability_id = tour.id, availability.id

    held_ids = []
    for _ in range(3):
        booking_id = await create_pending(session_factory, customer, tour_id, availability_id)
        async with session_factory() as session:
            await BookingService(session).confirm_booking(booking_id, staff)
        held_ids.append(booking_id)

    pending_ids = [
        await create_pending(session_factory, other_customer, tour_id, availability_id)
        for _ in range(6)
    ]

    async def confirm(booking_id):
        async with session_factory() as session:
            return await BookingService(session).confirm_booking(booking_id, staff)

    async def cancel(booking_id):
        async with session_factory() as session:
            return await BookingService(session).cancel_booking(booking_id, customer)

    tasks = [cancel(booking_id) for booking_id in held_ids]
    tasks += [confirm(booking_id) for booking_id in pending_ids]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    cancel_results, confirm_results = results[:3], results[3:]
    assert not any(isinstance(r, Exception) for r in cancel_results)
    failures = [r for r in confirm_results if isinstance(r, Exception)]
    assert all(isinstance(f, CapacityExceededError) for f in failures)

    available, total, held = await ledger_state(session_factory, availability_id)
    assert available >= 0
    assert held + available == total
    assert held == len(confirm_results) - len(failures)


@pytest.mark.asyncio
async def test_double_cancel_from_two_sessions_releases_once(
    session_factory, tour_factory, availability_factory, customer, staff
):
    """A cancel issued from a session holding a stale CONFIRMED read is refused."""
    tour = await tour_factory()
    availability = await availability_factory(tour, total_slots=5)
    tour_id, availability_id = tour.id, availability.id

    async with session_factory() as session:
        service = BookingService(session)
        booking = await service.create_booking(
            customer,
            CreateBookingRequest(tour_id=tour_id, availability_id=availability_id, travelers_count=2),
        )
        booking_id = booking.id
        await service.confirm_booking(booking_id, staff)

    async with session_factory() as session_a, session_factory() as session_b:
        stale = await BookingService(session_a).get_booking_by_id_or_raise(booking_id)
        assert BookingStatus(stale.status) is BookingStatus.CONFIRMED

        await BookingService(session_b).cancel_booking(booking_id, customer)

        with pytest.raises(IdempotencyViolationError):
            await BookingService(session_a).cancel_booking(booking_id, customer)

    async with session_factory() as session:
        availability = await AvailabilityService(session).get_availability_by_id_or_raise(availability_id)
        assert availability.available_slots == 5
