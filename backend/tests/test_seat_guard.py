"""
Tests for seat reservation and compensating release.
"""

import pytest
from fastapi import HTTPException

from app.services.seat_guard import NOT_ENOUGH_SEATS, SeatReservation, SeatReservationGuard


@pytest.mark.asyncio
async def test_reserve_increments_counter(store, trip):
    guard = SeatReservationGuard(store)

    reservation = await guard.reserve(trip.slug, 4)

    assert reservation.seats == 4
    assert reservation.trip.seats_reserved == 7
    assert store.trips[trip.id].seats_reserved == 7


@pytest.mark.asyncio
async def test_reserve_exact_remaining_capacity(store, trip):
    guard = SeatReservationGuard(store)

    await guard.reserve(trip.slug, 7)

    assert store.trips[trip.id].seats_reserved == trip.seats_total


@pytest.mark.asyncio
async def test_reserve_unknown_trip(store):
    guard = SeatReservationGuard(store)

    with pytest.raises(HTTPException) as exc_info:
        await guard.reserve("missing", 1)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_atomic_reserve_refusal_is_conflict(store, trip):
    """Capacity taken between the advisory read and the update still yields 409."""
    guard = SeatReservationGuard(store)
    original_get = store.get_active_trip

    async def stale_read(slug):
        snapshot = await original_get(slug)
        # Someone else grabs the remaining seats after our read
        await store.reserve_seats(trip.id, 7)
        return snapshot

    store.get_active_trip = stale_read

    with pytest.raises(HTTPException) as exc_info:
        await guard.reserve(trip.slug, 1)

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail == NOT_ENOUGH_SEATS
    assert store.trips[trip.id].seats_reserved == 10


@pytest.mark.asyncio
async def test_release_runs_at_most_once(store, trip):
    guard = SeatReservationGuard(store)
    reservation = await guard.reserve(trip.slug, 2)

    await reservation.release(reason="test")
    await reservation.release(reason="test again")

    assert reservation.released is True
    assert store.calls.count("release_seats") == 1
    assert store.trips[trip.id].seats_reserved == 3


@pytest.mark.asyncio
async def test_release_never_goes_below_zero(store):
    trip = store.add_trip(slug="empty", seats_reserved=1)
    reservation = SeatReservation(store, trip, 3)

    await reservation.release(reason="test")

    assert store.trips[trip.id].seats_reserved == 0


@pytest.mark.asyncio
async def test_release_failure_is_logged_not_raised(store, trip):
    reservation = SeatReservation(store, trip, 2)

    async def broken_release(trip_id, seats):
        raise RuntimeError("connection reset")

    store.release_seats = broken_release

    await reservation.release(reason="test")

    assert reservation.released is True
