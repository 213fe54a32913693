"""
Seat reservation guard.

The capacity check in reserve() is advisory: it gives fast feedback when a
trip is visibly full. The authoritative check is the store's atomic
reserve_seats, which can still refuse if a concurrent booking took the seats
between the read and the update. Both refusals surface as the same 409.

Every successful reserve() returns a SeatReservation. Callers that fail
later in the request call SeatReservation.release(); the handle remembers
that it already fired so the seats are returned at most once.
"""

from fastapi import HTTPException, status

from app.services.interfaces.booking_store import BookingStore, TripSnapshot
from app.core.logging import get_logger
from app.core.metrics import record_reservation, record_release

logger = get_logger(__name__)

TRIP_NOT_FOUND = "Trip not found or inactive"
NOT_ENOUGH_SEATS = "Not enough seats"


class SeatReservation:
    """Seats held on a trip for one booking request."""

    def __init__(self, store: BookingStore, trip: TripSnapshot, seats: int):
        self.store = store
        self.trip = trip
        self.seats = seats
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def release(self, reason: str) -> None:
        """Return the seats. Runs on failure paths, so errors are logged, not raised."""
        if self._released:
            return
        self._released = True

        try:
            await self.store.release_seats(self.trip.id, self.seats)
        except Exception as e:
            record_release(False)
            logger.error(
                "seat_release_failed",
                trip_id=self.trip.id,
                seats=self.seats,
                reason=reason,
                error=str(e),
            )
            return

        record_release(True)
        logger.warning("seats_released", trip_id=self.trip.id, seats=self.seats, reason=reason)


class SeatReservationGuard:
    def __init__(self, store: BookingStore):
        self.store = store

    async def reserve(self, slug: str, seats: int) -> SeatReservation:
        trip = await self.store.get_active_trip(slug)
        if trip is None or not trip.is_active:
            logger.info("trip_not_found", slug=slug)
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TRIP_NOT_FOUND)

        if seats > trip.seats_left:
            record_reservation(False)
            logger.warning(
                "reservation_rejected_no_seats",
                trip_id=trip.id,
                requested=seats,
                available=trip.seats_left,
            )
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NOT_ENOUGH_SEATS)

        reserved = await self.store.reserve_seats(trip.id, seats)
        if reserved is None:
            # Lost the race to a concurrent booking
            record_reservation(False)
            logger.warning("reservation_rejected_atomic", trip_id=trip.id, requested=seats)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NOT_ENOUGH_SEATS)

        record_reservation(True)
        logger.info(
            "seats_reserved",
            trip_id=trip.id,
            seats=seats,
            seats_reserved=reserved.seats_reserved,
            seats_total=reserved.seats_total,
        )
        return SeatReservation(self.store, reserved, seats)
