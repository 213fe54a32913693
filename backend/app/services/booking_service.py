"""
Booking intake service.

REQUEST FLOW
============

  validate -> reserve seats -> write booking -> write participants -> fulfillment

Rollback points:
  - booking row cannot be written      -> release seats
  - participants cannot be written     -> delete booking, release seats
  - anything unexpected after reserve  -> delete booking if written, release seats

Fulfillment (agreement PDF, confirmation email, payment session) runs after
the booking is durable and can never fail the request.

CONCURRENCY
===========

Handlers keep no shared in-process state. The only contended resource is a
trip's seats_reserved counter, which changes only through the store's
atomic reserve/release statements. The advisory capacity check in the guard
is for fast feedback, not for correctness.
"""

import time
from typing import Any, Optional

from fastapi import HTTPException, status

from app.schemas.booking import BookingCreatedResponse, BookingLookupResponse, ParticipantSummary
from app.services.booking_writer import BookingWriter, WrittenBooking
from app.services.cache_service import invalidate_trip_cache
from app.services.fulfillment import FulfillmentContext, FulfillmentOrchestrator, FulfillmentResult, total_amount_cents
from app.services.interfaces.booking_store import BookingStore, PrivilegedReader
from app.services.participant_writer import write_participants
from app.services.seat_guard import SeatReservation, SeatReservationGuard
from app.services.validator import parse_booking_request
from app.core.logging import get_logger
from app.core.metrics import booking_latency, booking_rollbacks, record_booking_attempt

logger = get_logger(__name__)

_STATUS_LABELS = {
    status.HTTP_400_BAD_REQUEST: "invalid",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_409_CONFLICT: "conflict",
}


class BookingIntakeService:
    def __init__(
        self,
        store: BookingStore,
        reader: PrivilegedReader,
        fulfillment: FulfillmentOrchestrator,
    ):
        self.store = store
        self.guard = SeatReservationGuard(store)
        self.writer = BookingWriter(store, reader)
        self.fulfillment = fulfillment

    async def create_booking(self, raw: Any) -> BookingCreatedResponse:
        start = time.perf_counter()
        try:
            response = await self._create_booking(raw)
        except HTTPException as e:
            record_booking_attempt(_STATUS_LABELS.get(e.status_code, "error"))
            raise
        except Exception as e:
            # Failures before any seat is held (e.g. the trip lookup) have nothing to undo
            logger.exception("booking_unexpected_error", error=str(e))
            record_booking_attempt("error")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"message": "Unexpected error", "reason": str(e)},
            )
        finally:
            booking_latency.observe(time.perf_counter() - start)

        record_booking_attempt("created")
        return response

    async def _create_booking(self, raw: Any) -> BookingCreatedResponse:
        payload = parse_booking_request(raw)
        seats = len(payload.participants)

        reservation = await self.guard.reserve(payload.slug, seats)

        written: Optional[WrittenBooking] = None
        try:
            written = await self.writer.write(reservation, payload)
            await write_participants(self.store, reservation, written, payload)
        except HTTPException:
            raise
        except Exception as e:
            logger.exception("booking_unexpected_error", trip_id=reservation.trip.id, error=str(e))
            await self._discard(written, reservation)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"message": "Unexpected error", "reason": str(e)},
            )

        ctx = FulfillmentContext(
            booking_id=written.id,
            booking_ref=written.booking_ref,
            access_token=written.access_token,
            trip=reservation.trip,
            payload=payload,
        )
        await invalidate_trip_cache(reservation.trip.slug, reservation.trip.public_slug)
        result = await self._fulfill(ctx)

        logger.info(
            "booking_completed",
            booking_ref=written.booking_ref,
            trip_id=reservation.trip.id,
            seats=seats,
            with_payment=payload.with_payment,
            has_redirect=result.redirect_url is not None,
        )
        return BookingCreatedResponse(
            booking_ref=written.booking_ref,
            agreement_pdf_url=result.agreement_pdf_url,
            booking_url=result.booking_url,
            redirect_url=result.redirect_url,
        )

    async def _fulfill(self, ctx: FulfillmentContext) -> FulfillmentResult:
        try:
            return await self.fulfillment.run(ctx)
        except Exception as e:
            # The booking is already durable; degrade to the bare response
            logger.exception("fulfillment_failed", booking_ref=ctx.booking_ref, error=str(e))
            return FulfillmentResult(booking_url=self.fulfillment.booking_url(ctx.booking_ref, ctx.access_token))

    async def _discard(self, written: Optional[WrittenBooking], reservation: SeatReservation) -> None:
        if written is not None:
            try:
                await self.store.delete_booking(written.id)
            except Exception as e:
                logger.error("booking_delete_failed", booking_id=written.id, error=str(e))
        await reservation.release(reason="unexpected_error")
        booking_rollbacks.labels(stage="unexpected").inc()


def _amount_due(payment_status: str, trip, participants: int) -> int:
    if payment_status == "paid":
        return 0
    return total_amount_cents(trip, participants)


async def get_booking_by_token(store: BookingStore, access_token: str) -> BookingLookupResponse:
    """Customer self-service lookup by the opaque access token."""
    lookup = await store.get_booking_by_token(access_token)
    if lookup is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )

    booking, trip = lookup.booking, lookup.trip
    return BookingLookupResponse(
        booking_ref=booking.booking_ref,
        status=booking.status,
        payment_status=booking.payment_status,
        contact_email=booking.contact_email,
        trip_title=trip.title,
        trip_start_date=trip.start_date,
        trip_end_date=trip.end_date,
        participants=[ParticipantSummary(first_name=first, last_name=last) for first, last in lookup.participants],
        amount_due_cents=_amount_due(booking.payment_status, trip, len(lookup.participants)),
    )
