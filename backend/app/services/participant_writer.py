"""
Participant writer. Participants are a mandatory part of a booking: if the
batch insert fails, the booking row is deleted and the seats are released.
"""

from typing import Any, Optional

from fastapi import HTTPException, status

from app.schemas.booking import AddressIn, BookingCreate, ParticipantIn
from app.services.booking_writer import WrittenBooking
from app.services.interfaces.booking_store import BookingStore
from app.services.seat_guard import SeatReservation
from app.core.logging import get_logger
from app.core.metrics import booking_rollbacks

logger = get_logger(__name__)


def participant_row(booking_id: int, participant: ParticipantIn, contact_address: Optional[AddressIn]) -> dict[str, Any]:
    address = participant.address or contact_address
    return {
        "booking_id": booking_id,
        "first_name": participant.first_name,
        "last_name": participant.last_name,
        "national_id": participant.national_id,
        "email": str(participant.email) if participant.email else None,
        "phone": participant.phone,
        "document_type": participant.document_type,
        "document_number": participant.document_number,
        "address": address.model_dump() if address else None,
    }


async def write_participants(
    store: BookingStore,
    reservation: SeatReservation,
    booking: WrittenBooking,
    payload: BookingCreate,
) -> int:
    rows = [participant_row(booking.id, p, payload.contact_address) for p in payload.participants]

    try:
        inserted = await store.insert_participants(rows)
    except Exception as e:
        logger.error(
            "participants_insert_failed",
            booking_id=booking.id,
            booking_ref=booking.booking_ref,
            count=len(rows),
            error=str(e),
        )
        try:
            await store.delete_booking(booking.id)
        except Exception as delete_error:
            logger.error(
                "booking_delete_failed",
                booking_id=booking.id,
                booking_ref=booking.booking_ref,
                error=str(delete_error),
            )
        await reservation.release(reason="participants_insert_failed")
        booking_rollbacks.labels(stage="participants").inc()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to add participants", "reason": str(e)},
        )

    logger.info("participants_created", booking_id=booking.id, count=inserted)
    return inserted
