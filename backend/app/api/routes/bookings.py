"""
Booking endpoints: public booking intake and customer self-service lookup.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import get_booking_service, get_booking_store
from app.schemas.booking import BookingCreatedResponse, BookingLookupResponse
from app.services.booking_service import BookingIntakeService, get_booking_by_token
from app.services.interfaces import BookingStore
from app.services.validator import INVALID_PAYLOAD
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post(
    "",
    response_model=BookingCreatedResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    request: Request,
    service: BookingIntakeService = Depends(get_booking_service),
):
    """
    Submit a booking for a trip.

    Seats are reserved atomically; if the booking or its participants cannot
    be written the reservation is released. Agreement PDF, confirmation
    email and payment session are best-effort and never fail the booking.
    """
    try:
        raw = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": INVALID_PAYLOAD, "errors": {"body": "Request body must be valid JSON"}},
        )
    return await service.create_booking(raw)


@router.get("/by-token/{token}", response_model=BookingLookupResponse)
async def lookup_booking(
    token: str,
    store: BookingStore = Depends(get_booking_store),
):
    """Customer self-service view of a booking, addressed by its access token."""
    return await get_booking_by_token(store, token)
