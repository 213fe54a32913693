from app.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingLookupResponse,
    ParticipantIn,
    AddressIn,
    ConsentsIn,
)
from app.schemas.trip import TripPublicResponse
from app.schemas.payment import PaymentNotification

__all__ = [
    "BookingCreate", "BookingCreatedResponse", "BookingLookupResponse",
    "ParticipantIn", "AddressIn", "ConsentsIn",
    "TripPublicResponse",
    "PaymentNotification",
]
