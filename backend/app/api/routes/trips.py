"""
Public trip endpoints with Redis caching.
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_booking_store
from app.schemas.trip import TripPublicResponse
from app.services.interfaces import BookingStore
from app.services.trip_service import get_public_trip

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("/{slug}", response_model=TripPublicResponse)
async def get_trip(
    slug: str,
    store: BookingStore = Depends(get_booking_store),
):
    """Trip details and seats left. Cached; invalidated after each booking."""
    return await get_public_trip(store, slug)
