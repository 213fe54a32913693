"""
Public trip view, served from the Redis cache when possible.
"""

from fastapi import HTTPException, status

from app.schemas.trip import TripPublicResponse
from app.services.cache_service import get_cached_trip, set_cached_trip
from app.services.interfaces.booking_store import BookingStore
from app.core.logging import get_logger

logger = get_logger(__name__)


async def get_public_trip(store: BookingStore, slug: str) -> TripPublicResponse:
    cached = await get_cached_trip(slug)
    if cached:
        cached["cached"] = True
        return TripPublicResponse(**cached)

    trip = await store.get_active_trip(slug)
    if trip is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Trip not found or inactive",
        )

    response = TripPublicResponse(
        id=trip.id,
        title=trip.title,
        slug=trip.slug,
        public_slug=trip.public_slug,
        start_date=trip.start_date,
        end_date=trip.end_date,
        price_cents=trip.price_cents,
        seats_total=trip.seats_total,
        seats_left=trip.seats_left,
    )
    await set_cached_trip(slug, response.model_dump(mode="json"))
    return response
