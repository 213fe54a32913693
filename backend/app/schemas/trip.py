"""
Pydantic schemas for the public trip view.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel


class TripPublicResponse(BaseModel):
    id: int
    title: str
    slug: str
    public_slug: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    price_cents: int
    seats_total: int
    seats_left: int
    cached: bool = False

    model_config = {"from_attributes": True}
