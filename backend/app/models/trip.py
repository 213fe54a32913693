"""
Trip model with seat inventory tracking.

Key design decisions:
- `seats_reserved` is a denormalized counter mutated only by the atomic
  reserve/release statements in the booking store
- CHECK constraints keep 0 <= seats_reserved <= seats_total even if a
  caller bypasses the store
- `public_slug` is an optional customer-facing alias for `slug`
"""

from sqlalchemy import Column, Integer, String, Date, Boolean, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Trip(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    public_slug = Column(String(255), nullable=True, unique=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    price_cents = Column(Integer, nullable=False, default=0)
    seats_total = Column(Integer, nullable=False)
    seats_reserved = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    bookings = relationship("Booking", back_populates="trip")

    __table_args__ = (
        CheckConstraint("seats_reserved >= 0", name="check_seats_reserved_non_negative"),
        CheckConstraint("seats_reserved <= seats_total", name="check_seats_reserved_lte_total"),
        CheckConstraint("price_cents >= 0", name="check_price_non_negative"),
        Index("ix_trips_active_slug", "is_active", "slug"),
    )

    @property
    def seats_left(self) -> int:
        return max(0, (self.seats_total or 0) - (self.seats_reserved or 0))

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, slug={self.slug}, reserved={self.seats_reserved}/{self.seats_total})>"
