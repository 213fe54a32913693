"""
Booking model representing a customer's reservation on a trip.

Key design decisions:
- `booking_ref` is the human-readable identifier, `access_token` the opaque
  secret behind the customer self-service link; both unique
- Address, company address and consents are stored as JSON documents
- Participants and agreements cascade on delete so a torn-down booking
  leaves nothing behind
"""

import secrets

from sqlalchemy import Column, Integer, String, Text, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin

BOOKING_STATUSES = ("pending", "confirmed", "cancelled")
PAYMENT_STATUSES = ("unpaid", "partial", "paid", "overpaid")
BOOKING_SOURCES = ("public_page", "admin_panel")


def new_access_token() -> str:
    return secrets.token_urlsafe(32)


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    booking_ref = Column(String(64), nullable=False, unique=True, index=True)
    access_token = Column(String(128), nullable=True, unique=True, index=True, default=new_access_token)

    contact_first_name = Column(String(100), nullable=True)
    contact_last_name = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=False)
    contact_phone = Column(String(50), nullable=False)
    address = Column(JSON, nullable=True)

    applicant_type = Column(String(20), nullable=True)
    company_name = Column(String(255), nullable=True)
    company_nip = Column(String(20), nullable=True)
    company_address = Column(JSON, nullable=True)

    consents = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default="confirmed")
    payment_status = Column(String(20), nullable=False, default="unpaid")
    source = Column(String(20), nullable=False, default="public_page")
    internal_notes = Column(Text, nullable=True)

    trip = relationship("Trip", back_populates="bookings")
    participants = relationship(
        "Participant", back_populates="booking", cascade="all, delete-orphan", passive_deletes=True
    )
    agreements = relationship(
        "Agreement", back_populates="booking", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(f"status IN {BOOKING_STATUSES}", name="check_booking_status"),
        CheckConstraint(f"payment_status IN {PAYMENT_STATUSES}", name="check_booking_payment_status"),
        CheckConstraint(f"source IN {BOOKING_SOURCES}", name="check_booking_source"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_ref}, trip={self.trip_id}, status={self.status})>"
