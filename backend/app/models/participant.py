"""
Participant model. Rows are created in one batch per booking.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Participant(Base, TimestampMixin):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    national_id = Column(String(11), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    document_type = Column(String(20), nullable=True)
    document_number = Column(String(50), nullable=True)
    address = Column(JSON, nullable=True)

    booking = relationship("Booking", back_populates="participants")

    def __repr__(self) -> str:
        return f"<Participant(id={self.id}, booking={self.booking_id})>"
