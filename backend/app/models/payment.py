"""
Payment history entries written by the payment notification webhook.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey

from app.db.base import Base, TimestampMixin


class PaymentHistory(Base, TimestampMixin):
    __tablename__ = "payment_history"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)
    payment_method = Column(String(50), nullable=False, default="paynow")
    notes = Column(Text, nullable=True)
