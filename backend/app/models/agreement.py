"""
Agreement model. Recorded opportunistically after a successful PDF render.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Agreement(Base, TimestampMixin):
    __tablename__ = "agreements"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="generated")
    pdf_url = Column(String(512), nullable=True)

    booking = relationship("Booking", back_populates="agreements")

    __table_args__ = (
        CheckConstraint("status IN ('generated', 'sent', 'signed')", name="check_agreement_status"),
    )
