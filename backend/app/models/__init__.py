from app.models.trip import Trip
from app.models.booking import Booking
from app.models.participant import Participant
from app.models.agreement import Agreement
from app.models.payment import PaymentHistory

__all__ = ["Trip", "Booking", "Participant", "Agreement", "PaymentHistory"]
