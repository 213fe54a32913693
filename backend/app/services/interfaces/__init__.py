"""
Service interfaces for dependency inversion.
Allows swapping the datastore and external collaborators without changing
the booking flow (SQL vs in-memory stores, real vs recording clients in tests).
"""

from .booking_store import (
    BookingStore,
    PrivilegedReader,
    TripSnapshot,
    CreatedBooking,
    BookingDraft,
    BookingRecord,
    BookingLookup,
)
from .fulfillment import (
    PdfRenderer,
    EmailSender,
    PaymentProvider,
    RenderedPdf,
    EmailAttachment,
    PaymentSession,
)

__all__ = [
    'BookingStore', 'PrivilegedReader', 'TripSnapshot', 'CreatedBooking',
    'BookingDraft', 'BookingRecord', 'BookingLookup',
    'PdfRenderer', 'EmailSender', 'PaymentProvider',
    'RenderedPdf', 'EmailAttachment', 'PaymentSession',
]
