"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .sql_booking_store import SqlBookingStore, SqlPrivilegedReader
from .pdf_client import HttpPdfRenderer
from .email_client import ResendEmailSender
from .paynow_client import PaynowClient

__all__ = [
    'SqlBookingStore', 'SqlPrivilegedReader',
    'HttpPdfRenderer', 'ResendEmailSender', 'PaynowClient',
]
