"""
FastAPI dependencies wiring the booking flow to its collaborators.

Tests override get_booking_store, get_privileged_reader and the three
outbound collaborator providers.
"""

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.db.session import AdminSessionLocal, get_db
from app.infrastructure.email_client import ResendEmailSender
from app.infrastructure.paynow_client import PaynowClient
from app.infrastructure.pdf_client import HttpPdfRenderer
from app.infrastructure.sql_booking_store import SqlBookingStore, SqlPrivilegedReader
from app.services.booking_service import BookingIntakeService
from app.services.fulfillment import FulfillmentOrchestrator
from app.services.interfaces import BookingStore, EmailSender, PaymentProvider, PdfRenderer, PrivilegedReader


def get_booking_store(db: AsyncSession = Depends(get_db)) -> BookingStore:
    return SqlBookingStore(db)


def get_privileged_reader() -> PrivilegedReader:
    return SqlPrivilegedReader(AdminSessionLocal)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared outbound client created in the application lifespan."""
    return request.app.state.http_client


def get_pdf_renderer(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> PdfRenderer:
    return HttpPdfRenderer(client, settings)


def get_email_sender(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> EmailSender:
    return ResendEmailSender(client, settings)


def get_payment_provider(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> PaymentProvider:
    return PaynowClient(client, settings)


def get_booking_service(
    store: BookingStore = Depends(get_booking_store),
    reader: PrivilegedReader = Depends(get_privileged_reader),
    pdf_renderer: PdfRenderer = Depends(get_pdf_renderer),
    email_sender: EmailSender = Depends(get_email_sender),
    payment_provider: PaymentProvider = Depends(get_payment_provider),
    settings: Settings = Depends(get_settings),
) -> BookingIntakeService:
    fulfillment = FulfillmentOrchestrator(store, pdf_renderer, email_sender, payment_provider, settings)
    return BookingIntakeService(store, reader, fulfillment)
