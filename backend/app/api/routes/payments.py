"""
Payment provider notification endpoint.
"""

from fastapi import APIRouter, Depends, Request

from app.api.deps import get_booking_store, get_email_sender, get_payment_provider
from app.services.interfaces import BookingStore, EmailSender, PaymentProvider
from app.services.payment_service import handle_payment_notification

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    store: BookingStore = Depends(get_booking_store),
    provider: PaymentProvider = Depends(get_payment_provider),
    email_sender: EmailSender = Depends(get_email_sender),
):
    """Signed payment status notification; only CONFIRMED changes the booking."""
    raw_body = await request.body()
    return await handle_payment_notification(
        store,
        provider,
        email_sender,
        raw_body,
        request.headers.get("Signature"),
    )
