"""
Payment provider notification handling.

Only CONFIRMED notifications change state: a payment history row is added
and the booking is marked paid. PENDING, REJECTED, EXPIRED and unknown
statuses are acknowledged without changes so the provider stops retrying.
"""

from typing import Optional

from fastapi import HTTPException, status
from pydantic import ValidationError

from app.schemas.payment import PaymentNotification
from app.services import email_templates
from app.services.interfaces.booking_store import BookingStore
from app.services.interfaces.fulfillment import EmailSender, PaymentProvider
from app.core.logging import get_logger
from app.core.metrics import record_fulfillment_failure

logger = get_logger(__name__)


async def handle_payment_notification(
    store: BookingStore,
    provider: PaymentProvider,
    email_sender: EmailSender,
    raw_body: bytes,
    signature: Optional[str],
) -> dict:
    if not provider.verify_notification_signature(raw_body, signature):
        logger.warning("payment_notification_bad_signature", has_signature=bool(signature))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_signature")

    try:
        notification = PaymentNotification.model_validate_json(raw_body)
    except ValidationError:
        logger.warning("payment_notification_invalid_payload", body_length=len(raw_body))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_payload")

    booking = await store.get_booking_by_ref(notification.externalId)
    if booking is None:
        logger.error(
            "payment_notification_unknown_booking",
            external_id=notification.externalId,
            payment_id=notification.paymentId,
        )
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking_not_found")

    payment_status = notification.status.upper()
    if payment_status != "CONFIRMED":
        logger.info(
            "payment_notification_ignored",
            booking_ref=booking.booking_ref,
            payment_id=notification.paymentId,
            status=payment_status,
        )
        return {"ok": True}

    if notification.amount > 0:
        try:
            await store.record_payment(
                booking.id,
                notification.amount,
                method="paynow",
                notes=f"Paynow payment {notification.paymentId} - status: {payment_status}",
            )
        except Exception as e:
            logger.error("payment_history_insert_failed", booking_id=booking.id, error=str(e))

    try:
        await store.set_payment_status(booking.id, "paid")
    except Exception as e:
        logger.error("payment_status_update_failed", booking_id=booking.id, error=str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="update_failed")

    logger.info(
        "payment_confirmed",
        booking_ref=booking.booking_ref,
        payment_id=notification.paymentId,
        previous_status=booking.payment_status,
        amount_cents=notification.amount,
    )

    subject, html, text = email_templates.payment_confirmation(booking.booking_ref)
    try:
        await email_sender.send(to=booking.contact_email, subject=subject, html=html, text=text)
    except Exception as e:
        record_fulfillment_failure("payment_email")
        logger.error("payment_email_failed", booking_ref=booking.booking_ref, error=str(e))

    return {"ok": True}
