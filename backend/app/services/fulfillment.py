"""
Best-effort fulfillment after a booking and its participants are persisted.

Steps:
  - agreement: render the PDF, record an Agreement row, keep it as attachment
  - payment: open a hosted payment session when requested and the total > 0
  - email: confirmation with the self-service link, payment link, attachment

Agreement and payment run concurrently; the email goes out once both have
settled so it can carry the attachment and the payment link. Every step has
its own failure boundary: a failure is logged, counted and skipped, and
never changes the outcome of the booking.
"""

import asyncio
import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from app.core.config import Settings
from app.schemas.booking import BookingCreate
from app.services import email_templates
from app.services.interfaces.booking_store import BookingStore, TripSnapshot
from app.services.interfaces.fulfillment import EmailAttachment, EmailSender, PaymentProvider, PdfRenderer
from app.core.logging import get_logger
from app.core.metrics import record_fulfillment_failure

logger = get_logger(__name__)


@dataclass
class FulfillmentContext:
    booking_id: int
    booking_ref: str
    access_token: Optional[str]
    trip: TripSnapshot
    payload: BookingCreate


@dataclass
class AgreementDocument:
    pdf_url: Optional[str]
    attachment: Optional[EmailAttachment]


@dataclass
class FulfillmentResult:
    booking_url: str
    agreement_pdf_url: Optional[str] = None
    redirect_url: Optional[str] = None


def booking_self_service_url(base_url: str, booking_ref: str, access_token: Optional[str]) -> str:
    if access_token:
        return f"{base_url}/booking/{quote(access_token, safe='')}"
    return f"{base_url}/payments/return?booking_ref={quote(booking_ref, safe='')}"


def total_amount_cents(trip: TripSnapshot, participants_count: int) -> int:
    return (trip.price_cents or 0) * participants_count


class FulfillmentOrchestrator:
    def __init__(
        self,
        store: BookingStore,
        pdf_renderer: PdfRenderer,
        email_sender: EmailSender,
        payment_provider: PaymentProvider,
        settings: Settings,
    ):
        self.store = store
        self.pdf_renderer = pdf_renderer
        self.email_sender = email_sender
        self.payment_provider = payment_provider
        self.base_url = settings.public_base_url
        self.fallback_pdf_path = settings.AGREEMENT_FALLBACK_PDF_PATH

    def booking_url(self, booking_ref: str, access_token: Optional[str]) -> str:
        return booking_self_service_url(self.base_url, booking_ref, access_token)

    async def run(self, ctx: FulfillmentContext) -> FulfillmentResult:
        booking_url = self.booking_url(ctx.booking_ref, ctx.access_token)

        agreement, redirect_url = await asyncio.gather(
            self._generate_agreement(ctx),
            self._create_payment(ctx, booking_url),
        )
        await self._send_confirmation(ctx, booking_url, agreement, redirect_url)

        return FulfillmentResult(
            booking_url=booking_url,
            agreement_pdf_url=agreement.pdf_url if agreement else None,
            redirect_url=redirect_url,
        )

    def _fail(self, step: str, ctx: FulfillmentContext, error: Exception) -> None:
        record_fulfillment_failure(step)
        logger.error(
            "fulfillment_step_failed",
            step=step,
            booking_id=ctx.booking_id,
            booking_ref=ctx.booking_ref,
            error=str(error),
            error_type=type(error).__name__,
        )

    async def _generate_agreement(self, ctx: FulfillmentContext) -> Optional[AgreementDocument]:
        payload = ctx.payload
        contact = {
            "first_name": payload.contact_first_name,
            "last_name": payload.contact_last_name,
            "email": str(payload.contact_email),
            "phone": payload.contact_phone,
            "address": payload.contact_address.model_dump() if payload.contact_address else None,
        }
        company = None
        if payload.is_company:
            company = {
                "name": payload.company_name,
                "nip": payload.company_nip,
                "address": payload.company_address.model_dump() if payload.company_address else None,
            }
        trip_info = {
            "title": ctx.trip.title,
            "start_date": ctx.trip.start_date.isoformat() if ctx.trip.start_date else None,
            "end_date": ctx.trip.end_date.isoformat() if ctx.trip.end_date else None,
            "price_cents": ctx.trip.price_cents,
        }
        participants = [p.model_dump(mode="json") for p in payload.participants]

        try:
            rendered = await self.pdf_renderer.render(ctx.booking_ref, trip_info, contact, company, participants)
        except Exception as e:
            self._fail("agreement", ctx, e)
            return self._fallback_agreement(ctx)

        pdf_url = rendered.url or rendered.filename
        try:
            await self.store.record_agreement(ctx.booking_id, pdf_url, status="generated")
        except Exception as e:
            self._fail("agreement_record", ctx, e)

        logger.info("agreement_generated", booking_ref=ctx.booking_ref, filename=rendered.filename)
        return AgreementDocument(
            pdf_url=pdf_url,
            attachment=EmailAttachment(filename=rendered.filename, base64=rendered.base64),
        )

    def _fallback_agreement(self, ctx: FulfillmentContext) -> Optional[AgreementDocument]:
        if not self.fallback_pdf_path:
            return None
        path = Path(self.fallback_pdf_path)
        try:
            content = base64.b64encode(path.read_bytes()).decode("ascii")
        except OSError as e:
            self._fail("agreement_fallback", ctx, e)
            return None
        logger.info("agreement_fallback_attached", booking_ref=ctx.booking_ref, filename=path.name)
        return AgreementDocument(pdf_url=None, attachment=EmailAttachment(filename=path.name, base64=content))

    async def _create_payment(self, ctx: FulfillmentContext, booking_url: str) -> Optional[str]:
        if not ctx.payload.with_payment:
            return None

        total = total_amount_cents(ctx.trip, len(ctx.payload.participants))
        if total <= 0:
            logger.info("payment_skipped_zero_total", booking_ref=ctx.booking_ref)
            return None

        try:
            session = await self.payment_provider.create_session(
                amount_cents=total,
                external_id=ctx.booking_ref,
                description=f"Booking {ctx.booking_ref} - {ctx.trip.title}",
                buyer_email=str(ctx.payload.contact_email),
                return_url=booking_url,
                notification_url=f"{self.base_url}/api/v1/payments/webhook",
            )
        except Exception as e:
            self._fail("payment", ctx, e)
            return None

        logger.info(
            "payment_session_created",
            booking_ref=ctx.booking_ref,
            payment_id=session.payment_id,
            amount_cents=total,
        )
        return session.redirect_url

    async def _send_confirmation(
        self,
        ctx: FulfillmentContext,
        booking_url: str,
        agreement: Optional[AgreementDocument],
        redirect_url: Optional[str],
    ) -> None:
        subject, html, text = email_templates.booking_confirmation(
            booking_ref=ctx.booking_ref,
            booking_url=booking_url,
            trip_title=ctx.trip.title,
            start_date=ctx.trip.start_date,
            end_date=ctx.trip.end_date,
            participants_count=len(ctx.payload.participants),
            payment_url=redirect_url,
        )
        attachment = agreement.attachment if agreement else None
        try:
            await self.email_sender.send(
                to=str(ctx.payload.contact_email),
                subject=subject,
                html=html,
                text=text,
                attachment=attachment,
            )
        except Exception as e:
            self._fail("email", ctx, e)
            return

        logger.info(
            "confirmation_email_sent",
            booking_ref=ctx.booking_ref,
            with_attachment=attachment is not None,
        )
