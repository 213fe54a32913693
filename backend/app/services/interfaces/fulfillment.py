"""
Interfaces for the best-effort fulfillment collaborators.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class RenderedPdf:
    base64: str
    filename: str
    url: Optional[str] = None


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    base64: str


@dataclass(frozen=True)
class PaymentSession:
    payment_id: str
    redirect_url: Optional[str]


class PdfRenderer(ABC):
    @abstractmethod
    async def render(
        self,
        booking_ref: str,
        trip_info: dict[str, Any],
        contact: dict[str, Any],
        company: Optional[dict[str, Any]],
        participants: list[dict[str, Any]],
    ) -> RenderedPdf:
        """Render the booking agreement. Raises PdfRenderError on failure."""


class EmailSender(ABC):
    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        attachment: Optional[EmailAttachment] = None,
    ) -> None:
        """Send one email. Raises EmailSendError or EmailNotConfigured."""


class PaymentProvider(ABC):
    @abstractmethod
    async def create_session(
        self,
        amount_cents: int,
        external_id: str,
        description: str,
        buyer_email: str,
        return_url: str,
        notification_url: Optional[str] = None,
    ) -> PaymentSession:
        """Start a hosted payment page session."""

    @abstractmethod
    def verify_notification_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """Check the signature on an inbound payment notification."""
