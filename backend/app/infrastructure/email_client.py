"""
Transactional email sender backed by the Resend HTTP API.
"""

from typing import Optional

import httpx

from app.core.config import Settings
from app.core.exceptions import EmailNotConfigured, EmailSendError
from app.services.interfaces.fulfillment import EmailAttachment, EmailSender


class ResendEmailSender(EmailSender):
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.api_key = settings.RESEND_API_KEY
        self.api_url = settings.RESEND_API_URL
        self.sender = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM}>"

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        attachment: Optional[EmailAttachment] = None,
    ) -> None:
        if not self.api_key or not self.api_key.strip():
            raise EmailNotConfigured("RESEND_API_KEY is not configured")

        body = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        if attachment is not None:
            body["attachments"] = [{"filename": attachment.filename, "content": attachment.base64}]

        try:
            resp = await self.client.post(
                self.api_url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key.strip()}"},
            )
        except httpx.HTTPError as e:
            raise EmailSendError(f"Email API unreachable: {e}") from e

        if resp.status_code >= 400:
            raise EmailSendError(
                f"Email API returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
