"""
HTTP client for the agreement PDF rendering service.
"""

from typing import Any, Optional

import httpx

from app.core.config import Settings
from app.core.exceptions import PdfRenderError
from app.services.interfaces.fulfillment import PdfRenderer, RenderedPdf


class HttpPdfRenderer(PdfRenderer):
    """POSTs booking data to PDF_SERVICE_URL and expects {base64, filename}."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.url = settings.PDF_SERVICE_URL

    async def render(
        self,
        booking_ref: str,
        trip_info: dict[str, Any],
        contact: dict[str, Any],
        company: Optional[dict[str, Any]],
        participants: list[dict[str, Any]],
    ) -> RenderedPdf:
        body = {
            "booking_ref": booking_ref,
            "trip": trip_info,
            "contact_email": contact.get("email"),
            "contact": contact,
            "company": company,
            "participants": participants,
        }
        try:
            resp = await self.client.post(self.url, json=body)
        except httpx.HTTPError as e:
            raise PdfRenderError(f"PDF service unreachable: {e}") from e

        if resp.status_code != 200:
            raise PdfRenderError(f"PDF service returned {resp.status_code}", status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise PdfRenderError("PDF service returned invalid JSON") from e

        if not data.get("base64") or not data.get("filename"):
            raise PdfRenderError("PDF service response is missing base64 or filename")

        return RenderedPdf(base64=data["base64"], filename=data["filename"], url=data.get("url"))
