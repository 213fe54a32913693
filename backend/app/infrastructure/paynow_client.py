"""
Paynow v3 hosted payment page client.

Request signing: the `Signature` header is the base64 HMAC-SHA256, keyed with
the signature key, of the JSON document

    {"headers": {"Api-Key": ..., "Idempotency-Key": ...},
     "parameters": {},
     "body": "<request body as sent>"}

Notifications are signed over the raw request body with the same key.
"""

import base64
import hashlib
import hmac
import json
from typing import Optional, Union

import httpx

from app.core.config import Settings
from app.core.exceptions import PaymentNotConfigured, PaymentProviderError
from app.services.interfaces.fulfillment import PaymentProvider, PaymentSession

PAYNOW_BASE_URLS = {
    "production": "https://api.paynow.pl",
    "sandbox": "https://api.sandbox.paynow.pl",
}


def _hmac_base64(key: str, message: Union[str, bytes]) -> str:
    if isinstance(message, str):
        message = message.encode("utf-8")
    digest = hmac.new(key.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def sign_request(api_key: str, signature_key: str, idempotency_key: str, body: str) -> str:
    payload = {
        "headers": {
            "Api-Key": api_key,
            "Idempotency-Key": idempotency_key,
        },
        "parameters": {},
        "body": body,
    }
    return _hmac_base64(signature_key, json.dumps(payload, separators=(",", ":"), ensure_ascii=False))


class PaynowClient(PaymentProvider):
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.api_key = (settings.PAYNOW_API_KEY or "").strip()
        self.signature_key = (settings.PAYNOW_SIGNATURE_KEY or "").strip()
        self.base_url = PAYNOW_BASE_URLS["production" if settings.PAYNOW_ENV == "production" else "sandbox"]

    def _require_keys(self) -> None:
        if not self.api_key or not self.signature_key:
            raise PaymentNotConfigured("Paynow is not configured - missing PAYNOW_API_KEY or PAYNOW_SIGNATURE_KEY")

    async def create_session(
        self,
        amount_cents: int,
        external_id: str,
        description: str,
        buyer_email: str,
        return_url: str,
        notification_url: Optional[str] = None,
    ) -> PaymentSession:
        self._require_keys()

        # notificationUrl is configured in the merchant panel, not sent per payment
        body = {
            "amount": amount_cents,
            "externalId": external_id,
            "description": description,
            "buyer": {"email": buyer_email},
        }
        if return_url:
            body["continueUrl"] = return_url
        raw_body = json.dumps(body, separators=(",", ":"), ensure_ascii=False)

        headers = {
            "Content-Type": "application/json",
            "Api-Key": self.api_key,
            "Signature": sign_request(self.api_key, self.signature_key, external_id, raw_body),
            "Idempotency-Key": external_id,
        }
        try:
            resp = await self.client.post(
                f"{self.base_url}/v3/payments",
                content=raw_body.encode("utf-8"),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"Paynow unreachable: {e}") from e

        if resp.status_code >= 400:
            raise PaymentProviderError(
                f"Paynow payment failed: {resp.status_code} {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise PaymentProviderError("Paynow payment failed: invalid JSON response") from e

        if not data.get("paymentId"):
            raise PaymentProviderError("Paynow payment failed: missing paymentId in response")

        return PaymentSession(payment_id=data["paymentId"], redirect_url=data.get("redirectUrl"))

    def verify_notification_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        if not signature or not self.signature_key:
            return False
        expected = _hmac_base64(self.signature_key, raw_body)
        return hmac.compare_digest(expected, signature)
