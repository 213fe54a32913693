"""
Errors raised by outbound collaborators (PDF service, email API, payment provider).

Request-level failures are raised as FastAPI HTTPException from the services;
these exceptions never reach a client. The fulfillment orchestrator catches
them at each step boundary and logs them.
"""

from typing import Optional


class ExternalServiceError(Exception):
    """Base class for failures of an external collaborator."""

    service: str = "external"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PdfRenderError(ExternalServiceError):
    service = "pdf"


class EmailNotConfigured(ExternalServiceError):
    service = "email"


class EmailSendError(ExternalServiceError):
    service = "email"


class PaymentNotConfigured(ExternalServiceError):
    service = "payment"


class PaymentProviderError(ExternalServiceError):
    service = "payment"
