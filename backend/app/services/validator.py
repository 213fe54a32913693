"""
Booking request validation.

Runs before any reservation or write. Field-level rules come from the
BookingCreate schema; applicant-type rules are applied here:

- individual: contact address required, every participant needs a national ID
- company: company name, tax id and address required; the contact address
  defaults to the company address and participant national IDs are optional
"""

from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError

from app.schemas.booking import BookingCreate
from app.core.logging import get_logger

logger = get_logger(__name__)

INVALID_PAYLOAD = "Invalid payload"


def _error_key(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "body"


def _applicant_errors(payload: BookingCreate) -> dict[str, str]:
    errors: dict[str, str] = {}

    if payload.is_company:
        if not payload.company_name:
            errors["company_name"] = "Company name is required"
        if not payload.company_nip:
            errors["company_nip"] = "Company tax id is required"
        if payload.company_address is None:
            errors["company_address"] = "Company address is required"
        return errors

    if payload.address is None:
        errors["address"] = "Address is required"
    for index, participant in enumerate(payload.participants):
        if not participant.national_id:
            errors[f"participants.{index}.national_id"] = "National ID is required"
    return errors


def parse_booking_request(raw: Any) -> BookingCreate:
    """
    Turn an untyped request body into a BookingCreate.
    Raises 400 with a field -> message map on any violation.
    """
    try:
        payload = BookingCreate.model_validate(raw)
    except ValidationError as exc:
        errors = {_error_key(err["loc"]): err["msg"] for err in exc.errors()}
        logger.info("booking_payload_invalid", fields=sorted(errors))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": INVALID_PAYLOAD, "errors": errors},
        )

    errors = _applicant_errors(payload)
    if errors:
        logger.info("booking_payload_invalid", fields=sorted(errors))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": INVALID_PAYLOAD, "errors": errors},
        )

    return payload
