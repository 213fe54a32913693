"""
Pydantic schemas for booking-related request/response validation.

Field-level rules live here; rules that depend on the applicant type
(individual vs company) are applied in app.services.validator.
"""

from datetime import date
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, StrictBool, field_validator

NATIONAL_ID_PATTERN = r"^\d{11}$"
COMPANY_NIP_PATTERN = r"^\d{10}$"


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class AddressIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    street: str = Field(..., min_length=2)
    city: str = Field(..., min_length=2)
    zip: str = Field(..., min_length=4)


class ParticipantIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    national_id: Optional[str] = Field(
        None,
        pattern=NATIONAL_ID_PATTERN,
        validation_alias=AliasChoices("national_id", "pesel"),
    )
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=7, max_length=50)
    document_type: Optional[Literal["ID", "PASSPORT"]] = None
    document_number: Optional[str] = Field(None, min_length=3, max_length=50)
    address: Optional[AddressIn] = None

    @field_validator("national_id", "email", "phone", "document_type", "document_number", mode="before")
    @classmethod
    def empty_optional_is_absent(cls, value):
        return _blank_to_none(value)


class ConsentsIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_processing: StrictBool = Field(..., validation_alias=AliasChoices("data_processing", "rodo"))
    terms: StrictBool
    conditions: StrictBool

    @field_validator("data_processing", "terms", "conditions")
    @classmethod
    def must_be_accepted(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("Consent must be accepted")
        return value


class BookingCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    slug: str = Field(..., min_length=1)
    applicant_type: Optional[Literal["individual", "company"]] = None

    contact_first_name: Optional[str] = Field(None, max_length=100)
    contact_last_name: Optional[str] = Field(None, max_length=100)
    contact_email: EmailStr
    contact_phone: str = Field(..., min_length=7, max_length=50)
    address: Optional[AddressIn] = None

    company_name: Optional[str] = Field(None, min_length=2, max_length=255)
    company_nip: Optional[str] = Field(None, pattern=COMPANY_NIP_PATTERN)
    company_address: Optional[AddressIn] = None

    participants: list[ParticipantIn] = Field(..., min_length=1)
    consents: ConsentsIn
    with_payment: StrictBool = False

    @field_validator("contact_first_name", "contact_last_name", "company_name", "company_nip", mode="before")
    @classmethod
    def empty_optional_is_absent(cls, value):
        return _blank_to_none(value)

    @field_validator("address", "company_address", mode="before")
    @classmethod
    def empty_address_is_absent(cls, value):
        if isinstance(value, dict) and all(_blank_to_none(v) is None for v in value.values()):
            return None
        return value

    @property
    def is_company(self) -> bool:
        if self.applicant_type is not None:
            return self.applicant_type == "company"
        return any((self.company_name, self.company_nip, self.company_address))

    @property
    def contact_address(self) -> Optional[AddressIn]:
        """Contact address, falling back to the company address for company bookings."""
        if self.address is not None:
            return self.address
        if self.is_company:
            return self.company_address
        return None


class BookingCreatedResponse(BaseModel):
    booking_ref: str
    agreement_pdf_url: Optional[str] = None
    booking_url: str
    redirect_url: Optional[str] = None


class ParticipantSummary(BaseModel):
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class BookingLookupResponse(BaseModel):
    booking_ref: str
    status: str
    payment_status: str
    contact_email: str
    trip_title: str
    trip_start_date: Optional[date] = None
    trip_end_date: Optional[date] = None
    participants: list[ParticipantSummary]
    amount_due_cents: int
