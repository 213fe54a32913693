"""
Persistence interface used by the booking intake flow.

The datastore is treated as a transactional black box: every method is its
own unit of work. Seat counters change only through reserve_seats and
release_seats, and reserve_seats must perform the availability check and the
increment as one atomic statement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional


@dataclass(frozen=True)
class TripSnapshot:
    id: int
    title: str
    slug: str
    price_cents: int
    seats_total: int
    seats_reserved: int
    is_active: bool = True
    public_slug: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def seats_left(self) -> int:
        return max(0, self.seats_total - self.seats_reserved)


@dataclass(frozen=True)
class CreatedBooking:
    id: int
    booking_ref: str


@dataclass
class BookingDraft:
    """Everything the booking writer persists for one new booking."""

    trip_id: int
    booking_ref: str
    contact_email: str
    contact_phone: str
    address: Optional[dict]
    consents: dict
    status: str = "confirmed"
    payment_status: str = "unpaid"
    source: str = "public_page"
    contact_first_name: Optional[str] = None
    contact_last_name: Optional[str] = None
    applicant_type: Optional[str] = None
    company_name: Optional[str] = None
    company_nip: Optional[str] = None
    company_address: Optional[dict] = None

    def stable_fields(self) -> dict[str, Any]:
        """Columns present in every schema version; safe for a raw insert."""
        return {
            "trip_id": self.trip_id,
            "booking_ref": self.booking_ref,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "consents": self.consents,
            "status": self.status,
            "payment_status": self.payment_status,
            "source": self.source,
        }

    def optional_fields(self) -> dict[str, Any]:
        """Enrichment columns patched after a raw insert; unset ones are omitted."""
        values = {
            "contact_first_name": self.contact_first_name,
            "contact_last_name": self.contact_last_name,
            "applicant_type": self.applicant_type,
            "company_name": self.company_name,
            "company_nip": self.company_nip,
            "company_address": self.company_address,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class BookingRecord:
    id: int
    booking_ref: str
    trip_id: int
    contact_email: str
    status: str
    payment_status: str


@dataclass
class BookingLookup:
    booking: BookingRecord
    trip: TripSnapshot
    participants: list[tuple[str, str]] = field(default_factory=list)


class BookingStore(ABC):
    """Request-scoped datastore access."""

    @abstractmethod
    async def get_active_trip(self, slug: str) -> Optional[TripSnapshot]:
        """Find an active trip by its slug or public slug."""

    @abstractmethod
    async def reserve_seats(self, trip_id: int, seats: int) -> Optional[TripSnapshot]:
        """
        Atomically increment seats_reserved by `seats` if capacity allows.

        Returns:
            The trip after the increment, or None if nothing was reserved
        """

    @abstractmethod
    async def release_seats(self, trip_id: int, seats: int) -> None:
        """Decrement seats_reserved by `seats`, never below zero."""

    @abstractmethod
    async def call_create_booking(self, draft: BookingDraft) -> Optional[CreatedBooking]:
        """Write the full booking row through the create_booking procedure."""

    @abstractmethod
    async def insert_booking(self, fields: dict[str, Any]) -> Optional[CreatedBooking]:
        """Insert a booking row with the given columns only."""

    @abstractmethod
    async def patch_booking(self, booking_id: int, fields: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_booking(self, booking_id: int) -> None:
        """Delete a booking together with its participants and agreements."""

    @abstractmethod
    async def insert_participants(self, rows: list[dict[str, Any]]) -> int:
        """Insert all rows in one batch; returns the number inserted."""

    @abstractmethod
    async def record_agreement(self, booking_id: int, pdf_url: Optional[str], status: str = "generated") -> None:
        pass

    @abstractmethod
    async def get_booking_by_ref(self, booking_ref: str) -> Optional[BookingRecord]:
        pass

    @abstractmethod
    async def get_booking_by_token(self, access_token: str) -> Optional[BookingLookup]:
        pass

    @abstractmethod
    async def set_payment_status(self, booking_id: int, payment_status: str) -> None:
        pass

    @abstractmethod
    async def record_payment(self, booking_id: int, amount_cents: int, method: str, notes: str) -> None:
        pass


class PrivilegedReader(ABC):
    """
    Reads that must bypass row-level access policy.

    Only used to read back the access token of a booking this process has
    just created; never exposed to request handlers directly.
    """

    @abstractmethod
    async def fetch_access_token(self, booking_id: int) -> Optional[str]:
        pass
