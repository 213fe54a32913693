"""
Pytest fixtures for the booking API.

API tests run against an in-memory BookingStore and recording fakes for the
PDF renderer, email sender and payment provider, wired in through FastAPI
dependency overrides. SQL store tests use their own SQLite engine
(see test_sql_booking_store.py).
"""

import asyncio
import itertools
import os
import secrets
from dataclasses import replace
from datetime import date
from typing import Any, AsyncGenerator, Optional

# Settings are read once at import time; configure the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("PUBLIC_BASE_URL", "https://trips.example.com")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.api import deps
from app.core.exceptions import EmailSendError, PaymentProviderError, PdfRenderError
from app.services.interfaces import (
    BookingDraft,
    BookingLookup,
    BookingRecord,
    BookingStore,
    CreatedBooking,
    EmailAttachment,
    EmailSender,
    PaymentProvider,
    PaymentSession,
    PdfRenderer,
    PrivilegedReader,
    RenderedPdf,
    TripSnapshot,
)

BASE_URL = "https://trips.example.com"
VALID_SIGNATURE = "valid-signature"


class FakeBookingStore(BookingStore):
    """
    Dict-backed store. reserve_seats checks and increments without awaiting
    in between, which makes it atomic on the event loop just like the
    conditional UPDATE is in the database.
    """

    def __init__(self):
        self.trips: dict[int, TripSnapshot] = {}
        self.bookings: dict[int, dict[str, Any]] = {}
        self.participants: list[dict[str, Any]] = []
        self.agreements: list[dict[str, Any]] = []
        self.payments: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self._ids = itertools.count(1)

        self.trip_lookup_error: Optional[Exception] = None
        self.procedure_error: Optional[Exception] = None
        self.insert_error: Optional[Exception] = None
        self.patch_error: Optional[Exception] = None
        self.participants_error: Optional[Exception] = None
        self.agreement_error: Optional[Exception] = None

    def add_trip(self, **fields) -> TripSnapshot:
        trip_id = len(self.trips) + 1
        values = {
            "id": trip_id,
            "title": "Tatra Mountains Weekend",
            "slug": f"trip-{trip_id}",
            "price_cents": 45000,
            "seats_total": 10,
            "seats_reserved": 0,
            "start_date": date(2026, 7, 10),
            "end_date": date(2026, 7, 12),
        }
        values.update(fields)
        trip = TripSnapshot(**values)
        self.trips[trip.id] = trip
        return trip

    def participants_of(self, booking_id: int) -> list[dict[str, Any]]:
        return [row for row in self.participants if row["booking_id"] == booking_id]

    def booking_by_ref(self, booking_ref: str) -> Optional[dict[str, Any]]:
        for booking in self.bookings.values():
            if booking["booking_ref"] == booking_ref:
                return booking
        return None

    async def get_active_trip(self, slug: str) -> Optional[TripSnapshot]:
        self.calls.append("get_active_trip")
        if self.trip_lookup_error:
            raise self.trip_lookup_error
        # Yield so concurrent requests interleave between the read and the reserve
        await asyncio.sleep(0)
        for trip in self.trips.values():
            if trip.is_active and slug in (trip.slug, trip.public_slug):
                return trip
        return None

    async def reserve_seats(self, trip_id: int, seats: int) -> Optional[TripSnapshot]:
        self.calls.append("reserve_seats")
        trip = self.trips.get(trip_id)
        if trip is None or not trip.is_active or trip.seats_reserved + seats > trip.seats_total:
            return None
        trip = replace(trip, seats_reserved=trip.seats_reserved + seats)
        self.trips[trip_id] = trip
        return trip

    async def release_seats(self, trip_id: int, seats: int) -> None:
        self.calls.append("release_seats")
        trip = self.trips[trip_id]
        self.trips[trip_id] = replace(trip, seats_reserved=max(0, trip.seats_reserved - seats))

    def _store_booking(self, fields: dict[str, Any]) -> CreatedBooking:
        booking_id = next(self._ids)
        row = {"access_token": secrets.token_urlsafe(16), **fields, "id": booking_id}
        self.bookings[booking_id] = row
        return CreatedBooking(id=booking_id, booking_ref=row["booking_ref"])

    async def call_create_booking(self, draft: BookingDraft) -> Optional[CreatedBooking]:
        self.calls.append("call_create_booking")
        if self.procedure_error:
            raise self.procedure_error
        return self._store_booking({**draft.stable_fields(), **draft.optional_fields()})

    async def insert_booking(self, fields: dict[str, Any]) -> Optional[CreatedBooking]:
        self.calls.append("insert_booking")
        if self.insert_error:
            raise self.insert_error
        return self._store_booking(dict(fields))

    async def patch_booking(self, booking_id: int, fields: dict[str, Any]) -> None:
        self.calls.append("patch_booking")
        if self.patch_error:
            raise self.patch_error
        self.bookings[booking_id].update(fields)

    async def delete_booking(self, booking_id: int) -> None:
        self.calls.append("delete_booking")
        self.bookings.pop(booking_id, None)
        self.participants = [row for row in self.participants if row["booking_id"] != booking_id]
        self.agreements = [row for row in self.agreements if row["booking_id"] != booking_id]

    async def insert_participants(self, rows: list[dict[str, Any]]) -> int:
        self.calls.append("insert_participants")
        if self.participants_error:
            raise self.participants_error
        self.participants.extend(dict(row) for row in rows)
        return len(rows)

    async def record_agreement(self, booking_id: int, pdf_url: Optional[str], status: str = "generated") -> None:
        self.calls.append("record_agreement")
        if self.agreement_error:
            raise self.agreement_error
        self.agreements.append({"booking_id": booking_id, "pdf_url": pdf_url, "status": status})

    def _record(self, row: dict[str, Any]) -> BookingRecord:
        return BookingRecord(
            id=row["id"],
            booking_ref=row["booking_ref"],
            trip_id=row["trip_id"],
            contact_email=row["contact_email"],
            status=row["status"],
            payment_status=row["payment_status"],
        )

    async def get_booking_by_ref(self, booking_ref: str) -> Optional[BookingRecord]:
        row = self.booking_by_ref(booking_ref)
        return self._record(row) if row else None

    async def get_booking_by_token(self, access_token: str) -> Optional[BookingLookup]:
        for row in self.bookings.values():
            if row.get("access_token") == access_token:
                return BookingLookup(
                    booking=self._record(row),
                    trip=self.trips[row["trip_id"]],
                    participants=[(p["first_name"], p["last_name"]) for p in self.participants_of(row["id"])],
                )
        return None

    async def set_payment_status(self, booking_id: int, payment_status: str) -> None:
        self.calls.append("set_payment_status")
        self.bookings[booking_id]["payment_status"] = payment_status

    async def record_payment(self, booking_id: int, amount_cents: int, method: str, notes: str) -> None:
        self.calls.append("record_payment")
        self.payments.append(
            {"booking_id": booking_id, "amount_cents": amount_cents, "method": method, "notes": notes}
        )


class FakePrivilegedReader(PrivilegedReader):
    def __init__(self, store: FakeBookingStore):
        self.store = store
        self.error: Optional[Exception] = None

    async def fetch_access_token(self, booking_id: int) -> Optional[str]:
        if self.error:
            raise self.error
        row = self.store.bookings.get(booking_id)
        return row.get("access_token") if row else None


class FakePdfRenderer(PdfRenderer):
    def __init__(self):
        self.calls: list[dict[str, Any]] = []
        self.fail = False

    async def render(self, booking_ref, trip_info, contact, company, participants) -> RenderedPdf:
        self.calls.append(
            {
                "booking_ref": booking_ref,
                "trip": trip_info,
                "contact": contact,
                "company": company,
                "participants": participants,
            }
        )
        if self.fail:
            raise PdfRenderError("PDF service returned 502", status_code=502)
        return RenderedPdf(
            base64="JVBERi0xLjQK",
            filename=f"umowa-{booking_ref}.pdf",
            url=f"https://files.example.com/agreements/{booking_ref}.pdf",
        )


class FakeEmailSender(EmailSender):
    def __init__(self):
        self.sent: list[dict[str, Any]] = []
        self.fail = False

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        attachment: Optional[EmailAttachment] = None,
    ) -> None:
        if self.fail:
            raise EmailSendError("Email API returned 500", status_code=500)
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text, "attachment": attachment})


class FakePaymentProvider(PaymentProvider):
    def __init__(self):
        self.sessions: list[dict[str, Any]] = []
        self.fail = False

    async def create_session(
        self,
        amount_cents: int,
        external_id: str,
        description: str,
        buyer_email: str,
        return_url: str,
        notification_url: Optional[str] = None,
    ) -> PaymentSession:
        self.sessions.append(
            {
                "amount_cents": amount_cents,
                "external_id": external_id,
                "description": description,
                "buyer_email": buyer_email,
                "return_url": return_url,
                "notification_url": notification_url,
            }
        )
        if self.fail:
            raise PaymentProviderError("Paynow payment failed: 400", status_code=400)
        payment_id = f"PAY-{len(self.sessions)}"
        return PaymentSession(payment_id=payment_id, redirect_url=f"https://paywall.example.com/{payment_id}")

    def verify_notification_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        return signature == VALID_SIGNATURE


def booking_payload(slug: str, participants: int = 2, **overrides) -> dict[str, Any]:
    """A valid individual booking request body."""
    payload = {
        "slug": slug,
        "applicant_type": "individual",
        "contact_first_name": "Anna",
        "contact_last_name": "Kowalska",
        "contact_email": "anna.kowalska@example.com",
        "contact_phone": "+48 600 100 200",
        "address": {"street": "Długa 5", "city": "Kraków", "zip": "30-001"},
        "participants": [
            {
                "first_name": f"Guest{i}",
                "last_name": "Kowalski",
                "national_id": f"9001011234{i % 10}",
            }
            for i in range(participants)
        ],
        "consents": {"data_processing": True, "terms": True, "conditions": True},
        "with_payment": False,
    }
    payload.update(overrides)
    return payload


def company_payload(slug: str, participants: int = 2, **overrides) -> dict[str, Any]:
    """A valid company booking: no contact address, no participant national IDs."""
    payload = {
        "slug": slug,
        "applicant_type": "company",
        "contact_first_name": "Piotr",
        "contact_last_name": "Nowak",
        "contact_email": "office@acme.example.com",
        "contact_phone": "+48 22 555 0101",
        "company_name": "Acme Sp. z o.o.",
        "company_nip": "5250001090",
        "company_address": {"street": "Marszałkowska 10", "city": "Warszawa", "zip": "00-001"},
        "participants": [
            {"first_name": f"Employee{i}", "last_name": "Acme"} for i in range(participants)
        ],
        "consents": {"data_processing": True, "terms": True, "conditions": True},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def store() -> FakeBookingStore:
    return FakeBookingStore()


@pytest.fixture
def reader(store: FakeBookingStore) -> FakePrivilegedReader:
    return FakePrivilegedReader(store)


@pytest.fixture
def pdf_renderer() -> FakePdfRenderer:
    return FakePdfRenderer()


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def payment_provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture
def trip(store: FakeBookingStore) -> TripSnapshot:
    """Active trip, 10 seats, 3 already reserved, 450.00 per seat."""
    return store.add_trip(slug="tatry-2026", public_slug="tatry", seats_reserved=3)


@pytest.fixture
def full_trip(store: FakeBookingStore) -> TripSnapshot:
    return store.add_trip(slug="full-trip", seats_total=10, seats_reserved=10)


@pytest_asyncio.fixture(scope="function")
async def client(
    store: FakeBookingStore,
    reader: FakePrivilegedReader,
    pdf_renderer: FakePdfRenderer,
    email_sender: FakeEmailSender,
    payment_provider: FakePaymentProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the datastore and every outbound collaborator replaced by fakes."""
    app.dependency_overrides[deps.get_booking_store] = lambda: store
    app.dependency_overrides[deps.get_privileged_reader] = lambda: reader
    app.dependency_overrides[deps.get_pdf_renderer] = lambda: pdf_renderer
    app.dependency_overrides[deps.get_email_sender] = lambda: email_sender
    app.dependency_overrides[deps.get_payment_provider] = lambda: payment_provider

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
