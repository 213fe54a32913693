"""
Tests for booking reference generation and the write strategies.
"""

import re

import pytest
from fastapi import HTTPException

from app.services.booking_writer import (
    BookingWriter,
    InsertThenPatchStrategy,
    ProcedureStrategy,
    build_draft,
    generate_booking_ref,
)
from app.services.seat_guard import SeatReservation
from app.services.validator import parse_booking_request
from conftest import FakeBookingStore, FakePrivilegedReader, booking_payload, company_payload


def test_booking_ref_format():
    ref = generate_booking_ref()
    assert re.match(r"^BK-[0-9A-Z]+-[0-9A-Z]{5}$", ref)


def test_booking_ref_encodes_timestamp():
    assert generate_booking_ref(now_ms=0).startswith("BK-0-")
    assert generate_booking_ref(now_ms=35).startswith("BK-Z-")
    assert generate_booking_ref(now_ms=36).startswith("BK-10-")
    assert generate_booking_ref(now_ms=36 ** 3 - 1).startswith("BK-ZZZ-")


def test_booking_refs_are_unique():
    refs = {generate_booking_ref(now_ms=1_700_000_000_000) for _ in range(50)}
    assert len(refs) == 50


def test_draft_splits_stable_and_optional_fields():
    payload = parse_booking_request(company_payload("tatry"))
    draft = build_draft(7, payload, "BK-TEST-00001")

    stable = draft.stable_fields()
    assert stable["trip_id"] == 7
    assert stable["booking_ref"] == "BK-TEST-00001"
    assert stable["address"]["city"] == "Warszawa"
    assert "accepted_at" in stable["consents"]

    optional = draft.optional_fields()
    assert optional["applicant_type"] == "company"
    assert optional["company_name"] == "Acme Sp. z o.o."


def test_draft_omits_unset_optional_fields():
    raw = booking_payload("tatry")
    del raw["contact_first_name"]
    del raw["contact_last_name"]
    draft = build_draft(1, parse_booking_request(raw), "BK-TEST-00002")

    assert draft.optional_fields() == {"applicant_type": "individual"}


def test_individual_draft_drops_company_fields():
    raw = booking_payload(
        "tatry",
        company_name="Acme Sp. z o.o.",
        company_nip="5250001090",
        company_address={"street": "Marszałkowska 10", "city": "Warszawa", "zip": "00-001"},
    )
    draft = build_draft(1, parse_booking_request(raw), "BK-TEST-00003")

    assert draft.applicant_type == "individual"
    assert draft.company_name is None
    assert draft.company_nip is None
    assert draft.company_address is None
    assert "company_name" not in draft.optional_fields()


@pytest.fixture
def reservation(store: FakeBookingStore, trip) -> SeatReservation:
    return SeatReservation(store, trip, 2)


@pytest.mark.asyncio
async def test_writer_prefers_procedure(store, reader, reservation):
    writer = BookingWriter(store, reader)

    written = await writer.write(reservation, parse_booking_request(booking_payload("tatry-2026")))

    assert written.strategy == ProcedureStrategy.name
    assert "insert_booking" not in store.calls
    assert written.access_token == store.bookings[written.id]["access_token"]


@pytest.mark.asyncio
async def test_writer_falls_back_when_procedure_returns_nothing(store, reader, reservation):
    class EmptyProcedure(ProcedureStrategy):
        async def create(self, store, draft):
            return None

    writer = BookingWriter(store, reader, strategies=[EmptyProcedure(), InsertThenPatchStrategy()])

    written = await writer.write(reservation, parse_booking_request(booking_payload("tatry-2026")))

    assert written.strategy == InsertThenPatchStrategy.name
    assert store.bookings[written.id]["contact_last_name"] == "Kowalska"


@pytest.mark.asyncio
async def test_writer_token_read_failure_returns_none(store, reservation):
    reader = FakePrivilegedReader(store)
    reader.error = RuntimeError("permission denied")
    writer = BookingWriter(store, reader)

    written = await writer.write(reservation, parse_booking_request(booking_payload("tatry-2026")))

    assert written.access_token is None
    assert written.id in store.bookings


@pytest.mark.asyncio
async def test_writer_releases_seats_when_all_strategies_fail(store, reader, trip):
    reserved = await store.reserve_seats(trip.id, 2)
    reservation = SeatReservation(store, reserved, 2)
    store.procedure_error = RuntimeError("procedure missing")
    store.insert_error = RuntimeError("insert rejected")
    writer = BookingWriter(store, reader)

    with pytest.raises(HTTPException) as exc_info:
        await writer.write(reservation, parse_booking_request(booking_payload("tatry-2026")))

    assert exc_info.value.status_code == 500
    assert exc_info.value.detail["reason"] == "insert rejected"
    assert reservation.released is True
    assert store.trips[trip.id].seats_reserved == trip.seats_reserved
