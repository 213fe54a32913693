"""
SQLAlchemy implementation of the booking datastore.

Each primitive runs in its own transaction and commits before returning, so
a later failure in the request is undone by compensating calls
(release_seats, delete_booking) rather than by a single rollback.

Seat reservation is a single conditional UPDATE:

    UPDATE trips SET seats_reserved = seats_reserved + :n
    WHERE id = :trip_id AND is_active AND seats_reserved + :n <= seats_total

The new counters come back through RETURNING in the same transaction, so a
reservation is never committed without the caller getting its snapshot.
Concurrent requests for the last seats serialize on the row lock taken by
the UPDATE; the loser gets no row back and nothing is reserved. The CHECK
constraints on trips are the final safety net.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, Optional

from sqlalchemy import case, delete, or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.models import Agreement, Booking, Participant, PaymentHistory, Trip
from app.services.interfaces.booking_store import (
    BookingDraft,
    BookingLookup,
    BookingRecord,
    BookingStore,
    CreatedBooking,
    PrivilegedReader,
    TripSnapshot,
)
from app.core.logging import get_logger

logger = get_logger(__name__)

CREATE_BOOKING_SQL = text(
    """
    SELECT id, booking_ref FROM create_booking(
        :trip_id, :booking_ref,
        :contact_first_name, :contact_last_name, :contact_email, :contact_phone,
        CAST(:address AS json),
        :applicant_type, :company_name, :company_nip, CAST(:company_address AS json),
        CAST(:consents AS json),
        :status, :payment_status, :source
    )
    """
)


_SNAPSHOT_COLUMNS = (
    Trip.id,
    Trip.title,
    Trip.slug,
    Trip.public_slug,
    Trip.start_date,
    Trip.end_date,
    Trip.price_cents,
    Trip.seats_total,
    Trip.seats_reserved,
    Trip.is_active,
)


def _snapshot(trip) -> TripSnapshot:
    """Build from a Trip instance or a row carrying the _SNAPSHOT_COLUMNS."""
    return TripSnapshot(
        id=trip.id,
        title=trip.title,
        slug=trip.slug,
        public_slug=trip.public_slug,
        start_date=trip.start_date,
        end_date=trip.end_date,
        price_cents=trip.price_cents or 0,
        seats_total=trip.seats_total or 0,
        seats_reserved=trip.seats_reserved or 0,
        is_active=bool(trip.is_active),
    )


def _record(booking: Booking) -> BookingRecord:
    return BookingRecord(
        id=booking.id,
        booking_ref=booking.booking_ref,
        trip_id=booking.trip_id,
        contact_email=booking.contact_email,
        status=booking.status,
        payment_status=booking.payment_status,
    )


def _json_param(value: Optional[dict]) -> Optional[str]:
    return json.dumps(value, ensure_ascii=False) if value is not None else None


class SqlBookingStore(BookingStore):
    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _transaction(self):
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def get_active_trip(self, slug: str) -> Optional[TripSnapshot]:
        result = await self.session.execute(
            select(Trip)
            .where(
                or_(Trip.slug == slug, Trip.public_slug == slug),
                Trip.is_active.is_(True),
            )
            .order_by(Trip.id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        trip = result.scalar_one_or_none()
        return _snapshot(trip) if trip else None

    async def reserve_seats(self, trip_id: int, seats: int) -> Optional[TripSnapshot]:
        async with self._transaction():
            result = await self.session.execute(
                update(Trip)
                .where(
                    Trip.id == trip_id,
                    Trip.is_active.is_(True),
                    Trip.seats_reserved + seats <= Trip.seats_total,
                )
                .values(seats_reserved=Trip.seats_reserved + seats)
                .returning(*_SNAPSHOT_COLUMNS)
                .execution_options(synchronize_session=False)
            )
            row = result.first()
        return _snapshot(row) if row is not None else None

    async def release_seats(self, trip_id: int, seats: int) -> None:
        async with self._transaction():
            await self.session.execute(
                update(Trip)
                .where(Trip.id == trip_id)
                .values(
                    seats_reserved=case(
                        (Trip.seats_reserved >= seats, Trip.seats_reserved - seats),
                        else_=0,
                    )
                )
                .execution_options(synchronize_session=False)
            )

    async def call_create_booking(self, draft: BookingDraft) -> Optional[CreatedBooking]:
        async with self._transaction():
            result = await self.session.execute(
                CREATE_BOOKING_SQL,
                {
                    "trip_id": draft.trip_id,
                    "booking_ref": draft.booking_ref,
                    "contact_first_name": draft.contact_first_name,
                    "contact_last_name": draft.contact_last_name,
                    "contact_email": draft.contact_email,
                    "contact_phone": draft.contact_phone,
                    "address": _json_param(draft.address),
                    "applicant_type": draft.applicant_type,
                    "company_name": draft.company_name,
                    "company_nip": draft.company_nip,
                    "company_address": _json_param(draft.company_address),
                    "consents": _json_param(draft.consents),
                    "status": draft.status,
                    "payment_status": draft.payment_status,
                    "source": draft.source,
                },
            )
            row = result.first()
        if row is None or row.id is None:
            return None
        return CreatedBooking(id=row.id, booking_ref=row.booking_ref)

    async def insert_booking(self, fields: dict[str, Any]) -> Optional[CreatedBooking]:
        async with self._transaction():
            booking = Booking(**fields)
            self.session.add(booking)
            await self.session.flush()
            created = CreatedBooking(id=booking.id, booking_ref=booking.booking_ref)
        return created

    async def patch_booking(self, booking_id: int, fields: dict[str, Any]) -> None:
        async with self._transaction():
            await self.session.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )

    async def delete_booking(self, booking_id: int) -> None:
        # Explicit child deletes; not every backend enforces ON DELETE CASCADE
        async with self._transaction():
            await self.session.execute(delete(Participant).where(Participant.booking_id == booking_id))
            await self.session.execute(delete(Agreement).where(Agreement.booking_id == booking_id))
            await self.session.execute(delete(Booking).where(Booking.id == booking_id))

    async def insert_participants(self, rows: list[dict[str, Any]]) -> int:
        async with self._transaction():
            participants = [Participant(**row) for row in rows]
            self.session.add_all(participants)
            await self.session.flush()
        return len(participants)

    async def record_agreement(self, booking_id: int, pdf_url: Optional[str], status: str = "generated") -> None:
        async with self._transaction():
            self.session.add(Agreement(booking_id=booking_id, pdf_url=pdf_url, status=status))

    async def get_booking_by_ref(self, booking_ref: str) -> Optional[BookingRecord]:
        result = await self.session.execute(
            select(Booking).where(Booking.booking_ref == booking_ref).execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        return _record(booking) if booking else None

    async def get_booking_by_token(self, access_token: str) -> Optional[BookingLookup]:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.access_token == access_token)
            .options(selectinload(Booking.trip), selectinload(Booking.participants))
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            return None
        participants = sorted(booking.participants, key=lambda p: p.id)
        return BookingLookup(
            booking=_record(booking),
            trip=_snapshot(booking.trip),
            participants=[(p.first_name, p.last_name) for p in participants],
        )

    async def set_payment_status(self, booking_id: int, payment_status: str) -> None:
        async with self._transaction():
            await self.session.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values(payment_status=payment_status)
                .execution_options(synchronize_session=False)
            )

    async def record_payment(self, booking_id: int, amount_cents: int, method: str, notes: str) -> None:
        async with self._transaction():
            self.session.add(
                PaymentHistory(
                    booking_id=booking_id,
                    amount_cents=amount_cents,
                    payment_method=method,
                    notes=notes,
                )
            )


class SqlPrivilegedReader(PrivilegedReader):
    """Reads access tokens through the privileged (admin) session factory."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def fetch_access_token(self, booking_id: int) -> Optional[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Booking.access_token).where(Booking.id == booking_id)
            )
            return result.scalar_one_or_none()
