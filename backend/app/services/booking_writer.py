"""
Booking row writer.

Two strategies share one postcondition, a persisted booking row with an id
and a booking_ref:

1. ProcedureStrategy calls the create_booking database function, which
   writes every column in one statement.
2. InsertThenPatchStrategy inserts only the stable column set and then
   patches the optional columns (contact name, company data). A failed
   patch is logged and the booking stands without those fields.

Strategies run in order until one returns a row. If none does, the seat
reservation is released and the request fails with 500.
"""

import secrets
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException, status

from app.schemas.booking import BookingCreate
from app.services.interfaces.booking_store import BookingDraft, BookingStore, CreatedBooking, PrivilegedReader
from app.services.seat_guard import SeatReservation
from app.core.logging import get_logger
from app.core.metrics import booking_writes, booking_rollbacks

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_booking_ref(now_ms: Optional[int] = None) -> str:
    """BK-<base36 millisecond timestamp>-<5 random base36 chars>, upper-cased."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"BK-{_to_base36(now_ms)}-{suffix}".upper()


def build_draft(trip_id: int, payload: BookingCreate, booking_ref: str) -> BookingDraft:
    address = payload.contact_address
    consents = payload.consents.model_dump()
    consents["accepted_at"] = datetime.now(timezone.utc).isoformat()
    # Company details are kept only for company applicants
    company = payload.is_company

    return BookingDraft(
        trip_id=trip_id,
        booking_ref=booking_ref,
        contact_email=str(payload.contact_email),
        contact_phone=payload.contact_phone,
        address=address.model_dump() if address else None,
        consents=consents,
        contact_first_name=payload.contact_first_name,
        contact_last_name=payload.contact_last_name,
        applicant_type="company" if payload.is_company else "individual",
        company_name=payload.company_name if company else None,
        company_nip=payload.company_nip if company else None,
        company_address=payload.company_address.model_dump() if company and payload.company_address else None,
    )


@dataclass(frozen=True)
class WrittenBooking:
    id: int
    booking_ref: str
    access_token: Optional[str]
    strategy: str


class BookingWriteStrategy(ABC):
    name: str = "strategy"

    @abstractmethod
    async def create(self, store: BookingStore, draft: BookingDraft) -> Optional[CreatedBooking]:
        pass


class ProcedureStrategy(BookingWriteStrategy):
    name = "procedure"

    async def create(self, store: BookingStore, draft: BookingDraft) -> Optional[CreatedBooking]:
        return await store.call_create_booking(draft)


class InsertThenPatchStrategy(BookingWriteStrategy):
    name = "insert"

    async def create(self, store: BookingStore, draft: BookingDraft) -> Optional[CreatedBooking]:
        created = await store.insert_booking(draft.stable_fields())
        if created is None:
            return None

        optional = draft.optional_fields()
        if optional:
            try:
                await store.patch_booking(created.id, optional)
            except Exception as e:
                logger.warning(
                    "booking_patch_failed",
                    booking_id=created.id,
                    booking_ref=created.booking_ref,
                    fields=sorted(optional),
                    error=str(e),
                )
        return created


class BookingWriter:
    def __init__(
        self,
        store: BookingStore,
        reader: PrivilegedReader,
        strategies: Optional[list[BookingWriteStrategy]] = None,
    ):
        self.store = store
        self.reader = reader
        self.strategies = strategies or [ProcedureStrategy(), InsertThenPatchStrategy()]

    async def write(self, reservation: SeatReservation, payload: BookingCreate) -> WrittenBooking:
        draft = build_draft(reservation.trip.id, payload, generate_booking_ref())

        created: Optional[CreatedBooking] = None
        used: Optional[BookingWriteStrategy] = None
        last_error: Optional[Exception] = None
        for strategy in self.strategies:
            try:
                created = await strategy.create(self.store, draft)
            except Exception as e:
                last_error = e
                logger.warning(
                    "booking_strategy_failed",
                    strategy=strategy.name,
                    booking_ref=draft.booking_ref,
                    error=str(e),
                )
                continue
            if created is not None:
                used = strategy
                break
            logger.warning("booking_strategy_no_row", strategy=strategy.name, booking_ref=draft.booking_ref)

        if created is None or used is None:
            await reservation.release(reason="booking_write_failed")
            booking_rollbacks.labels(stage="booking").inc()
            logger.error(
                "booking_create_failed",
                trip_id=reservation.trip.id,
                booking_ref=draft.booking_ref,
                error=str(last_error) if last_error else None,
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "message": "Failed to create booking",
                    "reason": str(last_error) if last_error else "no booking row returned",
                },
            )

        booking_writes.labels(strategy=used.name).inc()
        access_token = await self._read_access_token(created)

        logger.info(
            "booking_created",
            booking_id=created.id,
            booking_ref=created.booking_ref,
            trip_id=reservation.trip.id,
            strategy=used.name,
            has_access_token=access_token is not None,
        )
        return WrittenBooking(
            id=created.id,
            booking_ref=created.booking_ref,
            access_token=access_token,
            strategy=used.name,
        )

    async def _read_access_token(self, created: CreatedBooking) -> Optional[str]:
        try:
            return await self.reader.fetch_access_token(created.id)
        except Exception as e:
            logger.warning(
                "access_token_read_failed",
                booking_id=created.id,
                booking_ref=created.booking_ref,
                error=str(e),
            )
            return None
