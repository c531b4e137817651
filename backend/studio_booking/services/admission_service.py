"""
Admission controller: confirm-or-waitlist decisions and cancellations.

CONCURRENCY STRATEGY: One atomic admission unit per slot key
=============================================================

Problem:
  Capacity check and insert as separate statements is a check-then-act race.
  Two requests for the last spot both count 1 confirmed of capacity 2,
  both insert "confirmed", and the session ends up with 3.
  The same race hands out duplicate waitlist positions and lets one member
  book the same session twice.

Solution:
  Every operation that reads or changes the admission state of a session
  runs as one unit:

    slot_lock.hold(class_id, date, time)      <- waits at most N seconds
      BEGIN
        member / class / schedule lookups
        duplicate check
        count confirmed, confirm or enqueue   (or: cancel + promote / close gap)
        lease.verify()                        <- lock still ours, else roll back
      COMMIT
    release

  The lock is taken *before* the transaction, so a request that times out
  on the lock has done nothing and can be retried safely
  (AdmissionContentionError). Units for different sessions use different
  lock keys and never wait on each other.

  The partial unique index on active bookings is the storage-level backstop
  for duplicates if a deployment ever runs without a shared lock backend.

Alternatives considered:
  - SERIALIZABLE transactions with retry: correct on Postgres, but retry
    storms under a popular class and no bounded wait.
  - SELECT FOR UPDATE on the class row: serializes every session of a class,
    not just one date and time.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studio_booking.core.config import get_settings
from studio_booking.core.exceptions import (
    BookingError,
    CancellationWindowClosedError,
    DuplicateBookingError,
    InternalError,
    NotFoundError,
)
from studio_booking.core.logging import get_logger
from studio_booking.core.metrics import admission_latency, record_admission, record_cancellation
from studio_booking.models.booking import BookingStatus, ClassBooking
from studio_booking.services import waitlist_service
from studio_booking.services.booking_state import assert_booking_transition
from studio_booking.services.catalog_service import ensure_member_exists, get_session_capacity
from studio_booking.services.duplicate_detector import ensure_no_active_booking
from studio_booking.services.interfaces.slot_lock import SlotLock
from studio_booking.services.slot_key import SlotKey, resolve_slot_key
from studio_booking.services.validation import NormalizedBookingRequest

logger = get_logger(__name__)

_OUTCOMES = {
    "ValidationError": "invalid",
    "NotFoundError": "not_found",
    "DuplicateBookingError": "duplicate",
    "AdmissionContentionError": "contention",
    "InvalidStateTransitionError": "invalid_transition",
    "InternalError": "error",
}


@dataclass(frozen=True)
class AdmissionResult:
    booking_id: int
    status: BookingStatus
    slot_key: SlotKey
    position: Optional[int] = None


@dataclass(frozen=True)
class CancellationResult:
    booking_id: int
    previous_status: BookingStatus
    promoted_booking_id: Optional[int] = None


async def count_confirmed(db: AsyncSession, slot_key: SlotKey) -> int:
    result = await db.execute(
        select(func.count(ClassBooking.id)).where(
            ClassBooking.class_id == slot_key.class_id,
            ClassBooking.booking_date == slot_key.date,
            ClassBooking.booking_time == slot_key.time,
            ClassBooking.status == BookingStatus.CONFIRMED,
        )
    )
    return int(result.scalar_one())


async def _confirm(db: AsyncSession, request: NormalizedBookingRequest, slot_key: SlotKey) -> ClassBooking:
    booking = ClassBooking(
        user_id=request.user_id,
        class_id=slot_key.class_id,
        booking_date=slot_key.date,
        booking_time=slot_key.time,
        location=request.location,
        status=BookingStatus.CONFIRMED,
    )
    db.add(booking)
    await db.flush()
    return booking


async def admit(
    request: NormalizedBookingRequest,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    slot_lock: SlotLock,
) -> AdmissionResult:
    """
    Confirm the request if the session has room, otherwise append it to the waitlist.

    Raises:
        NotFoundError: unknown member, class, capacity or schedule slot
        DuplicateBookingError: the member already holds an active booking here
        AdmissionContentionError: the session stayed locked past the wait bound
        InternalError: storage failure, nothing was committed
    """
    slot_key = resolve_slot_key(request)

    try:
        async with slot_lock.hold(slot_key) as lease:
            started = time.perf_counter()
            try:
                async with session_factory() as db:
                    async with db.begin():
                        await ensure_member_exists(db, request.user_id)
                        capacity = await get_session_capacity(db, slot_key)
                        await ensure_no_active_booking(db, request.user_id, slot_key)

                        confirmed = await count_confirmed(db, slot_key)
                        if confirmed < capacity:
                            booking = await _confirm(db, request, slot_key)
                        else:
                            booking = await waitlist_service.enqueue(db, request, slot_key)

                        result = AdmissionResult(
                            booking_id=booking.id,
                            status=booking.status,
                            slot_key=slot_key,
                            position=booking.waitlist_position,
                        )
                        await lease.verify()
            finally:
                admission_latency.observe(time.perf_counter() - started)
    except BookingError as e:
        record_admission(_OUTCOMES.get(e.kind, "error"))
        raise
    except IntegrityError as e:
        if "unique" not in str(e.orig).lower():
            record_admission("error")
            logger.error("admission_integrity_error", slot=str(slot_key), error=str(e.orig))
            raise InternalError() from e
        # Only reachable when two units for one session ran without a shared lock
        record_admission("duplicate")
        logger.warning("booking_duplicate_index", user_id=request.user_id, slot=str(slot_key))
        raise DuplicateBookingError(None, None) from e
    except SQLAlchemyError as e:
        record_admission("error")
        logger.error("admission_storage_error", slot=str(slot_key), error=str(e))
        raise InternalError() from e

    record_admission(result.status.value)
    if result.status is BookingStatus.CONFIRMED:
        logger.info(
            "booking_confirmed",
            booking_id=result.booking_id,
            user_id=request.user_id,
            slot=str(slot_key),
            confirmed_before=confirmed,
            capacity=capacity,
        )
    return result


def _check_cancellation_window(
    booking: ClassBooking,
    now: datetime,
    cutoff_hours: int,
    tz: ZoneInfo,
) -> None:
    if cutoff_hours <= 0:
        return
    starts_at = booking.slot_key.starts_at(tz)
    if now >= starts_at - timedelta(hours=cutoff_hours):
        raise CancellationWindowClosedError(booking.id, cutoff_hours)


async def _load_booking(db: AsyncSession, booking_id: int) -> ClassBooking:
    result = await db.execute(
        select(ClassBooking)
        .where(ClassBooking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


async def cancel_booking(
    booking_id: int,
    *,
    session_factory: async_sessionmaker[AsyncSession],
    slot_lock: SlotLock,
    now: Optional[datetime] = None,
    cutoff_hours: Optional[int] = None,
) -> CancellationResult:
    """
    Cancel a booking and, in the same unit, hand its place on.

    - confirmed -> cancelled: the head of the waitlist (if any) is confirmed
      and the remaining queue moves up one place
    - waitlisted -> cancelled: later waitlist positions move up one place

    Raises:
        NotFoundError: unknown booking id
        InvalidStateTransitionError: booking is already cancelled
        CancellationWindowClosedError: confirmed session starts too soon
        AdmissionContentionError / InternalError: as for admit()
    """
    settings = get_settings()
    tz = ZoneInfo(settings.STUDIO_TIMEZONE)
    now = now or datetime.now(timezone.utc)
    if cutoff_hours is None:
        cutoff_hours = settings.CANCELLATION_CUTOFF_HOURS

    try:
        # The slot key is immutable, so an unlocked read is enough to find the lock
        async with session_factory() as db:
            booking = await _load_booking(db, booking_id)
            slot_key = booking.slot_key
            assert_booking_transition(booking, BookingStatus.CANCELLED)

        async with slot_lock.hold(slot_key) as lease:
            async with session_factory() as db:
                async with db.begin():
                    # Re-read under the lock: the status may have moved since
                    booking = await _load_booking(db, booking_id)
                    assert_booking_transition(booking, BookingStatus.CANCELLED)

                    previous_status = BookingStatus(booking.status)
                    vacated_position = booking.waitlist_position
                    if previous_status is BookingStatus.CONFIRMED:
                        _check_cancellation_window(booking, now, cutoff_hours, tz)

                    booking.status = BookingStatus.CANCELLED
                    booking.waitlist_position = None
                    booking.cancelled_at = now
                    booking.updated_at = now
                    await db.flush()

                    promoted = None
                    if previous_status is BookingStatus.CONFIRMED:
                        promoted = await waitlist_service.promote_next(db, slot_key)
                    else:
                        await waitlist_service.close_gap(db, slot_key, vacated_position)

                    result = CancellationResult(
                        booking_id=booking.id,
                        previous_status=previous_status,
                        promoted_booking_id=promoted.id if promoted else None,
                    )
                    await lease.verify()
    except SQLAlchemyError as e:
        logger.error("cancellation_storage_error", booking_id=booking_id, error=str(e))
        raise InternalError() from e

    record_cancellation(result.previous_status.value, promoted=result.promoted_booking_id is not None)
    logger.info(
        "booking_cancelled",
        booking_id=booking_id,
        slot=str(slot_key),
        previous_status=result.previous_status.value,
        promoted_booking_id=result.promoted_booking_id,
    )
    return result
