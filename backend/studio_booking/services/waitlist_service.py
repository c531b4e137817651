"""
Waitlist manager: FIFO positions per class session.

Every function here expects to run inside an admission unit (slot lock held,
transaction open). Positions are derived from the rows themselves on each
call; there is no cached counter that could drift from the table.

Position invariant: the waitlisted rows of one session always carry exactly
1..k. Enqueue appends k+1; anything leaving the queue closes the gap it
left by shifting every later position down by one.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.logging import get_logger
from studio_booking.models.booking import BookingStatus, ClassBooking
from studio_booking.services.booking_state import assert_booking_transition
from studio_booking.services.slot_key import SlotKey
from studio_booking.services.validation import NormalizedBookingRequest

logger = get_logger(__name__)


def _in_session(slot_key: SlotKey):
    return (
        ClassBooking.class_id == slot_key.class_id,
        ClassBooking.booking_date == slot_key.date,
        ClassBooking.booking_time == slot_key.time,
    )


async def next_position(db: AsyncSession, slot_key: SlotKey) -> int:
    result = await db.execute(
        select(func.coalesce(func.max(ClassBooking.waitlist_position), 0)).where(
            *_in_session(slot_key),
            ClassBooking.status == BookingStatus.WAITLISTED,
        )
    )
    return int(result.scalar_one()) + 1


async def enqueue(db: AsyncSession, request: NormalizedBookingRequest, slot_key: SlotKey) -> ClassBooking:
    """Insert a waitlisted booking at the back of the queue."""
    position = await next_position(db, slot_key)

    booking = ClassBooking(
        user_id=request.user_id,
        class_id=slot_key.class_id,
        booking_date=slot_key.date,
        booking_time=slot_key.time,
        location=request.location,
        status=BookingStatus.WAITLISTED,
        waitlist_position=position,
    )
    db.add(booking)
    await db.flush()

    logger.info(
        "booking_waitlisted",
        booking_id=booking.id,
        user_id=request.user_id,
        slot=str(slot_key),
        position=position,
    )
    return booking


async def close_gap(db: AsyncSession, slot_key: SlotKey, vacated_position: int) -> int:
    """Shift every position after `vacated_position` down by one. Returns rows moved."""
    result = await db.execute(
        update(ClassBooking)
        .where(
            *_in_session(slot_key),
            ClassBooking.status == BookingStatus.WAITLISTED,
            ClassBooking.waitlist_position > vacated_position,
        )
        .values(waitlist_position=ClassBooking.waitlist_position - 1)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount


async def head_of_queue(db: AsyncSession, slot_key: SlotKey) -> Optional[ClassBooking]:
    result = await db.execute(
        select(ClassBooking)
        .where(*_in_session(slot_key), ClassBooking.status == BookingStatus.WAITLISTED)
        .order_by(ClassBooking.waitlist_position.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def promote_next(db: AsyncSession, slot_key: SlotKey) -> Optional[ClassBooking]:
    """
    Confirm the booking at position 1, if any, and move the rest of the queue up.
    Returns the promoted booking or None when the waitlist is empty.
    """
    head = await head_of_queue(db, slot_key)
    if head is None:
        return None

    assert_booking_transition(head, BookingStatus.CONFIRMED)
    vacated = head.waitlist_position

    head.status = BookingStatus.CONFIRMED
    head.waitlist_position = None
    head.updated_at = datetime.now(timezone.utc)
    await db.flush()

    moved = await close_gap(db, slot_key, vacated)

    logger.info(
        "waitlist_promoted",
        booking_id=head.id,
        user_id=head.user_id,
        slot=str(slot_key),
        queue_shifted=moved,
    )
    return head


async def waitlist_length(db: AsyncSession, slot_key: SlotKey) -> int:
    result = await db.execute(
        select(func.count(ClassBooking.id)).where(
            *_in_session(slot_key),
            ClassBooking.status == BookingStatus.WAITLISTED,
        )
    )
    return int(result.scalar_one())
