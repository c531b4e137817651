"""
Duplicate booking detection. Runs inside the admission unit, so the answer
cannot go stale before the insert that follows it.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.exceptions import DuplicateBookingError
from studio_booking.core.logging import get_logger
from studio_booking.models.booking import ACTIVE_STATUSES, ClassBooking
from studio_booking.services.slot_key import SlotKey

logger = get_logger(__name__)


async def find_active_booking(db: AsyncSession, user_id: str, slot_key: SlotKey) -> Optional[ClassBooking]:
    result = await db.execute(
        select(ClassBooking).where(
            ClassBooking.user_id == user_id,
            ClassBooking.class_id == slot_key.class_id,
            ClassBooking.booking_date == slot_key.date,
            ClassBooking.booking_time == slot_key.time,
            ClassBooking.status.in_(ACTIVE_STATUSES),
        )
    )
    return result.scalars().first()


async def ensure_no_active_booking(db: AsyncSession, user_id: str, slot_key: SlotKey) -> None:
    existing = await find_active_booking(db, user_id, slot_key)
    if existing:
        logger.info(
            "booking_duplicate",
            user_id=user_id,
            slot=str(slot_key),
            existing_booking_id=existing.id,
            existing_status=existing.status.value,
        )
        raise DuplicateBookingError(existing.id, existing.status.value)
