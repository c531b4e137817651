"""
Read-only booking projections. Reads committed rows and never takes a slot lock.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.config import get_settings
from studio_booking.models.booking import BookingStatus, ClassBooking
from studio_booking.services.catalog_service import ensure_member_exists, get_session_capacity
from studio_booking.services.slot_key import SlotKey
from studio_booking.services.validation import format_display_time


@dataclass(frozen=True)
class BookingSummary:
    booking_id: int
    class_id: str
    date: date
    time: time
    display_time: str
    location: str
    status: BookingStatus
    position: Optional[int] = None

    @classmethod
    def from_booking(cls, booking: ClassBooking) -> "BookingSummary":
        return cls(
            booking_id=booking.id,
            class_id=booking.class_id,
            date=booking.booking_date,
            time=booking.booking_time,
            display_time=format_display_time(booking.booking_time),
            location=booking.location.value,
            status=BookingStatus(booking.status),
            position=booking.waitlist_position,
        )


@dataclass(frozen=True)
class SlotAvailability:
    slot_key: SlotKey
    capacity: int
    confirmed: int
    waitlisted: int

    @property
    def spots_left(self) -> int:
        return max(self.capacity - self.confirmed, 0)


def studio_now(now: Optional[datetime] = None) -> datetime:
    tz = ZoneInfo(get_settings().STUDIO_TIMEZONE)
    return (now or datetime.now(timezone.utc)).astimezone(tz)


async def list_user_bookings(
    db: AsyncSession,
    user_id: str,
    status: Optional[BookingStatus] = None,
    upcoming: bool = False,
    now: Optional[datetime] = None,
) -> list[BookingSummary]:
    """
    Bookings of one member ordered by session date and time.
    `upcoming` keeps sessions starting at or after now (studio local time).
    """
    await ensure_member_exists(db, user_id)

    query = select(ClassBooking).where(ClassBooking.user_id == user_id)

    if status is not None:
        query = query.where(ClassBooking.status == status)

    if upcoming:
        local_now = studio_now(now)
        today, current_time = local_now.date(), local_now.time().replace(microsecond=0, tzinfo=None)
        query = query.where(
            or_(
                ClassBooking.booking_date > today,
                and_(ClassBooking.booking_date == today, ClassBooking.booking_time >= current_time),
            )
        )

    result = await db.execute(
        query.order_by(
            ClassBooking.booking_date.asc(),
            ClassBooking.booking_time.asc(),
            ClassBooking.id.asc(),
        )
    )
    return [BookingSummary.from_booking(b) for b in result.scalars().all()]


async def get_slot_availability(db: AsyncSession, slot_key: SlotKey) -> SlotAvailability:
    capacity = await get_session_capacity(db, slot_key)

    result = await db.execute(
        select(ClassBooking.status, func.count(ClassBooking.id))
        .where(
            ClassBooking.class_id == slot_key.class_id,
            ClassBooking.booking_date == slot_key.date,
            ClassBooking.booking_time == slot_key.time,
        )
        .group_by(ClassBooking.status)
    )
    counts = {BookingStatus(row_status): count for row_status, count in result.all()}

    return SlotAvailability(
        slot_key=slot_key,
        capacity=capacity,
        confirmed=counts.get(BookingStatus.CONFIRMED, 0),
        waitlisted=counts.get(BookingStatus.WAITLISTED, 0),
    )
