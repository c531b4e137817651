"""Shared helpers for building requests and inspecting a session's bookings."""

from datetime import date, timedelta

from sqlalchemy import select

from studio_booking.models.booking import BookingStatus, ClassBooking, Location
from studio_booking.services.slot_key import SlotKey
from studio_booking.services.validation import NormalizedBookingRequest


def session_date(weeks_ahead: int = 2) -> date:
    """A Monday comfortably outside the cancellation cutoff."""
    start = date.today() + timedelta(weeks=weeks_ahead)
    return start + timedelta(days=(7 - start.weekday()) % 7)


def booking_request(user_id: str, slot_key: SlotKey, location: Location = Location.STUDIO) -> NormalizedBookingRequest:
    return NormalizedBookingRequest(
        user_id=user_id,
        class_id=slot_key.class_id,
        date=slot_key.date,
        time=slot_key.time,
        location=location,
    )


async def session_bookings(session_factory, slot_key: SlotKey) -> list[ClassBooking]:
    """All bookings of one session, in insertion order."""
    async with session_factory() as session:
        result = await session.execute(
            select(ClassBooking)
            .where(
                ClassBooking.class_id == slot_key.class_id,
                ClassBooking.booking_date == slot_key.date,
                ClassBooking.booking_time == slot_key.time,
            )
            .order_by(ClassBooking.id)
        )
        return list(result.scalars().all())


def waitlist_of(bookings: list[ClassBooking]) -> list[ClassBooking]:
    """Waitlisted bookings ordered by position."""
    waiting = [b for b in bookings if b.status == BookingStatus.WAITLISTED]
    return sorted(waiting, key=lambda b: b.waitlist_position)


def assert_session_invariants(bookings: list[ClassBooking], capacity: int) -> None:
    """Capacity bound, gap-free positions, FIFO order and one active booking per member."""
    confirmed = [b for b in bookings if b.status == BookingStatus.CONFIRMED]
    assert len(confirmed) <= capacity

    waiting = waitlist_of(bookings)
    assert [b.waitlist_position for b in waiting] == list(range(1, len(waiting) + 1))
    assert [b.created_at for b in waiting] == sorted(b.created_at for b in waiting)

    active_members = [b.user_id for b in bookings if b.status != BookingStatus.CANCELLED]
    assert len(active_members) == len(set(active_members))

    for booking in bookings:
        if booking.status != BookingStatus.WAITLISTED:
            assert booking.waitlist_position is None
