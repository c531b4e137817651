"""Booking state machine."""

from studio_booking.core.exceptions import InvalidStateTransitionError
from studio_booking.models.booking import BookingStatus, ClassBooking

# Creation (confirmed or waitlisted) is not a transition; it only happens on insert.
BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.WAITLISTED: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


def assert_booking_transition(booking: ClassBooking, target: BookingStatus) -> None:
    current = BookingStatus(booking.status)
    if target not in BOOKING_TRANSITIONS[current]:
        raise InvalidStateTransitionError(booking.id, current.value, target.value)
