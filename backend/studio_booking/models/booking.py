"""
Booking of one member into one class session (class_id, date, time).

Key design decisions:
- Status is a closed enum; cancellation is a status change, rows are never deleted
- waitlist_position is set only while waitlisted (CHECK constraint)
- Partial unique index allows one *active* booking per member per session,
  while cancelled history rows may repeat
"""

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Time,
    text,
)

from studio_booking.db.base import Base, TimestampMixin
from studio_booking.services.slot_key import SlotKey


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.WAITLISTED)


class Location(str, enum.Enum):
    STUDIO = "studio"
    ONLINE = "online"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


_ACTIVE_PREDICATE = text("status IN ('confirmed', 'waitlisted')")


class ClassBooking(Base, TimestampMixin):
    __tablename__ = "class_bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    class_id = Column(String(64), nullable=False)
    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=False)
    location = Column(
        Enum(Location, native_enum=False, length=20, values_callable=_enum_values, validate_strings=True),
        nullable=False,
        default=Location.STUDIO,
    )
    status = Column(
        Enum(BookingStatus, native_enum=False, length=20, values_callable=_enum_values, validate_strings=True),
        nullable=False,
    )
    waitlist_position = Column(Integer, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('confirmed', 'waitlisted', 'cancelled')",
            name="check_class_booking_status",
        ),
        CheckConstraint(
            "(status = 'waitlisted' AND waitlist_position IS NOT NULL AND waitlist_position > 0)"
            " OR (status <> 'waitlisted' AND waitlist_position IS NULL)",
            name="check_waitlist_position_only_when_waitlisted",
        ),
        # Admission counts and waitlist scans are always per session
        Index("ix_class_bookings_session_status", "class_id", "booking_date", "booking_time", "status"),
        Index(
            "uq_class_bookings_active_member_session",
            "user_id",
            "class_id",
            "booking_date",
            "booking_time",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
    )

    @property
    def slot_key(self) -> SlotKey:
        return SlotKey(self.class_id, self.booking_date, self.booking_time)

    def __repr__(self) -> str:
        return (
            f"<ClassBooking(id={self.id}, user={self.user_id}, class={self.class_id}, "
            f"at={self.booking_date} {self.booking_time}, status={self.status})>"
        )
