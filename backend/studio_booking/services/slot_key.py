"""
Slot key resolution: the admission partition for a booking request.

Bookings for different slot keys never coordinate with each other; everything
that touches capacity or the waitlist is scoped to exactly one key.
"""

from datetime import date, datetime, time
from typing import NamedTuple, Protocol


class SlotKey(NamedTuple):
    class_id: str
    date: date
    time: time

    @property
    def lock_name(self) -> str:
        return f"slot-lock:{self.class_id}:{self.date.isoformat()}:{self.time.strftime('%H:%M:%S')}"

    def starts_at(self, tz) -> datetime:
        return datetime.combine(self.date, self.time, tzinfo=tz)

    def __str__(self) -> str:
        return f"{self.class_id}@{self.date.isoformat()}T{self.time.strftime('%H:%M:%S')}"


class _SlotAddressed(Protocol):
    class_id: str
    date: date
    time: time


def resolve_slot_key(request: _SlotAddressed) -> SlotKey:
    return SlotKey(request.class_id, request.date, request.time)
