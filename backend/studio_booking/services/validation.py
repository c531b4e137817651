"""
Booking request validation and normalization.

Times arrive either as 12-hour labels from the schedule picker ("9:00 AM")
or as 24-hour values ("09:00", "09:00:00"). Both collapse to one
`datetime.time`, which is what the slot key and the database store.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from studio_booking.core.exceptions import ValidationError
from studio_booking.models.booking import Location
from studio_booking.services.slot_key import SlotKey

_TIME_24H = re.compile(r"^(?P<hour>[01]?\d|2[0-3]):(?P<minute>[0-5]\d)(?::(?P<second>[0-5]\d))?$")
_TIME_12H = re.compile(r"^(?P<hour>0?[1-9]|1[0-2]):(?P<minute>[0-5]\d)\s*(?P<meridiem>[AaPp][Mm])$")


@dataclass(frozen=True)
class NormalizedBookingRequest:
    user_id: str
    class_id: str
    date: date
    time: time
    location: Location = Location.STUDIO

    @property
    def canonical_time(self) -> str:
        return self.time.strftime("%H:%M:%S")


def parse_time(value: str) -> time:
    """Parse a 12-hour or 24-hour time label. Raises ValueError when neither grammar matches."""
    raw = value.strip()

    match = _TIME_24H.match(raw)
    if match:
        return time(int(match["hour"]), int(match["minute"]), int(match["second"] or 0))

    match = _TIME_12H.match(raw)
    if match:
        hour = int(match["hour"]) % 12
        if match["meridiem"].lower() == "pm":
            hour += 12
        return time(hour, int(match["minute"]))

    raise ValueError(f"unrecognised time {value!r}")


def parse_date(value: str) -> date:
    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        # Full timestamps from date pickers ("2026-11-02T00:00:00.000Z")
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()


def format_display_time(value: time) -> str:
    """Render a canonical time for people: 09:00:00 -> '9:00 AM'."""
    meridiem = "PM" if value.hour >= 12 else "AM"
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {meridiem}"


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _parse_slot_fields(
    class_id: Optional[str],
    date_value: Optional[str],
    time_value: Optional[str],
    errors: dict[str, str],
) -> tuple[Optional[date], Optional[time]]:
    if _blank(class_id):
        errors["classId"] = "is required"

    parsed_date = parsed_time = None
    if _blank(date_value):
        errors["date"] = "is required"
    else:
        try:
            parsed_date = parse_date(date_value)
        except ValueError:
            errors["date"] = "must be an ISO date (YYYY-MM-DD)"

    if _blank(time_value):
        errors["time"] = "is required"
    else:
        try:
            parsed_time = parse_time(time_value)
        except ValueError:
            errors["time"] = "must be hh:mm AM/PM or HH:mm[:ss]"

    return parsed_date, parsed_time


def validate_slot(class_id: Optional[str], date_value: Optional[str], time_value: Optional[str]) -> SlotKey:
    """Parse a class session address on its own (availability lookups)."""
    errors: dict[str, str] = {}
    parsed_date, parsed_time = _parse_slot_fields(class_id, date_value, time_value, errors)
    if errors:
        raise ValidationError(errors)
    return SlotKey(class_id.strip(), parsed_date, parsed_time)


def validate_booking_request(
    user_id: Optional[str],
    class_id: Optional[str],
    date_value: Optional[str],
    time_value: Optional[str],
    location: Optional[str] = None,
) -> NormalizedBookingRequest:
    """
    Check required fields and normalize date, time and location.
    Every offending field is reported in a single ValidationError.
    """
    errors: dict[str, str] = {}

    if _blank(user_id):
        errors["userId"] = "is required"
    parsed_date, parsed_time = _parse_slot_fields(class_id, date_value, time_value, errors)

    parsed_location = Location.STUDIO
    if not _blank(location):
        try:
            parsed_location = Location(location.strip().lower())
        except ValueError:
            errors["location"] = "must be one of: " + ", ".join(loc.value for loc in Location)

    if errors:
        raise ValidationError(errors)

    return NormalizedBookingRequest(
        user_id=user_id.strip(),
        class_id=class_id.strip(),
        date=parsed_date,
        time=parsed_time,
        location=parsed_location,
    )
