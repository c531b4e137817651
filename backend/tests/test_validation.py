"""
Tests for booking request validation and time normalization.
"""

from datetime import date, time

import pytest

from studio_booking.core.exceptions import ValidationError
from studio_booking.models.booking import Location
from studio_booking.services.slot_key import SlotKey, resolve_slot_key
from studio_booking.services.validation import (
    format_display_time,
    parse_time,
    validate_booking_request,
    validate_slot,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("09:00 AM", time(9, 0)),
        ("9:00 am", time(9, 0)),
        ("12:00 AM", time(0, 0)),
        ("12:30 PM", time(12, 30)),
        ("6:45PM", time(18, 45)),
        ("18:45", time(18, 45)),
        ("07:05:30", time(7, 5, 30)),
        (" 23:59 ", time(23, 59)),
    ],
)
def test_parse_time_accepts_both_clocks(raw, expected):
    """12-hour and 24-hour labels normalize to the same time value."""
    assert parse_time(raw) == expected


@pytest.mark.parametrize("raw", ["24:00", "13:00 PM", "9", "09:60", "noon", "9:00 XM", "0:30 AM"])
def test_parse_time_rejects_malformed(raw):
    with pytest.raises(ValueError):
        parse_time(raw)


def test_validate_normalizes_request():
    """Canonical time is 24-hour HH:MM:SS and location defaults to studio."""
    request = validate_booking_request(" alice ", "vinyasa", "2026-11-02", "9:00 AM")

    assert request.user_id == "alice"
    assert request.date == date(2026, 11, 2)
    assert request.time == time(9, 0)
    assert request.canonical_time == "09:00:00"
    assert request.location is Location.STUDIO


def test_validate_accepts_iso_timestamp_and_location_case():
    request = validate_booking_request("alice", "vinyasa", "2026-11-02T00:00:00.000Z", "18:00", "Online")

    assert request.date == date(2026, 11, 2)
    assert request.location is Location.ONLINE


def test_validate_reports_every_missing_field():
    """All offending fields are named in one error."""
    with pytest.raises(ValidationError) as exc_info:
        validate_booking_request(None, "  ", "", None)

    assert exc_info.value.fields == ["classId", "date", "time", "userId"]
    assert exc_info.value.to_dict()["error"] == "ValidationError"


def test_validate_reports_malformed_values():
    with pytest.raises(ValidationError) as exc_info:
        validate_booking_request("alice", "vinyasa", "02/11/2026", "quarter past nine", "garden")

    assert set(exc_info.value.errors) == {"date", "time", "location"}


def test_validate_slot_builds_slot_key():
    key = validate_slot("vinyasa", "2026-11-02", "09:00:00")

    assert key == SlotKey("vinyasa", date(2026, 11, 2), time(9, 0))
    assert key.lock_name == "slot-lock:vinyasa:2026-11-02:09:00:00"


def test_same_session_resolves_to_same_key():
    """Different time spellings of one session share a slot key (and a lock)."""
    a = resolve_slot_key(validate_booking_request("alice", "vinyasa", "2026-11-02", "6:00 PM"))
    b = resolve_slot_key(validate_booking_request("bob", "vinyasa", "2026-11-02", "18:00:00"))

    assert a == b
    assert a.lock_name == b.lock_name


@pytest.mark.parametrize(
    "value, expected",
    [(time(9, 0), "9:00 AM"), (time(0, 15), "12:15 AM"), (time(12, 0), "12:00 PM"), (time(18, 30), "6:30 PM")],
)
def test_format_display_time(value, expected):
    assert format_display_time(value) == expected
