"""
Pydantic schemas for booking request/response payloads.
Wire format is camelCase; snake_case is accepted on input too.
"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from studio_booking.services.admission_service import AdmissionResult, CancellationResult
from studio_booking.services.query_service import BookingSummary, SlotAvailability


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookingCreate(CamelModel):
    # Left optional so missing fields are reported by the booking validator,
    # all at once, in the same error shape as malformed values.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    user_id: Optional[str] = None
    class_id: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None


class BookingCreatedResponse(CamelModel):
    status: Literal["confirmed", "waitlisted"]
    booking_id: int
    position: Optional[int] = Field(None, description="1-based waitlist position, only when waitlisted")

    @classmethod
    def from_result(cls, result: AdmissionResult) -> "BookingCreatedResponse":
        return cls(status=result.status.value, booking_id=result.booking_id, position=result.position)


class BookingCancelResponse(CamelModel):
    status: Literal["cancelled"] = "cancelled"
    promoted: Optional[int] = Field(None, description="Id of the waitlisted booking confirmed in its place")

    @classmethod
    def from_result(cls, result: CancellationResult) -> "BookingCancelResponse":
        return cls(promoted=result.promoted_booking_id)


class BookingSummaryResponse(CamelModel):
    booking_id: int
    class_id: str
    date: dt.date
    time: str
    display_time: str
    location: str
    status: Literal["confirmed", "waitlisted", "cancelled"]
    position: Optional[int] = None

    @classmethod
    def from_summary(cls, summary: BookingSummary) -> "BookingSummaryResponse":
        return cls(
            booking_id=summary.booking_id,
            class_id=summary.class_id,
            date=summary.date,
            time=summary.time.strftime("%H:%M:%S"),
            display_time=summary.display_time,
            location=summary.location,
            status=summary.status.value,
            position=summary.position,
        )


class SlotAvailabilityResponse(CamelModel):
    class_id: str
    date: dt.date
    time: str
    capacity: int
    confirmed: int
    spots_left: int
    waitlisted: int

    @classmethod
    def from_availability(cls, availability: SlotAvailability) -> "SlotAvailabilityResponse":
        key = availability.slot_key
        return cls(
            class_id=key.class_id,
            date=key.date,
            time=key.time.strftime("%H:%M:%S"),
            capacity=availability.capacity,
            confirmed=availability.confirmed,
            spots_left=availability.spots_left,
            waitlisted=availability.waitlisted,
        )


class ErrorResponse(BaseModel):
    error: str
    message: str

    model_config = ConfigDict(extra="allow")

