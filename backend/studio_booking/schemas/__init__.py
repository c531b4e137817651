from studio_booking.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingCancelResponse,
    BookingSummaryResponse,
    SlotAvailabilityResponse,
    ErrorResponse,
)

__all__ = [
    "BookingCreate", "BookingCreatedResponse", "BookingCancelResponse",
    "BookingSummaryResponse", "SlotAvailabilityResponse", "ErrorResponse",
]
