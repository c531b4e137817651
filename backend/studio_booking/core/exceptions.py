"""
Error taxonomy for the booking core.

Every failure a caller can observe is a BookingError subclass. Each one knows
its wire name (`kind`), the HTTP status it maps to and whether a retry with
the same input can succeed. The API layer renders them as
`{"error": kind, "message": ..., **details}`.
"""

from typing import Any, Optional


class BookingError(Exception):
    kind: str = "InternalError"
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.details()}


class ValidationError(BookingError):
    """Malformed or missing input. The caller must fix and resubmit."""

    kind = "ValidationError"
    status_code = 400

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid booking request: {fields}")

    @property
    def fields(self) -> list[str]:
        return sorted(self.errors)

    def details(self) -> dict[str, Any]:
        return {"fields": self.errors}


class NotFoundError(BookingError):
    kind = "NotFoundError"
    status_code = 404

    def __init__(self, entity: str, identifier: Any, message: Optional[str] = None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(message or f"{entity} {identifier} not found")

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "id": str(self.identifier)}


class DuplicateBookingError(BookingError):
    kind = "DuplicateBookingError"
    status_code = 409

    def __init__(self, existing_booking_id: Optional[int], existing_status: Optional[str]):
        self.existing_booking_id = existing_booking_id
        self.existing_status = existing_status
        super().__init__("You already have an active booking for this class session")

    def details(self) -> dict[str, Any]:
        return {
            "existingBookingId": self.existing_booking_id,
            "existingStatus": self.existing_status,
        }


class AdmissionContentionError(BookingError):
    """The slot's admission unit was busy past the wait bound. Nothing was written."""

    kind = "AdmissionContentionError"
    status_code = 503
    retryable = True

    def __init__(self, slot_key: Any, waited_seconds: float):
        self.slot_key = slot_key
        self.waited_seconds = waited_seconds
        super().__init__("This class session is busy right now. Please retry shortly.")

    def details(self) -> dict[str, Any]:
        return {"retryAfterSeconds": 1}


class InvalidStateTransitionError(BookingError):
    kind = "InvalidStateTransitionError"
    status_code = 409

    def __init__(self, booking_id: int, current: str, target: str, message: Optional[str] = None):
        self.booking_id = booking_id
        self.current = current
        self.target = target
        super().__init__(message or f"Booking {booking_id} cannot move from {current} to {target}")

    def details(self) -> dict[str, Any]:
        return {"bookingId": self.booking_id, "currentStatus": self.current}


class CancellationWindowClosedError(InvalidStateTransitionError):
    def __init__(self, booking_id: int, cutoff_hours: int):
        self.cutoff_hours = cutoff_hours
        super().__init__(
            booking_id,
            "confirmed",
            "cancelled",
            message=f"Classes can only be cancelled up to {cutoff_hours} hours before they start",
        )


class InternalError(BookingError):
    kind = "InternalError"
    status_code = 500
    retryable = True

    def __init__(self, message: str = "The booking could not be processed. Please try again."):
        super().__init__(message)
