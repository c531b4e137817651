"""
Booking endpoints: create (confirm or waitlist), cancel, list.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studio_booking.api.deps import session_factory_dep, slot_lock_dep
from studio_booking.db.session import get_db
from studio_booking.models.booking import BookingStatus
from studio_booking.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingCreatedResponse,
    BookingSummaryResponse,
    ErrorResponse,
)
from studio_booking.services.admission_service import admit, cancel_booking
from studio_booking.services.interfaces.slot_lock import SlotLock
from studio_booking.services.query_service import list_user_bookings
from studio_booking.services.validation import validate_booking_request

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post(
    "/",
    response_model=BookingCreatedResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_booking(
    booking_data: BookingCreate,
    session_factory: async_sessionmaker[AsyncSession] = Depends(session_factory_dep),
    slot_lock: SlotLock = Depends(slot_lock_dep),
):
    """
    Book a class session.

    Confirms the booking while the session has room, otherwise places it on
    the session's waitlist and returns the 1-based position. A 503 means the
    session was busy past the wait bound; nothing was written and the
    request can be retried.
    """
    request = validate_booking_request(
        booking_data.user_id,
        booking_data.class_id,
        booking_data.date,
        booking_data.time,
        booking_data.location,
    )
    result = await admit(request, session_factory=session_factory, slot_lock=slot_lock)
    return BookingCreatedResponse.from_result(result)


@router.delete(
    "/{booking_id}",
    response_model=BookingCancelResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def cancel_booking_endpoint(
    booking_id: int,
    session_factory: async_sessionmaker[AsyncSession] = Depends(session_factory_dep),
    slot_lock: SlotLock = Depends(slot_lock_dep),
):
    """Cancel a booking. A freed confirmed spot goes to the head of the waitlist."""
    result = await cancel_booking(booking_id, session_factory=session_factory, slot_lock=slot_lock)
    return BookingCancelResponse.from_result(result)


@router.get(
    "/",
    response_model=list[BookingSummaryResponse],
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_bookings(
    user_id: str = Query(..., alias="userId", min_length=1),
    status_filter: Optional[Literal["confirmed", "waitlisted", "cancelled", "all"]] = Query(None, alias="status"),
    upcoming: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """List a member's bookings ordered by session date and time."""
    wanted = None if status_filter in (None, "all") else BookingStatus(status_filter)
    summaries = await list_user_bookings(db, user_id, status=wanted, upcoming=upcoming)
    return [BookingSummaryResponse.from_summary(s) for s in summaries]
