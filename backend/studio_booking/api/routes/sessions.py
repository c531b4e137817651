"""
Class session availability, computed from committed bookings.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.db.session import get_db
from studio_booking.schemas.booking import ErrorResponse, SlotAvailabilityResponse
from studio_booking.services.query_service import get_slot_availability
from studio_booking.services.validation import validate_slot

router = APIRouter(prefix="/classes", tags=["Class sessions"])


@router.get(
    "/{class_id}/availability",
    response_model=SlotAvailabilityResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def session_availability(
    class_id: str,
    date: str = Query(...),
    time: str = Query(..., description="hh:mm AM/PM or HH:mm[:ss]"),
    db: AsyncSession = Depends(get_db),
):
    """Capacity, confirmed count, spots left and waitlist length for one session."""
    slot_key = validate_slot(class_id, date, time)
    availability = await get_slot_availability(db, slot_key)
    return SlotAvailabilityResponse.from_availability(availability)
