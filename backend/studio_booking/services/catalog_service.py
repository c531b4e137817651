"""
Read-only lookups against the member directory and the class catalog.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_booking.core.exceptions import NotFoundError
from studio_booking.core.logging import get_logger
from studio_booking.models.member import Member
from studio_booking.models.studio_class import ClassSchedule, StudioClass
from studio_booking.services.slot_key import SlotKey

logger = get_logger(__name__)


async def ensure_member_exists(db: AsyncSession, user_id: str) -> Member:
    result = await db.execute(select(Member).where(Member.id == user_id))
    member = result.scalar_one_or_none()

    if not member or not member.is_active:
        logger.warning("member_not_found", user_id=user_id)
        raise NotFoundError("Member", user_id)
    return member


async def get_class(db: AsyncSession, class_id: str) -> StudioClass:
    result = await db.execute(select(StudioClass).where(StudioClass.id == class_id))
    studio_class = result.scalar_one_or_none()

    if not studio_class:
        raise NotFoundError("Class", class_id)
    return studio_class


async def get_session_capacity(db: AsyncSession, slot_key: SlotKey) -> int:
    """
    Capacity of the session identified by `slot_key`.
    The class must exist, carry a capacity, and be scheduled at that date and time.
    """
    studio_class = await get_class(db, slot_key.class_id)

    if studio_class.capacity is None:
        logger.warning("class_capacity_missing", class_id=slot_key.class_id)
        raise NotFoundError(
            "Class",
            slot_key.class_id,
            message=f"Class {slot_key.class_id} has no capacity configured",
        )

    result = await db.execute(
        select(ClassSchedule).where(
            ClassSchedule.class_id == slot_key.class_id,
            ClassSchedule.start_time == slot_key.time,
        )
    )
    if not any(schedule.occurs_on(slot_key.date, slot_key.time) for schedule in result.scalars()):
        raise NotFoundError(
            "ClassSession",
            str(slot_key),
            message=f"{studio_class.title} is not scheduled on {slot_key.date.isoformat()} "
                    f"at {slot_key.time.strftime('%H:%M')}",
        )

    return studio_class.capacity
