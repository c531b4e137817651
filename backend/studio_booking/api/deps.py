"""
FastAPI dependencies for the booking core's collaborators.
Tests override these to point at a throwaway database and a fresh lock.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studio_booking.db.session import get_session_factory
from studio_booking.services.interfaces.slot_lock import SlotLock
from studio_booking.services.lock_factory import get_slot_lock


def session_factory_dep() -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


def slot_lock_dep() -> SlotLock:
    return get_slot_lock()
