"""
Slot lock factory.
Configures which admission lock backend to use.
"""

from typing import Optional

from studio_booking.core.config import get_settings
from studio_booking.services.interfaces.slot_lock import SlotLock
from studio_booking.services.interfaces.local_slot_lock import LocalSlotLock
from studio_booking.services.redis_slot_lock import RedisSlotLock


def build_slot_lock() -> SlotLock:
    """
    Build the configured slot lock.

    - local: single API process (development, tests)
    - redis: several processes or replicas

    Selected by the ADMISSION_LOCK_BACKEND env var.
    """
    settings = get_settings()

    if settings.ADMISSION_LOCK_BACKEND == "redis":
        return RedisSlotLock(
            timeout_seconds=settings.ADMISSION_LOCK_TIMEOUT_SECONDS,
            ttl_seconds=settings.ADMISSION_LOCK_TTL_SECONDS,
        )
    return LocalSlotLock(timeout_seconds=settings.ADMISSION_LOCK_TIMEOUT_SECONDS)


# Singleton instance
_slot_lock: Optional[SlotLock] = None


def get_slot_lock() -> SlotLock:
    """Get slot lock singleton."""
    global _slot_lock
    if _slot_lock is None:
        _slot_lock = build_slot_lock()
    return _slot_lock
