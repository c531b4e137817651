"""
Slot lock interface: the mutual exclusion behind one atomic admission unit.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from studio_booking.services.slot_key import SlotKey


class SlotLease:
    """
    Handle for a held slot lock, yielded by `SlotLock.hold`.

    An in-process lock cannot be lost while held, so the base lease verifies
    trivially. Backends whose locks expire override `verify`.
    """

    def __init__(self, slot_key: SlotKey):
        self.slot_key = slot_key

    async def verify(self) -> None:
        """Raise if the lock is no longer held. Called right before commit."""


class SlotLock(ABC):
    """
    Serializes admission-affecting work per slot key.

    Implementations:
    - LocalSlotLock: asyncio lock per key, single process
    - RedisSlotLock: Redis lock per key, shared by every worker process

    Holding the lock for key A never blocks work on key B.
    """

    backend: str = "abstract"

    @abstractmethod
    def hold(self, slot_key: SlotKey) -> AbstractAsyncContextManager[SlotLease]:
        """
        Acquire the lock for `slot_key` for the duration of the block.

        Raises:
            AdmissionContentionError: the lock was not acquired within the
                configured bound. Nothing inside the block ran.
        """

    async def close(self) -> None:
        """Release backend resources on shutdown."""
