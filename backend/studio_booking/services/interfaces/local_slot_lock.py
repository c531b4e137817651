"""
In-process slot lock: one asyncio.Lock per slot key.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from studio_booking.core.exceptions import AdmissionContentionError
from studio_booking.core.logging import get_logger
from studio_booking.core.metrics import record_lock_wait
from studio_booking.services.interfaces.slot_lock import SlotLease, SlotLock
from studio_booking.services.slot_key import SlotKey

logger = get_logger(__name__)


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class LocalSlotLock(SlotLock):
    """
    Single-writer-per-slot inside one event loop.

    Use when:
    - One API worker process serves all booking traffic
    - Tests and local development

    Entries are reference counted and dropped once no request holds or
    waits on them, so the registry only grows with *live* slot keys.
    """

    backend = "local"

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self._entries: dict[SlotKey, _Entry] = {}

    @property
    def active_keys(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def hold(self, slot_key: SlotKey) -> AsyncIterator[SlotLease]:
        entry = self._entries.get(slot_key)
        if entry is None:
            entry = self._entries[slot_key] = _Entry()
        entry.users += 1

        start = time.perf_counter()
        try:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                waited = time.perf_counter() - start
                record_lock_wait(self.backend, waited, acquired=False)
                logger.warning("slot_lock_timeout", slot=str(slot_key), waited_s=round(waited, 3))
                raise AdmissionContentionError(slot_key, waited) from None

            record_lock_wait(self.backend, time.perf_counter() - start, acquired=True)
            try:
                yield SlotLease(slot_key)
            finally:
                entry.lock.release()
        finally:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(slot_key) is entry:
                del self._entries[slot_key]
