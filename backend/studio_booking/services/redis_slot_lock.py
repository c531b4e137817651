"""
Redis-backed slot lock for deployments with several API worker processes.

Every worker contends on the same key `slot-lock:<class>:<date>:<time>`, so
admission for one session is serialized cluster-wide while other sessions
proceed in parallel.

Failure policy:
  Unlike a cache, this lock guards the capacity invariant. If Redis cannot be
  reached the request fails with InternalError (retryable) instead of
  admitting without a lock. The lock carries an expiry
  (ADMISSION_LOCK_TTL_SECONDS) so a crashed worker cannot wedge a session.
  A unit that outlives the TTL may overlap the next holder, so the lease is
  verified right before commit and the unit rolls back if ownership is gone.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.exceptions import LockError, RedisError

from studio_booking.core.exceptions import AdmissionContentionError, InternalError
from studio_booking.core.logging import get_logger
from studio_booking.core.metrics import record_lock_wait, redis_connection_errors
from studio_booking.infrastructure.redis_client import get_redis
from studio_booking.services.interfaces.slot_lock import SlotLease, SlotLock
from studio_booking.services.slot_key import SlotKey

logger = get_logger(__name__)


class RedisSlotLease(SlotLease):
    def __init__(self, slot_key: SlotKey, lock, ttl_seconds: int):
        super().__init__(slot_key)
        self._lock = lock
        self._ttl_seconds = ttl_seconds

    async def verify(self) -> None:
        try:
            owned = await self._lock.owned()
        except RedisError as e:
            redis_connection_errors.inc()
            logger.error("slot_lock_verify_failed", slot=str(self.slot_key), error=str(e))
            raise InternalError() from e

        if not owned:
            logger.error("slot_lock_lost", slot=str(self.slot_key), ttl_s=self._ttl_seconds)
            raise InternalError()


class RedisSlotLock(SlotLock):
    """
    Distributed slot lock.

    Use when:
    - More than one uvicorn/gunicorn worker serves bookings
    - Several API replicas share one database
    """

    backend = "redis"

    def __init__(self, timeout_seconds: float, ttl_seconds: int):
        self.timeout_seconds = timeout_seconds
        self.ttl_seconds = ttl_seconds

    @asynccontextmanager
    async def hold(self, slot_key: SlotKey) -> AsyncIterator[SlotLease]:
        client = await get_redis()
        if client is None:
            logger.error("slot_lock_unavailable", slot=str(slot_key), backend=self.backend)
            raise InternalError()

        lock = client.lock(
            slot_key.lock_name,
            timeout=self.ttl_seconds,
            blocking=True,
            blocking_timeout=self.timeout_seconds,
        )

        start = time.perf_counter()
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            redis_connection_errors.inc()
            logger.error("slot_lock_error", slot=str(slot_key), error=str(e))
            raise InternalError() from e

        waited = time.perf_counter() - start
        record_lock_wait(self.backend, waited, acquired=acquired)
        if not acquired:
            logger.warning("slot_lock_timeout", slot=str(slot_key), waited_s=round(waited, 3))
            raise AdmissionContentionError(slot_key, waited)

        try:
            yield RedisSlotLease(slot_key, lock, self.ttl_seconds)
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired before release: the unit outlived the TTL
                logger.warning("slot_lock_expired", slot=str(slot_key), ttl_s=self.ttl_seconds)
            except RedisError as e:
                redis_connection_errors.inc()
                logger.error("slot_lock_release_failed", slot=str(slot_key), error=str(e))
