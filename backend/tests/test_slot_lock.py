"""
Tests for the slot lock backends: per-key mutual exclusion and bounded waits.
"""

import asyncio
from datetime import date, time

import pytest

from studio_booking.core.exceptions import AdmissionContentionError, InternalError
from studio_booking.models.booking import BookingStatus
from studio_booking.services import redis_slot_lock
from studio_booking.services.admission_service import admit, cancel_booking
from studio_booking.services.interfaces.local_slot_lock import LocalSlotLock
from studio_booking.services.redis_slot_lock import RedisSlotLock
from studio_booking.services.slot_key import SlotKey

from helpers import booking_request, session_bookings

MORNING = SlotKey("vinyasa", date(2026, 11, 2), time(9, 0))
EVENING = SlotKey("vinyasa", date(2026, 11, 2), time(18, 0))


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    """Critical sections for one slot never overlap."""
    lock = LocalSlotLock(timeout_seconds=2.0)
    inside = 0
    peak = 0

    async def unit():
        nonlocal inside, peak
        async with lock.hold(MORNING):
            inside += 1
            peak = max(peak, inside)
            await asyncio.sleep(0.005)
            inside -= 1

    await asyncio.gather(*(unit() for _ in range(20)))

    assert peak == 1
    assert lock.active_keys == 0


@pytest.mark.asyncio
async def test_different_keys_do_not_wait_on_each_other():
    lock = LocalSlotLock(timeout_seconds=0.2)

    async with lock.hold(MORNING):
        # Would time out if the evening slot shared the morning lock
        async with lock.hold(EVENING):
            assert lock.active_keys == 2


@pytest.mark.asyncio
async def test_wait_is_bounded():
    """A request stuck behind a held slot fails with a retryable contention error."""
    lock = LocalSlotLock(timeout_seconds=0.05)
    ran = False

    async with lock.hold(MORNING):
        with pytest.raises(AdmissionContentionError) as exc_info:
            async with lock.hold(MORNING):
                ran = True

    assert ran is False
    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 503
    assert lock.active_keys == 0


@pytest.mark.asyncio
async def test_lock_released_after_error_in_unit():
    lock = LocalSlotLock(timeout_seconds=0.05)

    with pytest.raises(RuntimeError):
        async with lock.hold(MORNING):
            raise RuntimeError("boom")

    async with lock.hold(MORNING):
        pass


class FakeRedisLock:
    def __init__(self, acquired: bool):
        self.acquired = acquired
        self.released = False
        self.still_owned = True

    async def acquire(self):
        return self.acquired

    async def release(self):
        self.released = True

    async def owned(self):
        return self.still_owned


class FakeRedis:
    def __init__(self, acquired: bool):
        self.locks = []
        self.acquired = acquired

    def lock(self, name, timeout, blocking, blocking_timeout):
        lock = FakeRedisLock(self.acquired)
        lock.name = name
        lock.ttl = timeout
        self.locks.append(lock)
        return lock


@pytest.mark.asyncio
async def test_redis_lock_uses_slot_lock_name(monkeypatch):
    fake = FakeRedis(acquired=True)

    async def fake_get_redis():
        return fake

    monkeypatch.setattr(redis_slot_lock, "get_redis", fake_get_redis)
    lock = RedisSlotLock(timeout_seconds=1.0, ttl_seconds=10)

    async with lock.hold(MORNING):
        pass

    assert fake.locks[0].name == MORNING.lock_name
    assert fake.locks[0].ttl == 10
    assert fake.locks[0].released is True


@pytest.mark.asyncio
async def test_redis_lock_timeout_raises_contention(monkeypatch):
    fake = FakeRedis(acquired=False)

    async def fake_get_redis():
        return fake

    monkeypatch.setattr(redis_slot_lock, "get_redis", fake_get_redis)
    lock = RedisSlotLock(timeout_seconds=0.01, ttl_seconds=10)

    with pytest.raises(AdmissionContentionError):
        async with lock.hold(MORNING):
            pytest.fail("unit must not run without the lock")

    assert fake.locks[0].released is False


@pytest.mark.asyncio
async def test_redis_lock_refuses_to_run_without_redis(monkeypatch):
    """No Redis means no cross-process exclusion, so admission fails instead of guessing."""

    async def no_redis():
        return None

    monkeypatch.setattr(redis_slot_lock, "get_redis", no_redis)
    lock = RedisSlotLock(timeout_seconds=0.01, ttl_seconds=10)

    with pytest.raises(InternalError):
        async with lock.hold(MORNING):
            pytest.fail("unit must not run without the lock")


@pytest.mark.asyncio
async def test_redis_lease_verifies_while_owned(monkeypatch):
    fake = FakeRedis(acquired=True)

    async def fake_get_redis():
        return fake

    monkeypatch.setattr(redis_slot_lock, "get_redis", fake_get_redis)
    lock = RedisSlotLock(timeout_seconds=1.0, ttl_seconds=10)

    async with lock.hold(MORNING) as lease:
        await lease.verify()


@pytest.mark.asyncio
async def test_redis_lease_fails_once_lock_expired(monkeypatch):
    fake = FakeRedis(acquired=True)

    async def fake_get_redis():
        return fake

    monkeypatch.setattr(redis_slot_lock, "get_redis", fake_get_redis)
    lock = RedisSlotLock(timeout_seconds=1.0, ttl_seconds=10)

    with pytest.raises(InternalError):
        async with lock.hold(MORNING) as lease:
            fake.locks[0].still_owned = False
            await lease.verify()


class ExpiringRedis(FakeRedis):
    """Hands out locks whose TTL has already run out by commit time."""

    def lock(self, name, timeout, blocking, blocking_timeout):
        lock = super().lock(name, timeout, blocking, blocking_timeout)
        lock.still_owned = False
        return lock


def expiring_redis_lock(monkeypatch, fake):
    async def fake_get_redis():
        return fake

    monkeypatch.setattr(redis_slot_lock, "get_redis", fake_get_redis)
    return RedisSlotLock(timeout_seconds=1.0, ttl_seconds=10)


@pytest.mark.asyncio
async def test_admission_rolls_back_when_lock_expired_mid_unit(monkeypatch, session_factory, slot):
    """A unit that outlived its Redis lock must not commit."""
    fake = ExpiringRedis(acquired=True)
    lock = expiring_redis_lock(monkeypatch, fake)

    with pytest.raises(InternalError):
        await admit(booking_request("alice", slot), session_factory=session_factory, slot_lock=lock)

    assert await session_bookings(session_factory, slot) == []
    assert fake.locks[0].released is True


@pytest.mark.asyncio
async def test_cancellation_rolls_back_when_lock_expired_mid_unit(monkeypatch, session_factory, slot_lock, slot):
    for user_id in ["alice", "bob", "carol"]:
        await admit(booking_request(user_id, slot), session_factory=session_factory, slot_lock=slot_lock)
    alice = (await session_bookings(session_factory, slot))[0]

    fake = ExpiringRedis(acquired=True)
    with pytest.raises(InternalError):
        await cancel_booking(alice.id, session_factory=session_factory, slot_lock=expiring_redis_lock(monkeypatch, fake))

    statuses = {b.user_id: b.status for b in await session_bookings(session_factory, slot)}
    assert statuses == {
        "alice": BookingStatus.CONFIRMED,
        "bob": BookingStatus.CONFIRMED,
        "carol": BookingStatus.WAITLISTED,
    }
