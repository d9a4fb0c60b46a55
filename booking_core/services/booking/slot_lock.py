# booking_core/services/booking/slot_lock.py
"""
Per-slot-key mutual exclusion for the reservation count-and-insert.

RedisSlotLock serialises across every API process; LocalSlotLock only
within one process (single-worker deployments and tests).

hold() yields a HeldSlot. Callers must call confirm() right before they
commit: a Redis lock can expire under a stalled holder, and confirm()
refuses to let that holder write once another request may own the key.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple
import logging

import redis
from redis.exceptions import LockError

from booking_core.config.redis import RedisKeys, get_redis
from booking_core.config.settings import get_settings
from booking_core.core.exceptions import SlotUnavailableError

logger = logging.getLogger(__name__)

SlotKey = Tuple[str, str, str, str]  # (business_id, service_id, YYYY-MM-DD, HH:MM)


def _busy(key: SlotKey) -> SlotUnavailableError:
    return SlotUnavailableError(
        "Slot is being reserved by another request, please try again or pick another time",
        details={"booking_date": key[2], "booking_time": key[3]},
    )


class HeldSlot:
    """Handle for a granted slot lock"""

    def __init__(self, key: SlotKey, lock=None):
        self.key = key
        self._lock = lock

    def confirm(self):
        """Raise SlotUnavailableError unless the lock is still ours; renews the Redis TTL."""
        if self._lock is None:
            return
        try:
            self._lock.reacquire()
        except LockError:
            logger.warning(f"Slot lock for {self.key} lost before commit")
            raise _busy(self.key)


class LocalSlotLock:
    """threading.Lock per key, dropped once nobody holds or waits for it"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[SlotKey, threading.Lock] = {}
        self._users: Dict[SlotKey, int] = {}

    @contextmanager
    def hold(self, key: SlotKey) -> Iterator[HeldSlot]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1

        acquired = False
        try:
            acquired = lock.acquire(timeout=self.timeout)
            if not acquired:
                raise _busy(key)
            yield HeldSlot(key)
        finally:
            if acquired:
                lock.release()
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]


class RedisSlotLock:
    """redis-py Lock; the TTL frees a key if a worker dies holding it"""

    def __init__(self, client: redis.Redis, timeout: float, ttl: float):
        self.client = client
        self.timeout = timeout
        self.ttl = ttl

    @contextmanager
    def hold(self, key: SlotKey) -> Iterator[HeldSlot]:
        name = RedisKeys.SLOT_LOCK.format(
            business_id=key[0], service_id=key[1], booking_date=key[2], booking_time=key[3]
        )
        lock = self.client.lock(name, timeout=self.ttl, blocking_timeout=self.timeout)
        if not lock.acquire():
            raise _busy(key)
        try:
            yield HeldSlot(key, lock)
        finally:
            try:
                lock.release()
            except LockError:
                logger.warning(f"Slot lock {name} expired before release")


_local_lock: Optional[LocalSlotLock] = None


def get_slot_lock():
    """Lock backend from settings; the local lock is process-wide"""
    global _local_lock
    settings = get_settings()

    if settings.SLOT_LOCK_BACKEND == "redis":
        return RedisSlotLock(
            get_redis(),
            timeout=settings.SLOT_LOCK_TIMEOUT_SECONDS,
            ttl=settings.SLOT_LOCK_TTL_SECONDS,
        )

    if _local_lock is None:
        _local_lock = LocalSlotLock(timeout=settings.SLOT_LOCK_TIMEOUT_SECONDS)
    return _local_lock
