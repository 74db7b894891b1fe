"""Per-enrollment mutual exclusion.

Writes to one enrollment (progress updates, revocation, re-enroll) run
read → compute → write inside ``hold(key)``.  Two implementations:

  InMemoryRecordLock: one asyncio.Lock per key inside this process.
    Entries are dropped as soon as nobody holds or waits for them, so the
    map never grows with the number of enrollments ever touched.

  RedisRecordLock: redis-py's Lock (SET NX PX + token check on release)
    so that every API instance sharing the Redis serializes on the same
    key.  The lock expires after ``timeout`` seconds even if its holder
    dies; a caller that cannot acquire within ``blocking_timeout`` gets a
    ConflictError and may retry.  An unreachable Redis is reported the
    same way, so writes answer 409 while the lock store is down.

Enrollment writes are also version-checked in the store, so the lock is
what keeps concurrent writers from burning their retry budget, not the
only line of correctness.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

from redis.exceptions import LockError, RedisError

from enrollment_service.core.config import SETTINGS
from enrollment_service.core.errors import ConflictError
from enrollment_service.core.metrics import LOCK_WAIT
from enrollment_service.db.redis import redis_pool

logger = logging.getLogger(__name__)


class RecordLock(Protocol):
    def hold(self, key: str) -> AbstractAsyncContextManager[None]: ...


class InMemoryRecordLock:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def clear(self) -> None:
        self._locks.clear()
        self._users.clear()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1

        start = time.monotonic()
        try:
            async with lock:
                LOCK_WAIT.observe(time.monotonic() - start)
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


class RedisRecordLock:
    """Redis-backed lock shared by all API instances."""

    _PREFIX = "lock:enrollment:"

    def __init__(self, redis_client, *, timeout: float) -> None:
        self._redis = redis_client
        self._timeout = timeout

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._redis.lock(
            f"{self._PREFIX}{key}",
            timeout=self._timeout,
            blocking_timeout=self._timeout,
        )
        start = time.monotonic()
        try:
            acquired = await lock.acquire()
        except RedisError:
            logger.warning(
                "Lock store unavailable for enrollment=%s", key, exc_info=True
            )
            raise ConflictError("enrollment lock unavailable, retry") from None
        LOCK_WAIT.observe(time.monotonic() - start)
        if not acquired:
            logger.warning("Lock wait timed out for enrollment=%s", key)
            raise ConflictError("enrollment is busy, retry")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # The lock expired while held; the version check in the
                # store still rejects a stale write.
                logger.warning("Lock for enrollment=%s expired before release", key)
            except RedisError:
                # The key still expires after ``timeout``.
                logger.warning(
                    "Lock release failed for enrollment=%s", key, exc_info=True
                )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    record_lock: RecordLock = RedisRecordLock(
        redis_pool, timeout=SETTINGS.lock_timeout_seconds
    )
else:
    record_lock = InMemoryRecordLock()
