from __future__ import annotations

import asyncio

import pytest
import redis.asyncio as aioredis
from redis.backoff import NoBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.retry import Retry

from enrollment_service.core.errors import ConflictError
from enrollment_service.services.record_lock import (
    InMemoryRecordLock,
    RedisRecordLock,
)


def test_lock_serializes_holders_of_same_key() -> None:
    lock = InMemoryRecordLock()
    inside = 0
    peak = 0

    async def worker() -> None:
        nonlocal inside, peak
        async with lock.hold("alice:course-1"):
            inside += 1
            peak = max(peak, inside)
            await asyncio.sleep(0)
            inside -= 1

    async def run() -> None:
        await asyncio.gather(*(worker() for _ in range(10)))

    asyncio.run(run())
    assert peak == 1


def test_different_keys_do_not_block_each_other() -> None:
    lock = InMemoryRecordLock()
    order: list[str] = []

    async def run() -> None:
        async with lock.hold("a"):
            # would deadlock if "b" shared the lock with "a"
            async with lock.hold("b"):
                order.append("both")

    asyncio.run(run())
    assert order == ["both"]


def test_entries_are_dropped_after_release() -> None:
    lock = InMemoryRecordLock()

    async def run() -> None:
        async with lock.hold("a"):
            assert len(lock) == 1
        await asyncio.gather(*(_hold(lock, f"k{i}") for i in range(5)))

    asyncio.run(run())
    assert len(lock) == 0


def test_entry_is_dropped_when_body_raises() -> None:
    lock = InMemoryRecordLock()

    async def run() -> None:
        try:
            async with lock.hold("a"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

    asyncio.run(run())
    assert len(lock) == 0


async def _hold(lock: InMemoryRecordLock, key: str) -> None:
    async with lock.hold(key):
        await asyncio.sleep(0)


class _DownLock:
    async def acquire(self) -> bool:
        raise RedisConnectionError("Connection refused")

    async def release(self) -> None:
        raise AssertionError("release without acquire")


class _DownRedis:
    def lock(self, name: str, **kwargs) -> _DownLock:
        return _DownLock()


def test_redis_outage_on_acquire_is_a_conflict() -> None:
    lock = RedisRecordLock(_DownRedis(), timeout=1.0)
    entered = False

    async def run() -> None:
        nonlocal entered
        async with lock.hold("alice:course-1"):
            entered = True

    with pytest.raises(ConflictError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.kind == "conflict"
    assert not entered


def test_unreachable_redis_is_a_conflict() -> None:
    async def run() -> None:
        client = aioredis.Redis(
            host="127.0.0.1",
            port=1,
            socket_connect_timeout=0.5,
            retry=Retry(NoBackoff(), 0),
        )
        lock = RedisRecordLock(client, timeout=0.5)
        try:
            async with lock.hold("alice:course-1"):
                pass
        finally:
            await client.aclose()

    with pytest.raises(ConflictError):
        asyncio.run(run())
