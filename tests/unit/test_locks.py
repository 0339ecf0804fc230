"""Per-user lock providers."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from lifequest.missions.locks import LocalUserLocks, RedisUserLocks


@pytest.mark.asyncio
async def test_local_lock_serializes_same_user():
    locks = LocalUserLocks()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with locks.lock("u1"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_local_lock_independent_users():
    locks = LocalUserLocks()
    async with locks.lock("u1"):
        # A different user's lock is free while u1 is held
        await asyncio.wait_for(_acquire(locks, "u2"), timeout=0.5)


async def _acquire(locks: LocalUserLocks, user_id: str) -> None:
    async with locks.lock(user_id):
        pass


@pytest.mark.asyncio
async def test_redis_lock_name_and_timeouts():
    client = MagicMock()
    locks = RedisUserLocks(client, timeout=15, blocking_timeout=2.0)

    async with locks.lock("u1"):
        pass

    client.lock.assert_called_once_with("lock:user:u1:missions", timeout=15, blocking_timeout=2.0)
    client.lock.return_value.__aenter__.assert_awaited_once()
    client.lock.return_value.__aexit__.assert_awaited_once()
