"""Per-user serialization of mission mutations."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()


class UserLockProvider(ABC):
    """Hands out an exclusive lock per user id."""

    @abstractmethod
    def lock(self, user_id: str) -> AbstractAsyncContextManager[None]:
        """Async context manager held for the duration of one mutation."""


class LocalUserLocks(UserLockProvider):
    """asyncio locks, valid within a single process."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def lock(self, user_id: str) -> AsyncIterator[None]:
        user_lock = self._locks.setdefault(user_id, asyncio.Lock())
        async with user_lock:
            yield


class RedisUserLocks(UserLockProvider):
    """Redis locks shared by every worker process."""

    def __init__(self, client: redis.Redis, timeout: int = 30, blocking_timeout: float = 10.0) -> None:
        self.client = client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    @asynccontextmanager
    async def lock(self, user_id: str) -> AsyncIterator[None]:
        user_lock = self.client.lock(
            f"lock:user:{user_id}:missions",
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        async with user_lock:
            logger.debug("user_lock_acquired", user_id=user_id)
            yield
