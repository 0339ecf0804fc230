"""Service wiring.

Builds the datastore, reward sink, achievement engine, content generator
and mission service from settings, once per process.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import redis.asyncio as redis
import structlog

from lifequest.config import Settings
from lifequest.database import close_db, create_schema, get_session_factory, init_db
from lifequest.datastore.base import Datastore
from lifequest.datastore.memory import MemoryDatastore
from lifequest.datastore.sql import SQLDatastore
from lifequest.gamification.achievement_engine import AchievementEngine
from lifequest.gamification.reward_service import RewardService
from lifequest.gamification.seed import seed_achievements
from lifequest.generation.providers import AnthropicProvider, TextProvider
from lifequest.generation.service import ContentGenerator
from lifequest.missions.locks import LocalUserLocks, RedisUserLocks, UserLockProvider
from lifequest.missions.service import MissionService
from lifequest.redis_client import close_redis, init_redis

logger = structlog.get_logger()


@dataclass
class Container:
    store: Datastore
    rewards: RewardService
    achievements: AchievementEngine
    generator: ContentGenerator
    missions: MissionService
    redis: redis.Redis | None = None
    owned: list[str] = field(default_factory=list)

    async def close(self) -> None:
        """Release connections opened by ``build_container``."""
        if "sql" in self.owned:
            await close_db()
        if "redis" in self.owned:
            await close_redis()


def build_services(
    store: Datastore,
    settings: Settings,
    provider: TextProvider | None = None,
    locks: UserLockProvider | None = None,
    redis_client: redis.Redis | None = None,
) -> Container:
    """Assemble the service graph over an existing datastore."""
    rewards = RewardService(store, redis=redis_client)
    achievements = AchievementEngine(store, rewards, redis=redis_client)
    generator = ContentGenerator(
        provider=provider,
        enabled=settings.ai_enabled,
        max_tokens=settings.ai_max_tokens,
        temperature=settings.ai_temperature,
    )
    missions = MissionService(
        store,
        generator,
        rewards,
        achievements,
        locks=locks or LocalUserLocks(),
        step_fee=settings.step_generation_fee,
    )
    return Container(
        store=store,
        rewards=rewards,
        achievements=achievements,
        generator=generator,
        missions=missions,
        redis=redis_client,
    )


async def build_container(settings: Settings) -> Container:
    """Connect backends named in settings and build the services."""
    owned: list[str] = []

    if settings.datastore_backend == "sql":
        await init_db(settings.database_url)
        await create_schema()
        store: Datastore = SQLDatastore(get_session_factory())
        owned.append("sql")
    else:
        store = MemoryDatastore()

    redis_client = None
    locks: UserLockProvider = LocalUserLocks()
    if settings.lock_backend == "redis":
        redis_client = await init_redis(settings.redis_url)
        locks = RedisUserLocks(redis_client, timeout=settings.lock_timeout_seconds)
        owned.append("redis")

    provider = None
    if settings.ai_enabled and settings.anthropic_api_key:
        provider = AnthropicProvider(
            api_key=settings.anthropic_api_key,
            model=settings.ai_model,
            timeout=settings.ai_timeout_seconds,
        )

    container = build_services(store, settings, provider=provider, locks=locks, redis_client=redis_client)
    container.owned = owned

    if settings.seed_achievements:
        await seed_achievements(store)

    logger.info(
        "container_ready",
        datastore=settings.datastore_backend,
        locks=settings.lock_backend,
        live_generation=provider is not None,
    )
    return container
