"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from lifequest.config import Settings
from lifequest.container import Container, build_services
from lifequest.datastore.base import Datastore
from lifequest.datastore.memory import MemoryDatastore
from lifequest.gamification.seed import seed_achievements
from lifequest.generation.providers import TextProvider

COMPLETE_PROFILE: dict = {
    "name": "Aisha",
    "age": 34,
    "gender": "female",
    "nationality": "Qatari",
    "insurance_preferences": ["car", "health"],
    "areas_of_interest": ["travel"],
    "vulnerabilities": [],
    "first_time_buyer": False,
}


class ScriptedProvider(TextProvider):
    """Provider returning queued responses (or raising queued exceptions)."""

    name = "scripted"

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_settings(**overrides) -> Settings:
    values = {
        "ai_enabled": False,
        "anthropic_api_key": "",
        "datastore_backend": "memory",
        "lock_backend": "local",
        "step_generation_fee": 5,
        "log_format": "console",
    }
    values.update(overrides)
    return Settings(**values)


async def create_user(
    store: Datastore,
    user_id: str = "user-1",
    coins: int = 100,
    profile: dict | None = COMPLETE_PROFILE,
    **fields,
) -> dict:
    """Insert a user row (and profile, unless ``profile`` is None)."""
    now = datetime.now(timezone.utc)
    user = await store.insert("users", {
        "id": user_id,
        "email": f"{user_id}@example.com",
        "xp": 0,
        "level": 1,
        "lifescore": 0,
        "coins": coins,
        "current_streak": 0,
        "longest_streak": 0,
        "created_at": now,
        "updated_at": now,
        **fields,
    })
    if profile is not None:
        await store.insert("user_profiles", {
            "user_id": user_id,
            "profile_json": profile,
            "created_at": now,
            "updated_at": now,
        })
    return user


@pytest.fixture
def store() -> MemoryDatastore:
    return MemoryDatastore()


@pytest_asyncio.fixture
async def seeded_store(store: MemoryDatastore) -> MemoryDatastore:
    """Memory store with the achievement catalog loaded."""
    await seed_achievements(store)
    return store


@pytest_asyncio.fixture
async def services(seeded_store: MemoryDatastore) -> Container:
    """Service graph over the memory store, template generation only."""
    return build_services(seeded_store, make_settings())


@pytest_asyncio.fixture
async def client(services: Container) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the test services."""
    from lifequest.main import create_app

    app = create_app(container=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def complete_profile() -> dict:
    return {**COMPLETE_PROFILE}


@pytest.fixture
def make_user():
    """Factory fixture: ``await make_user(store, user_id, coins=..., profile=...)``."""
    return create_user


@pytest.fixture
def scripted_provider():
    """Factory fixture for a provider replaying canned responses."""
    return ScriptedProvider


@pytest.fixture
def settings_factory():
    return make_settings
