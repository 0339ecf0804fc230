"""Service wiring over each datastore backend."""

from __future__ import annotations

import pytest

from lifequest.container import build_container
from lifequest.datastore.memory import MemoryDatastore
from lifequest.datastore.sql import SQLDatastore
from lifequest.generation.providers import AnthropicProvider


@pytest.mark.asyncio
async def test_memory_container_seeds_achievements(settings_factory):
    container = await build_container(settings_factory())
    try:
        assert isinstance(container.store, MemoryDatastore)
        assert not container.generator.live
        assert len(await container.achievements.list_achievements()) == 10
    finally:
        await container.close()


@pytest.mark.asyncio
async def test_live_provider_needs_a_key(settings_factory):
    without_key = await build_container(settings_factory(ai_enabled=True))
    with_key = await build_container(settings_factory(ai_enabled=True, anthropic_api_key="sk-test"))
    assert not without_key.generator.live
    assert isinstance(with_key.generator.provider, AnthropicProvider)


@pytest.mark.asyncio
async def test_sql_container_runs_mission_flow(settings_factory, make_user, tmp_path):
    settings = settings_factory(
        datastore_backend="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'lifequest.db'}",
    )
    container = await build_container(settings)
    try:
        assert isinstance(container.store, SQLDatastore)
        await make_user(container.store, "u1", coins=100)
        missions = container.missions

        generated = await missions.generate_missions("u1")
        easy = next(m for m in generated.data["missions"] if m["difficulty"] == "easy")
        started = await missions.start_mission("u1", easy["id"])
        completed = await missions.complete_mission("u1", easy["id"])
        daily = await missions.reset_daily_missions("u1")
        again = await missions.reset_daily_missions("u1")

        assert len(started.data["steps"]) == 3
        assert completed.data["achievements_unlocked"] == ["first_steps"]
        assert completed.data["new_coins"] == 100 - 5 + easy["coin_reward"] + 25
        assert daily.data["already_reset"] is False
        assert again.data["already_reset"] is True
        assert (await container.store.get("user_missions", {"id": started.data["user_mission_id"]}))["status"] == "completed"
    finally:
        await container.close()
