"""Datastore contract, run against both the memory and SQLite-backed stores."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from lifequest.datastore.base import Datastore
from lifequest.datastore.memory import MemoryDatastore
from lifequest.datastore.sql import SQLDatastore
from lifequest.db.base import Base
from lifequest.errors import DatastoreError, DuplicateRecordError, UnknownTableError


@pytest_asyncio.fixture(params=["memory", "sql"])
async def datastore(request, tmp_path) -> AsyncGenerator[Datastore, None]:
    if request.param == "memory":
        yield MemoryDatastore()
    else:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lifequest.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield SQLDatastore(async_sessionmaker(engine, expire_on_commit=False))
        await engine.dispose()


def _mission(mission_id: str, **fields) -> dict:
    return {
        "id": mission_id,
        "category": "health",
        "difficulty": "easy",
        "title_en": f"Mission {mission_id}",
        "xp_reward": 50,
        "lifescore_impact": 5,
        **fields,
    }


class TestInsert:
    @pytest.mark.asyncio
    async def test_assigns_id(self, datastore):
        row = await datastore.insert("xp_ledger", {"user_id": "u1", "amount": 10, "source": "mission"})
        assert row["id"]
        assert (await datastore.get("xp_ledger", {"id": row["id"]}))["amount"] == 10

    @pytest.mark.asyncio
    async def test_duplicate_id(self, datastore):
        await datastore.insert("missions", _mission("m1"))
        with pytest.raises(DuplicateRecordError):
            await datastore.insert("missions", _mission("m1"))

    @pytest.mark.asyncio
    async def test_composite_unique_key(self, datastore):
        await datastore.insert("user_achievements", {"user_id": "u1", "achievement_id": "a1"})
        await datastore.insert("user_achievements", {"user_id": "u2", "achievement_id": "a1"})
        with pytest.raises(DuplicateRecordError):
            await datastore.insert("user_achievements", {"user_id": "u1", "achievement_id": "a1"})
        assert len(await datastore.select("user_achievements")) == 2

    @pytest.mark.asyncio
    async def test_not_null_violation_is_not_a_duplicate(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lifequest.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        store = SQLDatastore(async_sessionmaker(engine, expire_on_commit=False))
        incomplete = _mission("m1")
        del incomplete["title_en"]

        try:
            with pytest.raises(DatastoreError) as exc_info:
                await store.insert("missions", incomplete)
            assert not isinstance(exc_info.value, DuplicateRecordError)
            assert await store.get("missions", {"id": "m1"}) is None
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_json_column_round_trip(self, datastore):
        profile = {"name": "Aisha", "insurance_preferences": ["car", "health"]}
        await datastore.insert("user_profiles", {"user_id": "u1", "profile_json": profile})
        row = await datastore.get("user_profiles", {"user_id": "u1"})
        assert row["profile_json"] == profile

    @pytest.mark.asyncio
    async def test_column_defaults_are_not_required(self, datastore):
        await datastore.insert("missions", _mission("m1", is_active=True, coin_reward=None))
        row = await datastore.get("missions", {"id": "m1"})
        assert row["coin_reward"] is None
        assert row["is_active"] is True


class TestSelect:
    @pytest.mark.asyncio
    async def test_filters_order_and_limit(self, datastore):
        for amount in (30, 10, 20):
            await datastore.insert("xp_ledger", {"user_id": "u1", "amount": amount, "source": "mission"})
        await datastore.insert("xp_ledger", {"user_id": "u2", "amount": 99, "source": "mission"})

        ascending = await datastore.select("xp_ledger", {"user_id": "u1"}, order_by="amount")
        descending = await datastore.select("xp_ledger", {"user_id": "u1"}, order_by="-amount", limit=2)

        assert [r["amount"] for r in ascending] == [10, 20, 30]
        assert [r["amount"] for r in descending] == [30, 20]

    @pytest.mark.asyncio
    async def test_boolean_filter(self, datastore):
        await datastore.insert("missions", _mission("m1", is_active=True))
        await datastore.insert("missions", _mission("m2", is_active=False))
        rows = await datastore.select("missions", {"is_active": True})
        assert [r["id"] for r in rows] == ["m1"]

    @pytest.mark.asyncio
    async def test_get_missing(self, datastore):
        assert await datastore.get("missions", {"id": "nope"}) is None

    @pytest.mark.asyncio
    async def test_unknown_table(self, datastore):
        with pytest.raises(UnknownTableError):
            await datastore.select("quests")


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_compare_and_set(self, datastore):
        row = await datastore.insert("user_missions", {"user_id": "u1", "mission_id": "m1", "status": "active"})

        first = await datastore.update("user_missions", {"id": row["id"], "status": "active"}, {"status": "completed"})
        second = await datastore.update("user_missions", {"id": row["id"], "status": "active"}, {"status": "completed"})

        assert (first, second) == (1, 0)
        assert (await datastore.get("user_missions", {"id": row["id"]}))["status"] == "completed"

    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self, datastore):
        row = await datastore.insert("xp_ledger", {"user_id": "u1", "amount": 5, "source": "mission"})
        row["amount"] = 500
        assert (await datastore.get("xp_ledger", {"id": row["id"]}))["amount"] == 5

    @pytest.mark.asyncio
    async def test_delete(self, datastore):
        await datastore.insert("xp_ledger", {"user_id": "u1", "amount": 5, "source": "mission"})
        await datastore.insert("xp_ledger", {"user_id": "u2", "amount": 5, "source": "mission"})
        assert await datastore.delete("xp_ledger", {"user_id": "u1"}) == 1
        assert len(await datastore.select("xp_ledger")) == 1

    @pytest.mark.asyncio
    async def test_ping(self, datastore):
        assert await datastore.ping() is True
