"""Reward sink tests: XP ledger, coin balance, LifeScore history, streaks."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from lifequest.errors import InsufficientCoinsError, UserNotFoundError
from lifequest.gamification.reward_service import RewardService


class TestAwardXP:
    @pytest.mark.asyncio
    async def test_awards_xp_and_records_ledger(self, store, make_user):
        await make_user(store, "u1")
        rewards = RewardService(store)

        result = await rewards.award_xp("u1", 50, "mission_completion", "um-1")

        assert result.new_xp == 50
        assert result.new_level == 1
        assert result.level_up is False
        ledger = await store.select("xp_ledger", {"user_id": "u1"})
        assert len(ledger) == 1
        assert ledger[0]["amount"] == 50
        assert ledger[0]["source_id"] == "um-1"

    @pytest.mark.asyncio
    async def test_level_up_detected_and_published(self, store, make_user):
        await make_user(store, "u1", xp=90, level=1)
        redis = AsyncMock()
        rewards = RewardService(store, redis=redis)

        result = await rewards.award_xp("u1", 20)

        assert result.level_up is True
        assert result.new_level == 2
        assert result.progress == {"current": 10, "required": 100, "percentage": 10}
        redis.publish.assert_awaited_once()
        assert redis.publish.await_args.args[0] == "pubsub:level_up"

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_block_reward(self, store, make_user):
        await make_user(store, "u1", xp=99)
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")
        rewards = RewardService(store, redis=redis)

        result = await rewards.award_xp("u1", 1)

        assert result.level_up is True
        user = await store.get("users", {"id": "u1"})
        assert user["xp"] == 100
        assert user["level"] == 2

    @pytest.mark.asyncio
    async def test_unknown_user_raises(self, store):
        with pytest.raises(UserNotFoundError):
            await RewardService(store).award_xp("ghost", 10)


class TestCoins:
    @pytest.mark.asyncio
    async def test_award_coins(self, store, make_user):
        await make_user(store, "u1", coins=5)
        result = await RewardService(store).award_coins("u1", 20)
        assert result.new_coins == 25

    @pytest.mark.asyncio
    async def test_balance_never_negative(self, store, make_user):
        await make_user(store, "u1", coins=5)
        result = await RewardService(store).award_coins("u1", -50)
        assert result.new_coins == 0

    @pytest.mark.asyncio
    async def test_spend_coins(self, store, make_user):
        await make_user(store, "u1", coins=12)
        result = await RewardService(store).spend_coins("u1", 5, "step_generation")
        assert result.new_coins == 7

    @pytest.mark.asyncio
    async def test_spend_more_than_balance_raises(self, store, make_user):
        await make_user(store, "u1", coins=3)
        with pytest.raises(InsufficientCoinsError) as exc_info:
            await RewardService(store).spend_coins("u1", 5, "step_generation")
        assert exc_info.value.balance == 3
        user = await store.get("users", {"id": "u1"})
        assert user["coins"] == 3


class TestLifeScore:
    @pytest.mark.asyncio
    async def test_update_records_history(self, store, make_user):
        await make_user(store, "u1", lifescore=40)
        result = await RewardService(store).update_lifescore("u1", 15, "mission_complete")

        assert result.old_lifescore == 40
        assert result.new_lifescore == 55
        assert result.status == "medium"
        history = await store.select("lifescore_history", {"user_id": "u1"})
        assert [(h["old_score"], h["new_score"]) for h in history] == [(40, 55)]

    @pytest.mark.asyncio
    async def test_clamped_at_100(self, store, make_user):
        await make_user(store, "u1", lifescore=95)
        result = await RewardService(store).update_lifescore("u1", 20)
        assert result.new_lifescore == 100
        assert result.change == 5

    @pytest.mark.asyncio
    async def test_clamped_at_zero(self, store, make_user):
        await make_user(store, "u1", lifescore=5)
        result = await RewardService(store).update_lifescore("u1", -30)
        assert result.new_lifescore == 0

    @pytest.mark.asyncio
    async def test_huge_delta_saturates(self, store, make_user):
        await make_user(store, "u1", lifescore=50)
        rewards = RewardService(store)

        up = await rewards.update_lifescore("u1", 10**400)
        assert up.new_lifescore == 100
        assert up.change == 50

        down = await rewards.update_lifescore("u1", -(10**400))
        assert down.new_lifescore == 0
        assert (await store.get("users", {"id": "u1"}))["lifescore"] == 0


class TestStreak:
    @pytest.mark.asyncio
    async def test_increment_tracks_longest(self, store, make_user):
        await make_user(store, "u1", current_streak=3, longest_streak=3)
        result = await RewardService(store).update_streak("u1")
        assert result.current_streak == 4
        assert result.longest_streak == 4

    @pytest.mark.asyncio
    async def test_decrement_flags_broken_streak(self, store, make_user):
        await make_user(store, "u1", current_streak=2, longest_streak=6)
        result = await RewardService(store).update_streak("u1", increment=False)
        assert result.current_streak == 1
        assert result.longest_streak == 6
        assert result.streak_broken is True


class TestUserStats:
    @pytest.mark.asyncio
    async def test_stats_summary(self, store, make_user):
        await make_user(store, "u1", xp=250, level=3, lifescore=82, coins=40)
        stats = await RewardService(store).get_user_stats("u1")
        assert stats["level"] == 3
        assert stats["xp_progress"]["current"] == 50
        assert stats["lifescore_status"] == "excellent"
        assert stats["coins"] == 40

    @pytest.mark.asyncio
    async def test_get_or_create_user(self, store):
        rewards = RewardService(store)
        user = await rewards.get_or_create_user("new-user")
        again = await rewards.get_or_create_user("new-user")
        assert user["id"] == again["id"] == "new-user"
        assert user["level"] == 1
        assert len(await store.select("users")) == 1

    @pytest.mark.asyncio
    async def test_get_or_create_user_reads_concurrently_created_row(self, store, make_user):
        """A row inserted between the lookup and the insert is returned, not duplicated."""
        await make_user(store, "u1", coins=100)
        real_get = store.get
        lookups = []

        async def stale_first_get(table, filters):
            lookups.append(table)
            if len(lookups) == 1:
                return None
            return await real_get(table, filters)

        store.get = stale_first_get
        user = await RewardService(store).get_or_create_user("u1")

        assert user["coins"] == 100
        assert len(lookups) == 2
        assert len(await store.select("users")) == 1
