"""Reward sink: the only writer of a user's XP, level, coins, LifeScore and streak."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from lifequest.datastore.base import Datastore, Record
from lifequest.errors import DuplicateRecordError, InsufficientCoinsError, UserNotFoundError
from lifequest.gamification.reward_math import (
    clamp_lifescore,
    level_from_xp,
    lifescore_percentage,
    lifescore_status,
    xp_progress,
)

logger = logging.getLogger(__name__)


@dataclass
class XPResult:
    xp_gained: int
    new_xp: int
    new_level: int
    level_up: bool
    progress: dict[str, int]


@dataclass
class CoinsResult:
    coins_gained: int
    new_coins: int


@dataclass
class LifeScoreResult:
    change: int
    old_lifescore: int
    new_lifescore: int
    percentage: int
    status: str


@dataclass
class StreakResult:
    current_streak: int
    longest_streak: int
    streak_broken: bool


class RewardService:
    """Applies reward deltas to user rows.

    Callers serialize per-user mutations (see MissionService); the methods
    here are plain read-modify-write against the datastore.
    """

    def __init__(self, store: Datastore, redis: object | None = None) -> None:
        self.store = store
        self.redis = redis

    async def get_user(self, user_id: str) -> Record:
        user = await self.store.get("users", {"id": user_id})
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_or_create_user(self, user_id: str, email: str | None = None) -> Record:
        """Get or create the user row with zeroed reward columns."""
        user = await self.store.get("users", {"id": user_id})
        if user is None:
            now = datetime.now(timezone.utc)
            try:
                user = await self.store.insert("users", {
                    "id": user_id,
                    "email": email,
                    "xp": 0,
                    "level": 1,
                    "lifescore": 0,
                    "coins": 0,
                    "current_streak": 0,
                    "longest_streak": 0,
                    "created_at": now,
                    "updated_at": now,
                })
            except DuplicateRecordError:
                # Created concurrently by another request
                user = await self.get_user(user_id)
        return user

    async def _save(self, user_id: str, patch: Record) -> None:
        patch["updated_at"] = datetime.now(timezone.utc)
        await self.store.update("users", {"id": user_id}, patch)

    async def award_xp(
        self,
        user_id: str,
        amount: int,
        source: str = "mission_completion",
        source_id: str | None = None,
    ) -> XPResult:
        """Grant XP, recompute level and record a ledger entry."""
        user = await self.get_user(user_id)
        old_level = user.get("level") or 1
        new_xp = max(0, (user.get("xp") or 0) + amount)
        new_level = level_from_xp(new_xp)

        await self._save(user_id, {"xp": new_xp, "level": new_level})
        await self.store.insert("xp_ledger", {
            "user_id": user_id,
            "amount": amount,
            "source": source,
            "source_id": source_id,
            "created_at": datetime.now(timezone.utc),
        })

        level_up = new_level > old_level
        logger.info("XP awarded user=%s amount=%d new_xp=%d level=%d source=%s", user_id, amount, new_xp, new_level, source)
        if level_up:
            await self._publish("pubsub:level_up", {
                "user_id": user_id,
                "old_level": old_level,
                "new_level": new_level,
            })

        return XPResult(
            xp_gained=amount,
            new_xp=new_xp,
            new_level=new_level,
            level_up=level_up,
            progress=xp_progress(new_xp, new_level),
        )

    async def award_coins(self, user_id: str, amount: int, reason: str = "mission_completion") -> CoinsResult:
        """Add coins; the balance never drops below zero."""
        user = await self.get_user(user_id)
        new_coins = max(0, (user.get("coins") or 0) + amount)
        await self._save(user_id, {"coins": new_coins})
        logger.info("Coins awarded user=%s amount=%d new_coins=%d reason=%s", user_id, amount, new_coins, reason)
        return CoinsResult(coins_gained=amount, new_coins=new_coins)

    async def spend_coins(self, user_id: str, amount: int, reason: str) -> CoinsResult:
        """Deduct coins. Raises InsufficientCoinsError if the balance is short."""
        user = await self.get_user(user_id)
        balance = user.get("coins") or 0
        if balance < amount:
            raise InsufficientCoinsError(user_id, balance, amount)
        new_coins = balance - amount
        await self._save(user_id, {"coins": new_coins})
        logger.info("Coins spent user=%s amount=%d new_coins=%d reason=%s", user_id, amount, new_coins, reason)
        return CoinsResult(coins_gained=-amount, new_coins=new_coins)

    async def update_lifescore(self, user_id: str, delta: int, reason: str = "mission_complete") -> LifeScoreResult:
        """Apply a LifeScore delta, clamped to [0, 100], and record history."""
        user = await self.get_user(user_id)
        old_score = clamp_lifescore(user.get("lifescore"))
        new_score = clamp_lifescore(old_score + delta)

        await self._save(user_id, {"lifescore": new_score})
        await self.store.insert("lifescore_history", {
            "user_id": user_id,
            "old_score": old_score,
            "new_score": new_score,
            "change_reason": reason,
            "created_at": datetime.now(timezone.utc),
        })
        logger.info("LifeScore updated user=%s delta=%d new=%d reason=%s", user_id, delta, new_score, reason)

        return LifeScoreResult(
            change=new_score - old_score,
            old_lifescore=old_score,
            new_lifescore=new_score,
            percentage=lifescore_percentage(new_score),
            status=lifescore_status(new_score),
        )

    async def update_streak(self, user_id: str, increment: bool = True) -> StreakResult:
        """Increment (or decrement) the completion streak, tracking the longest."""
        user = await self.get_user(user_id)
        current = user.get("current_streak") or 0
        new_streak = current + 1 if increment else max(current - 1, 0)
        longest = max(new_streak, user.get("longest_streak") or 0)

        await self._save(user_id, {"current_streak": new_streak, "longest_streak": longest})
        return StreakResult(
            current_streak=new_streak,
            longest_streak=longest,
            streak_broken=not increment and current > 0,
        )

    async def get_user_stats(self, user_id: str) -> dict[str, Any]:
        """Gamification summary for a user."""
        user = await self.get_user(user_id)
        xp = user.get("xp") or 0
        level = level_from_xp(xp)
        lifescore = clamp_lifescore(user.get("lifescore"))
        return {
            "xp": xp,
            "level": level,
            "xp_progress": xp_progress(xp, level),
            "lifescore": lifescore,
            "lifescore_percentage": lifescore_percentage(lifescore),
            "lifescore_status": lifescore_status(lifescore),
            "coins": user.get("coins") or 0,
            "current_streak": user.get("current_streak") or 0,
            "longest_streak": user.get("longest_streak") or 0,
        }

    async def _publish(self, channel: str, payload: dict[str, Any]) -> None:
        """Broadcast a reward event; failures never affect the reward itself."""
        if self.redis is None:
            return
        try:
            await self.redis.publish(channel, json.dumps(payload))  # type: ignore[union-attr]
        except Exception:
            logger.warning("Failed to publish %s broadcast", channel, exc_info=True)
