"""Achievement rule evaluator: unlocks catalog achievements from a stats snapshot."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from lifequest.datastore.base import Datastore, Record
from lifequest.errors import DuplicateRecordError
from lifequest.gamification.reward_service import RewardService
from lifequest.missions.schemas import MissionStatus

logger = logging.getLogger(__name__)


@dataclass
class UserStats:
    """Snapshot the unlock conditions are evaluated against."""

    lifescore: int = 0
    xp: int = 0
    coins: int = 0
    current_streak: int = 0
    total_missions_completed: int = 0
    days_active: int = 0
    scenarios_completed: int = 0
    rewards_redeemed: int = 0


# condition_type -> UserStats field it compares against
_CONDITION_FIELDS: dict[str, str] = {
    "missions_completed": "total_missions_completed",
    "streak_count": "current_streak",
    "lifescore_milestone": "lifescore",
    "xp_milestone": "xp",
    "coins_earned": "coins",
    "days_active": "days_active",
    "scenarios_completed": "scenarios_completed",
    "rewards_redeemed": "rewards_redeemed",
}


def check_condition(achievement: Record, stats: UserStats) -> bool:
    """True if the stats value for the achievement's condition meets its threshold.

    Unknown condition types never unlock.
    """
    field = _CONDITION_FIELDS.get(achievement.get("condition_type", ""))
    if field is None:
        return False
    return (getattr(stats, field) or 0) >= (achievement.get("condition_value") or 0)


def days_since(created_at: datetime | None, now: datetime | None = None) -> int:
    """Whole days elapsed since ``created_at``."""
    if created_at is None:
        return 0
    if now is None:
        now = datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return max(0, (now - created_at).days)


class AchievementEngine:
    """Evaluates achievement unlocks after a completion event."""

    def __init__(self, store: Datastore, rewards: RewardService, redis: object | None = None) -> None:
        self.store = store
        self.rewards = rewards
        self.redis = redis

    async def list_achievements(self) -> list[Record]:
        return await self.store.select("achievements", {"is_active": True}, order_by="sort_order")

    async def list_user_achievements(self, user_id: str) -> list[Record]:
        return await self.store.select("user_achievements", {"user_id": user_id}, order_by="earned_at")

    async def build_stats(
        self,
        user_id: str,
        scenarios_completed: int = 0,
        rewards_redeemed: int = 0,
    ) -> UserStats:
        """Compute a fresh stats snapshot from the user row and mission history."""
        user = await self.rewards.get_user(user_id)
        completed = await self.store.select("user_missions", {"user_id": user_id, "status": MissionStatus.COMPLETED.value})
        return UserStats(
            lifescore=user.get("lifescore") or 0,
            xp=user.get("xp") or 0,
            coins=user.get("coins") or 0,
            current_streak=user.get("current_streak") or 0,
            total_missions_completed=len(completed),
            days_active=days_since(user.get("created_at")),
            scenarios_completed=scenarios_completed,
            rewards_redeemed=rewards_redeemed,
        )

    async def check_and_unlock_achievements(self, user_id: str, stats: UserStats) -> list[Record]:
        """Unlock every not-yet-earned achievement whose condition holds.

        Returns the achievements unlocked by this call (may be empty).
        A failure on one achievement is logged and does not stop the others.
        """
        achievements = await self.list_achievements()
        earned_ids = {ua["achievement_id"] for ua in await self.list_user_achievements(user_id)}

        unlocked: list[Record] = []
        for achievement in achievements:
            if achievement["id"] in earned_ids:
                continue
            if not check_condition(achievement, stats):
                continue

            try:
                await self.store.insert("user_achievements", {
                    "user_id": user_id,
                    "achievement_id": achievement["id"],
                    "earned_at": datetime.now(timezone.utc),
                    "notification_sent": False,
                })
            except DuplicateRecordError:
                continue  # Race: already unlocked by another writer

            try:
                await self._award(user_id, achievement)
            except Exception:
                logger.warning(
                    "Failed to award achievement user=%s achievement=%s",
                    user_id, achievement.get("slug", achievement["id"]), exc_info=True,
                )
                continue

            unlocked.append(achievement)
            logger.info("Achievement unlocked user=%s achievement=%s", user_id, achievement.get("slug"))

        return unlocked

    async def _award(self, user_id: str, achievement: Record) -> None:
        if (achievement.get("xp_reward") or 0) > 0:
            await self.rewards.award_xp(user_id, achievement["xp_reward"], "achievement", achievement["id"])
        if (achievement.get("coin_reward") or 0) > 0:
            await self.rewards.award_coins(user_id, achievement["coin_reward"], "achievement")
        if (achievement.get("lifescore_boost") or 0) > 0:
            await self.rewards.update_lifescore(user_id, achievement["lifescore_boost"], "achievement_reward")

        if self.redis is not None:
            try:
                await self.redis.publish(  # type: ignore[union-attr]
                    "pubsub:achievement_unlocked",
                    json.dumps({
                        "user_id": user_id,
                        "slug": achievement.get("slug"),
                        "name": achievement.get("name_en"),
                        "xp_reward": achievement.get("xp_reward") or 0,
                    }),
                )
            except Exception:
                logger.warning("Failed to publish achievement_unlocked notification", exc_info=True)
