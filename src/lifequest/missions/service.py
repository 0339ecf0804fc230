"""Mission lifecycle orchestration.

Every public method returns a ServiceResult. Business rejections (profile
incomplete, conflicts, not found) come back as failures with an error code;
only GenerationFailedError and infrastructure errors propagate.

Mutations for one user run under that user's lock from the configured
UserLockProvider. Completion additionally goes through a compare-and-set on
the instance status, so rewards are applied at most once per instance.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any

import structlog

from lifequest.datastore.base import Datastore, Record
from lifequest.errors import InsufficientCoinsError, MissionErrorCode
from lifequest.gamification.achievement_engine import AchievementEngine
from lifequest.gamification.reward_service import RewardService
from lifequest.generation.service import ContentGenerator
from lifequest.missions.locks import LocalUserLocks, UserLockProvider
from lifequest.missions.profile import ProfileProvider, validate_profile
from lifequest.missions.repository import (
    DailySlotRepository,
    MissionRepository,
    MissionStepRepository,
    UserMissionRepository,
)
from lifequest.missions.schemas import (
    ACTIVE_STATUSES,
    DEFAULT_COIN_REWARD,
    DIFFICULTIES,
    MissionStatus,
    ServiceResult,
    StepStatus,
    UserProfile,
)
from lifequest.missions.slots import SlotKey, make_slot_token, parse_slot_token

logger = structlog.get_logger()


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def coin_reward_for(mission: Record) -> int:
    """Mission coin reward, defaulting by difficulty when none is set."""
    if mission.get("coin_reward") is not None:
        return int(mission["coin_reward"])
    return DEFAULT_COIN_REWARD.get(mission.get("difficulty") or "easy", DEFAULT_COIN_REWARD["easy"])


def _day_of(value: Any) -> str | None:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, str) and value:
        return value[:10]
    return None


class MissionService:
    """Mission generation, start, completion and daily reset."""

    def __init__(
        self,
        store: Datastore,
        generator: ContentGenerator,
        rewards: RewardService,
        achievements: AchievementEngine,
        locks: UserLockProvider | None = None,
        step_fee: int = 5,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self.store = store
        self.generator = generator
        self.rewards = rewards
        self.achievements = achievements
        self.locks = locks or LocalUserLocks()
        self.step_fee = step_fee
        self.today = today

        self.profiles = ProfileProvider(store)
        self.missions = MissionRepository(store)
        self.user_missions = UserMissionRepository(store)
        self.steps = MissionStepRepository(store)
        self.slots = DailySlotRepository(store)

    # --- Generation ---

    async def generate_missions(self, user_id: str) -> ServiceResult:
        """Generate three personalized missions and add them to the catalog."""
        record = await self.profiles.get_profile(user_id)
        if record is None:
            return ServiceResult.failure(MissionErrorCode.PROFILE_NOT_FOUND, "User profile not found")

        check = validate_profile(record.profile)
        if not check.complete:
            logger.info("mission_generation_profile_incomplete", user_id=user_id, missing=check.missing)
            return ServiceResult.failure(
                MissionErrorCode.PROFILE_INCOMPLETE,
                "Complete your profile to unlock personalized missions",
                missing_fields=check.missing,
            )

        drafts = await self.generator.generate_missions_for_user(record.profile)
        missions = [await self.missions.upsert(draft) for draft in drafts]
        logger.info("missions_generated", user_id=user_id, mission_ids=[m["id"] for m in missions])
        return ServiceResult.success(missions=missions)

    # --- Start ---

    async def _resolve(self, user_id: str, mission_id: str) -> tuple[Record | None, SlotKey | None]:
        """Catalog mission for a catalog id or one of the user's slot tokens."""
        key = parse_slot_token(mission_id)
        if key is None:
            return await self.missions.get(mission_id), None
        slot = await self.slots.get(mission_id)
        if slot is None or slot["user_id"] != user_id:
            return None, key
        return await self.missions.get(slot["mission_id"]), key

    async def start_mission(self, user_id: str, mission_id: str) -> ServiceResult:
        mission, _ = await self._resolve(user_id, mission_id)
        if mission is None:
            return ServiceResult.failure(MissionErrorCode.MISSION_NOT_FOUND, "Mission not found")

        async with self.locks.lock(user_id):
            await self.rewards.get_or_create_user(user_id)
            active = await self.user_missions.list_active(user_id)
            for instance in active:
                if instance["mission_id"] == mission["id"]:
                    return ServiceResult.failure(
                        MissionErrorCode.MISSION_ALREADY_STARTED,
                        "Mission already started",
                        user_mission_id=instance["id"],
                    )
            if active:
                return ServiceResult.failure(
                    MissionErrorCode.MISSION_CONFLICT,
                    "Complete your active mission before starting another",
                    active_mission_id=active[0]["mission_id"],
                )

            user_mission = await self.user_missions.create(user_id, mission["id"])
            steps, fee_charged = await self._create_steps(user_id, user_mission, mission)

        logger.info(
            "mission_started",
            user_id=user_id,
            mission_id=mission["id"],
            user_mission_id=user_mission["id"],
            steps=len(steps),
        )
        return ServiceResult.success(
            user_mission_id=user_mission["id"],
            mission_id=mission["id"],
            status=user_mission["status"],
            steps=steps,
            step_fee_charged=fee_charged,
        )

    async def _create_steps(self, user_id: str, user_mission: Record, mission: Record) -> tuple[list[Record], int]:
        """Charge the step fee, then generate and persist the steps.

        The mission stays active with no steps when the user cannot pay or
        generation fails for any reason; a failed generation refunds the fee.
        """
        fee = self.step_fee
        if fee > 0:
            try:
                await self.rewards.spend_coins(user_id, fee, "step_generation")
            except InsufficientCoinsError as exc:
                logger.info(
                    "step_generation_skipped_insufficient_coins",
                    user_id=user_id,
                    balance=exc.balance,
                    required=exc.required,
                )
                return [], 0

        record = await self.profiles.get_profile(user_id)
        profile = record.profile if record else UserProfile()
        try:
            drafts = await self.generator.generate_mission_steps(mission, profile)
        except Exception:
            logger.warning("step_generation_failed", user_id=user_id, mission_id=mission["id"], exc_info=True)
            if fee > 0:
                await self.rewards.award_coins(user_id, fee, "step_generation_refund")
            return [], 0

        return await self.steps.create_steps(user_mission["id"], drafts), fee

    # --- Completion ---

    async def _find_daily_instance(self, user_id: str, key: SlotKey) -> Record | None:
        """Active daily instance for the same day and difficulty as ``key``."""
        for instance in await self.user_missions.list_active(user_id):
            mission = await self.missions.get(instance["mission_id"])
            if mission is None or mission.get("recurrence_type") != "daily":
                continue
            if mission["difficulty"] != key.difficulty:
                continue
            slot = await self.slots.find_by_mission(user_id, mission["id"])
            day = slot["slot_date"] if slot else _day_of(instance.get("started_at"))
            if day == key.slot_date:
                return instance
        return None

    async def complete_mission(self, user_id: str, mission_id: str) -> ServiceResult:
        mission, key = await self._resolve(user_id, mission_id)

        instance = None
        if mission is not None:
            instance = await self.user_missions.find_active(user_id, mission["id"])
            if instance is None and key is None and mission.get("recurrence_type") == "daily":
                key = SlotKey(self.today().isoformat(), mission["difficulty"])
        if instance is None and key is not None:
            instance = await self._find_daily_instance(user_id, key)
        if instance is None:
            return ServiceResult.failure(MissionErrorCode.MISSION_NOT_STARTED, "Mission has not been started")

        async with self.locks.lock(user_id):
            mission = await self.missions.get(instance["mission_id"])
            if mission is None:
                return ServiceResult.failure(MissionErrorCode.MISSION_NOT_FOUND, "Mission not found")

            xp = int(mission.get("xp_reward") or 0)
            coins = coin_reward_for(mission)
            lifescore = int(mission.get("lifescore_impact") or 0)

            if not await self.user_missions.mark_completed(instance, xp, coins, lifescore):
                return ServiceResult.failure(MissionErrorCode.MISSION_NOT_STARTED, "Mission has not been started")

            xp_result = await self.rewards.award_xp(user_id, xp, "mission_completion", instance["id"])
            await self.rewards.award_coins(user_id, coins, "mission_completion")
            ls_result = await self.rewards.update_lifescore(user_id, lifescore, "mission_complete")
            streak = await self.rewards.update_streak(user_id, increment=True)

            stats = await self.achievements.build_stats(user_id)
            unlocked = await self.achievements.check_and_unlock_achievements(user_id, stats)
            user = await self.rewards.get_user(user_id)

        logger.info(
            "mission_completed",
            user_id=user_id,
            mission_id=mission["id"],
            xp=xp,
            coins=coins,
            lifescore=lifescore,
            level_up=xp_result.level_up,
            achievements=[a.get("slug") for a in unlocked],
        )
        return ServiceResult.success(
            user_mission_id=instance["id"],
            mission_id=mission["id"],
            rewards={"xp": xp, "coins": coins, "lifescore": ls_result.change},
            level_up=xp_result.level_up,
            new_level=user.get("level") or xp_result.new_level,
            new_xp=user.get("xp") or 0,
            new_coins=user.get("coins") or 0,
            new_lifescore=user.get("lifescore") or 0,
            current_streak=streak.current_streak,
            achievements_unlocked=[a.get("slug") or a["id"] for a in unlocked],
        )

    # --- Daily reset ---

    async def reset_daily_missions(self, user_id: str) -> ServiceResult:
        """Today's three daily missions, generating them on the first call of the day."""
        record = await self.profiles.get_profile(user_id)
        if record is None:
            return ServiceResult.failure(MissionErrorCode.PROFILE_NOT_FOUND, "User profile not found")

        slot_date = self.today().isoformat()
        async with self.locks.lock(user_id):
            slots = {s["difficulty"]: s for s in await self.slots.list_for_day(user_id, slot_date)}
            already_reset = all(d in slots for d in DIFFICULTIES)

            if not already_reset:
                drafts = await self.generator.generate_adaptive_missions(record.profile)
                for draft in drafts:
                    if draft.difficulty in slots:
                        continue
                    mission = await self.missions.create(draft)
                    slots[draft.difficulty] = await self.slots.register(
                        make_slot_token(user_id, slot_date, draft.difficulty),
                        user_id,
                        slot_date,
                        draft.difficulty,
                        mission["id"],
                    )

            missions = []
            for difficulty in DIFFICULTIES:
                slot = slots.get(difficulty)
                if slot is None:
                    continue
                mission = await self.missions.get(slot["mission_id"])
                if mission is not None:
                    missions.append({**mission, "slot_token": slot["slot_token"]})

        logger.info("daily_missions_reset", user_id=user_id, slot_date=slot_date, already_reset=already_reset)
        return ServiceResult.success(missions=missions, already_reset=already_reset, slot_date=slot_date)

    # --- Queries ---

    async def list_missions(
        self,
        user_id: str,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> ServiceResult:
        """Catalog missions visible to the user, with their latest status."""
        catalog = await self.missions.list_catalog(category=category, difficulty=difficulty)
        latest_status: dict[str, str] = {}
        # Newest first, so the first status seen per mission wins
        for instance in await self.user_missions.list_for_user(user_id):
            latest_status.setdefault(instance["mission_id"], instance["status"])

        missions = []
        for mission in catalog:
            slot_token = None
            if mission.get("recurrence_type") == "daily":
                slot = await self.slots.find_by_mission(user_id, mission["id"])
                if slot is None:
                    continue
                slot_token = slot["slot_token"]
            status = latest_status.get(mission["id"])
            missions.append({
                **mission,
                "user_status": MissionStatus.ACTIVE.value if status in ACTIVE_STATUSES else status,
                "slot_token": slot_token,
            })
        return ServiceResult.success(missions=missions, total=len(missions))

    async def get_active_mission(self, user_id: str) -> ServiceResult:
        active = await self.user_missions.list_active(user_id)
        if not active:
            return ServiceResult.success(user_mission_id=None, mission=None, status=None, started_at=None, steps=[])

        instance = active[0]
        mission = await self.missions.get(instance["mission_id"])
        steps = await self.steps.list_for_user_mission(instance["id"])
        return ServiceResult.success(
            user_mission_id=instance["id"],
            mission=mission,
            status=MissionStatus.ACTIVE.value,
            started_at=instance.get("started_at"),
            steps=steps,
        )

    async def complete_step(self, user_id: str, step_id: str) -> ServiceResult:
        """Mark one step of the user's active mission as completed."""
        async with self.locks.lock(user_id):
            step = await self.steps.get(step_id)
            instance = await self.user_missions.get(step["user_mission_id"]) if step else None
            if step is None or instance is None or instance["user_id"] != user_id:
                return ServiceResult.failure(MissionErrorCode.STEP_NOT_FOUND, "Step not found")
            if instance["status"] not in ACTIVE_STATUSES:
                return ServiceResult.failure(MissionErrorCode.MISSION_NOT_STARTED, "Mission is not active")

            already_completed = step["status"] == StepStatus.COMPLETED.value
            if not already_completed:
                await self.steps.complete(step_id)
            steps = await self.steps.list_for_user_mission(instance["id"])

        done = sum(1 for s in steps if s["status"] == StepStatus.COMPLETED.value)
        return ServiceResult.success(
            step=next(s for s in steps if s["id"] == step_id),
            already_completed=already_completed,
            steps_completed=done,
            all_steps_completed=done == len(steps),
        )

    async def get_daily_brief(self, user_id: str) -> ServiceResult:
        record = await self.profiles.get_profile(user_id)
        if record is None:
            return ServiceResult.failure(MissionErrorCode.PROFILE_NOT_FOUND, "User profile not found")
        brief = await self.generator.generate_daily_brief(record.profile)
        return ServiceResult.success(brief=brief)
