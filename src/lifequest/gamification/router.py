"""Gamification API endpoints: user stats and the achievement catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from lifequest.dependencies import get_achievement_engine, get_current_user_id, get_reward_service
from lifequest.gamification.achievement_engine import AchievementEngine
from lifequest.gamification.reward_service import RewardService
from lifequest.gamification.schemas import (
    AchievementListResponse,
    AchievementResponse,
    UserStatsResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/users/me/stats", response_model=UserStatsResponse)
async def get_my_stats(
    user_id: str = Depends(get_current_user_id),
    rewards: RewardService = Depends(get_reward_service),
    achievements: AchievementEngine = Depends(get_achievement_engine),
) -> UserStatsResponse:
    """XP, level, LifeScore, coins and streak for the caller."""
    summary = await rewards.get_user_stats(user_id)
    stats = await achievements.build_stats(user_id)
    earned = await achievements.list_user_achievements(user_id)
    return UserStatsResponse(
        **summary,
        total_missions_completed=stats.total_missions_completed,
        days_active=stats.days_active,
        achievements_earned=len(earned),
    )


@router.get("/achievements", response_model=AchievementListResponse)
async def list_achievements(
    user_id: str = Depends(get_current_user_id),
    achievements: AchievementEngine = Depends(get_achievement_engine),
) -> AchievementListResponse:
    """Active achievements, flagged with the caller's unlocks."""
    catalog = await achievements.list_achievements()
    earned = {ua["achievement_id"]: ua for ua in await achievements.list_user_achievements(user_id)}

    items = []
    for a in catalog:
        unlock = earned.get(a["id"])
        items.append(AchievementResponse(
            **{k: a[k] for k in AchievementResponse.model_fields if k in a},
            earned=unlock is not None,
            earned_at=unlock["earned_at"] if unlock else None,
        ))
    return AchievementListResponse(
        achievements=items,
        total_available=len(items),
        total_earned=sum(1 for i in items if i.earned),
    )
