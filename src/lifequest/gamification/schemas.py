"""Pydantic response models for gamification endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class XPProgress(BaseModel):
    current: int
    required: int
    percentage: int


class UserStatsResponse(BaseModel):
    xp: int
    level: int
    xp_progress: XPProgress
    lifescore: int
    lifescore_percentage: int
    lifescore_status: str
    coins: int
    current_streak: int
    longest_streak: int
    total_missions_completed: int = 0
    days_active: int = 0
    achievements_earned: int = 0


class AchievementResponse(BaseModel):
    slug: str
    name_en: str
    name_ar: str = ""
    description_en: str = ""
    condition_type: str
    condition_value: int
    xp_reward: int
    coin_reward: int
    lifescore_boost: int
    rarity: str
    earned: bool = False
    earned_at: datetime | None = None


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]
    total_available: int
    total_earned: int
