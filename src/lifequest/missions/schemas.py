"""Mission domain types, service results and API request/response models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lifequest.errors import MissionErrorCode


class Category(str, Enum):
    SAFE_DRIVING = "safe_driving"
    HEALTH = "health"
    FINANCIAL_GUARDIAN = "financial_guardian"
    FAMILY_PROTECTION = "family_protection"
    LIFESTYLE = "lifestyle"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MissionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


DIFFICULTIES: tuple[str, ...] = tuple(d.value for d in Difficulty)
CATEGORIES: tuple[str, ...] = tuple(c.value for c in Category)

# Rows written before the active/started rename still count as active
ACTIVE_STATUSES: tuple[str, ...] = (MissionStatus.ACTIVE.value, "started")

# Coin reward when a mission carries none
DEFAULT_COIN_REWARD: dict[str, int] = {"easy": 10, "medium": 20, "hard": 30}


# --- Profile ---


class UserProfile(BaseModel):
    """Onboarding profile. Only the gated fields are required for generation."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    age: int | None = None
    gender: str | None = None
    nationality: str | None = None
    insurance_preferences: list[str] = []
    areas_of_interest: list[str] = []
    vulnerabilities: list[str] = []
    first_time_buyer: bool = False
    budget: int | None = None


# --- Generated content ---


class MissionDraft(BaseModel):
    """A mission as produced by the generation adapter, before persistence."""

    id: str
    category: str
    difficulty: str
    title_en: str
    title_ar: str = ""
    description_en: str = ""
    description_ar: str = ""
    xp_reward: int = 0
    lifescore_impact: int = 0
    coin_reward: int | None = None
    recurrence_type: str = "none"
    badge: str | None = None
    ai_generated: bool = True
    is_active: bool = True


class StepDraft(BaseModel):
    step_number: int
    title: str
    description: str = ""


class SuggestedMission(BaseModel):
    id: str
    title: str
    category: str
    difficulty: str
    xp_reward: int
    lifescore_impact: int
    ai_generated: bool = True


class ScenarioPrediction(BaseModel):
    lifescore_impact: int
    xp_reward: int
    risk_level: str
    narrative: str
    severity_score: int
    suggested_missions: list[SuggestedMission] = []


# --- Service results ---


@dataclass
class ServiceResult:
    """Outcome of a MissionService call. Business rejections set ``error``."""

    ok: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: MissionErrorCode | None = None
    message: str = ""

    @classmethod
    def success(cls, **data: Any) -> ServiceResult:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: MissionErrorCode, message: str, **data: Any) -> ServiceResult:
        return cls(ok=False, data=data, error=error, message=message)


# --- API models ---


class MissionActionRequest(BaseModel):
    mission_id: str = Field(..., min_length=1)


class MissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str
    difficulty: str
    title_en: str
    title_ar: str = ""
    description_en: str = ""
    description_ar: str = ""
    xp_reward: int
    lifescore_impact: int
    coin_reward: int | None = None
    recurrence_type: str = "none"
    badge: str | None = None
    ai_generated: bool = False
    user_status: str | None = None
    slot_token: str | None = None


class StepResponse(BaseModel):
    id: str
    step_number: int
    title: str
    description: str = ""
    status: str
    completed_at: datetime | None = None


class MissionListResponse(BaseModel):
    missions: list[MissionResponse]
    total: int


class GenerateMissionsResponse(BaseModel):
    missions: list[MissionResponse]


class StartMissionResponse(BaseModel):
    user_mission_id: str
    mission_id: str
    status: str
    steps: list[StepResponse] = []
    step_fee_charged: int = 0


class ActiveMissionResponse(BaseModel):
    user_mission_id: str | None = None
    mission: MissionResponse | None = None
    status: str | None = None
    started_at: datetime | None = None
    steps: list[StepResponse] = []


class RewardBreakdown(BaseModel):
    xp: int
    coins: int
    lifescore: int


class CompleteMissionResponse(BaseModel):
    user_mission_id: str
    mission_id: str
    rewards: RewardBreakdown
    level_up: bool
    new_level: int
    new_xp: int
    new_coins: int
    new_lifescore: int
    current_streak: int
    achievements_unlocked: list[str] = []


class ResetDailyResponse(BaseModel):
    missions: list[MissionResponse]
    already_reset: bool
    slot_date: str


class DailyBriefResponse(BaseModel):
    brief: str


class CompleteStepResponse(BaseModel):
    step: StepResponse
    already_completed: bool
    steps_completed: int
    all_steps_completed: bool
