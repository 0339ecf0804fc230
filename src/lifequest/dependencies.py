"""Shared FastAPI dependencies."""

from fastapi import Header, HTTPException, Request

from lifequest.container import Container
from lifequest.gamification.achievement_engine import AchievementEngine
from lifequest.gamification.reward_service import RewardService
from lifequest.missions.service import MissionService


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Services not initialized")
    return container


def get_mission_service(request: Request) -> MissionService:
    return get_container(request).missions


def get_reward_service(request: Request) -> RewardService:
    return get_container(request).rewards


def get_achievement_engine(request: Request) -> AchievementEngine:
    return get_container(request).achievements


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, as asserted by the upstream gateway."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()
