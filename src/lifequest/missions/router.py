"""Mission API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from lifequest.dependencies import get_current_user_id, get_mission_service
from lifequest.errors import ERROR_STATUS
from lifequest.missions.schemas import (
    ActiveMissionResponse,
    CompleteMissionResponse,
    CompleteStepResponse,
    DailyBriefResponse,
    GenerateMissionsResponse,
    MissionActionRequest,
    MissionListResponse,
    MissionResponse,
    ResetDailyResponse,
    ServiceResult,
    StartMissionResponse,
)
from lifequest.missions.service import MissionService

router = APIRouter(prefix="/api/v1/missions", tags=["Missions"])


def _unwrap(result: ServiceResult) -> dict:
    """Return the result payload, or raise the mapped HTTP error."""
    if result.ok:
        return result.data
    assert result.error is not None
    raise HTTPException(
        status_code=ERROR_STATUS[result.error],
        detail={"code": result.error.value, "message": result.message, **result.data},
    )


@router.get("", response_model=MissionListResponse)
async def list_missions(
    category: str | None = Query(None),
    difficulty: str | None = Query(None),
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> MissionListResponse:
    """Catalog missions with the caller's progress."""
    data = _unwrap(await service.list_missions(user_id, category=category, difficulty=difficulty))
    return MissionListResponse(
        missions=[MissionResponse.model_validate(m) for m in data["missions"]],
        total=data["total"],
    )


@router.get("/active", response_model=ActiveMissionResponse)
async def get_active_mission(
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> ActiveMissionResponse:
    data = _unwrap(await service.get_active_mission(user_id))
    mission = data["mission"]
    return ActiveMissionResponse(
        user_mission_id=data["user_mission_id"],
        mission=MissionResponse.model_validate(mission) if mission else None,
        status=data["status"],
        started_at=data["started_at"],
        steps=data["steps"],
    )


@router.get("/daily-brief", response_model=DailyBriefResponse)
async def get_daily_brief(
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> DailyBriefResponse:
    data = _unwrap(await service.get_daily_brief(user_id))
    return DailyBriefResponse(brief=data["brief"])


@router.post("/generate", response_model=GenerateMissionsResponse)
async def generate_missions(
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> GenerateMissionsResponse:
    """Generate three personalized missions (easy, medium, hard)."""
    data = _unwrap(await service.generate_missions(user_id))
    return GenerateMissionsResponse(missions=[MissionResponse.model_validate(m) for m in data["missions"]])


@router.post("/start", response_model=StartMissionResponse)
async def start_mission(
    body: MissionActionRequest,
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> StartMissionResponse:
    """Start a mission by catalog id or daily slot token."""
    data = _unwrap(await service.start_mission(user_id, body.mission_id))
    return StartMissionResponse(**data)


@router.post("/complete", response_model=CompleteMissionResponse)
async def complete_mission(
    body: MissionActionRequest,
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> CompleteMissionResponse:
    """Complete the active mission and apply its rewards."""
    data = _unwrap(await service.complete_mission(user_id, body.mission_id))
    return CompleteMissionResponse(**data)


@router.post("/reset-daily", response_model=ResetDailyResponse)
async def reset_daily_missions(
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> ResetDailyResponse:
    """Today's daily missions; generated on the first call of the day."""
    data = _unwrap(await service.reset_daily_missions(user_id))
    return ResetDailyResponse(
        missions=[MissionResponse.model_validate(m) for m in data["missions"]],
        already_reset=data["already_reset"],
        slot_date=data["slot_date"],
    )


@router.post("/steps/{step_id}/complete", response_model=CompleteStepResponse)
async def complete_step(
    step_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MissionService = Depends(get_mission_service),
) -> CompleteStepResponse:
    data = _unwrap(await service.complete_step(user_id, step_id))
    return CompleteStepResponse(**data)
