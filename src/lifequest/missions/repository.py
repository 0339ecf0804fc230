"""Datastore access for missions, user missions, steps and daily slots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from lifequest.datastore.base import Datastore, Record, new_id
from lifequest.errors import DuplicateRecordError
from lifequest.missions.schemas import ACTIVE_STATUSES, MissionDraft, MissionStatus, StepDraft, StepStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MissionRepository:
    """Append-only mission catalog."""

    def __init__(self, store: Datastore) -> None:
        self.store = store

    async def get(self, mission_id: str) -> Record | None:
        return await self.store.get("missions", {"id": mission_id})

    async def list_catalog(
        self,
        category: str | None = None,
        difficulty: str | None = None,
        active_only: bool = True,
    ) -> list[Record]:
        filters: dict[str, Any] = {}
        if category:
            filters["category"] = category
        if difficulty:
            filters["difficulty"] = difficulty
        if active_only:
            filters["is_active"] = True
        return await self.store.select("missions", filters, order_by="created_at")

    async def upsert(self, draft: MissionDraft) -> Record:
        """Insert the draft under its own id unless the catalog already has it.

        Existing entries are returned untouched.
        """
        existing = await self.get(draft.id)
        if existing is not None:
            return existing
        try:
            return await self.store.insert("missions", {**draft.model_dump(), "created_at": _now()})
        except DuplicateRecordError:
            # Concurrent generation for the same profile
            existing = await self.get(draft.id)
            if existing is None:
                raise
            return existing

    async def create(self, draft: MissionDraft) -> Record:
        """Insert the draft under a fresh catalog id."""
        return await self.store.insert("missions", {
            **draft.model_dump(),
            "id": new_id(),
            "created_at": _now(),
        })


class UserMissionRepository:
    """Per-user mission instances."""

    def __init__(self, store: Datastore) -> None:
        self.store = store

    async def get(self, user_mission_id: str) -> Record | None:
        return await self.store.get("user_missions", {"id": user_mission_id})

    async def list_for_user(self, user_id: str, status: str | None = None) -> list[Record]:
        filters: dict[str, Any] = {"user_id": user_id}
        if status:
            filters["status"] = status
        return await self.store.select("user_missions", filters, order_by="-started_at")

    async def list_active(self, user_id: str) -> list[Record]:
        rows = await self.list_for_user(user_id)
        return [r for r in rows if r["status"] in ACTIVE_STATUSES]

    async def find_active(self, user_id: str, mission_id: str) -> Record | None:
        for row in await self.list_active(user_id):
            if row["mission_id"] == mission_id:
                return row
        return None

    async def create(self, user_id: str, mission_id: str) -> Record:
        return await self.store.insert("user_missions", {
            "user_id": user_id,
            "mission_id": mission_id,
            "status": MissionStatus.ACTIVE.value,
            "started_at": _now(),
            "completed_at": None,
            "coins_earned": 0,
            "xp_earned": 0,
            "lifescore_change": 0,
        })

    async def mark_completed(
        self,
        user_mission: Record,
        xp_earned: int,
        coins_earned: int,
        lifescore_change: int,
    ) -> bool:
        """Compare-and-set from the observed active status to completed.

        Returns False if another writer completed it first.
        """
        updated = await self.store.update(
            "user_missions",
            {"id": user_mission["id"], "status": user_mission["status"]},
            {
                "status": MissionStatus.COMPLETED.value,
                "completed_at": _now(),
                "xp_earned": xp_earned,
                "coins_earned": coins_earned,
                "lifescore_change": lifescore_change,
            },
        )
        return updated == 1


class MissionStepRepository:
    def __init__(self, store: Datastore) -> None:
        self.store = store

    async def get(self, step_id: str) -> Record | None:
        return await self.store.get("mission_steps", {"id": step_id})

    async def list_for_user_mission(self, user_mission_id: str) -> list[Record]:
        return await self.store.select(
            "mission_steps", {"user_mission_id": user_mission_id}, order_by="step_number"
        )

    async def create_steps(self, user_mission_id: str, steps: list[StepDraft]) -> list[Record]:
        """Persist steps; numbers that already exist are kept as they are."""
        for step in steps:
            try:
                await self.store.insert("mission_steps", {
                    "user_mission_id": user_mission_id,
                    "step_number": step.step_number,
                    "title": step.title,
                    "description": step.description,
                    "status": StepStatus.PENDING.value,
                    "completed_at": None,
                })
            except DuplicateRecordError:
                continue
        return await self.list_for_user_mission(user_mission_id)

    async def complete(self, step_id: str) -> bool:
        updated = await self.store.update(
            "mission_steps",
            {"id": step_id, "status": StepStatus.PENDING.value},
            {"status": StepStatus.COMPLETED.value, "completed_at": _now()},
        )
        return updated == 1


class DailySlotRepository:
    """Slot token to catalog id mapping for daily missions."""

    def __init__(self, store: Datastore) -> None:
        self.store = store

    async def get(self, slot_token: str) -> Record | None:
        return await self.store.get("daily_mission_slots", {"slot_token": slot_token})

    async def list_for_day(self, user_id: str, slot_date: str) -> list[Record]:
        return await self.store.select("daily_mission_slots", {"user_id": user_id, "slot_date": slot_date})

    async def find_by_mission(self, user_id: str, mission_id: str) -> Record | None:
        return await self.store.get("daily_mission_slots", {"user_id": user_id, "mission_id": mission_id})

    async def register(
        self,
        slot_token: str,
        user_id: str,
        slot_date: str,
        difficulty: str,
        mission_id: str,
    ) -> Record:
        """Register a slot; an existing registration for the token wins."""
        try:
            return await self.store.insert("daily_mission_slots", {
                "slot_token": slot_token,
                "user_id": user_id,
                "slot_date": slot_date,
                "difficulty": difficulty,
                "mission_id": mission_id,
                "created_at": _now(),
            })
        except DuplicateRecordError:
            existing = await self.get(slot_token)
            if existing is None:
                raise
            return existing
