"""Profile provider and the profile-completeness gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from lifequest.datastore.base import Datastore, Record
from lifequest.missions.schemas import UserProfile

logger = logging.getLogger(__name__)

REQUIRED_PROFILE_FIELDS = ("name", "age", "gender", "nationality", "insurance_preferences")


@dataclass
class ProfileRecord:
    user: Record
    profile: UserProfile


@dataclass
class ProfileCheck:
    complete: bool
    missing: list[str] = field(default_factory=list)


def parse_profile(raw: dict[str, Any] | None) -> UserProfile:
    """Parse stored profile JSON; fields with invalid values are dropped."""
    data = dict(raw or {})
    try:
        return UserProfile.model_validate(data)
    except ValidationError as exc:
        bad = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        logger.warning("Dropping invalid profile fields: %s", sorted(bad))
        return UserProfile.model_validate({k: v for k, v in data.items() if k not in bad})


def validate_profile(profile: UserProfile | None) -> ProfileCheck:
    """Gate mission generation on the required onboarding fields."""
    if profile is None:
        return ProfileCheck(complete=False, missing=list(REQUIRED_PROFILE_FIELDS))

    missing = []
    for name in REQUIRED_PROFILE_FIELDS:
        value = getattr(profile, name, None)
        if value is None:
            missing.append(name)
        elif isinstance(value, str) and not value.strip():
            missing.append(name)
        elif isinstance(value, list) and not value:
            missing.append(name)
    return ProfileCheck(complete=not missing, missing=missing)


class ProfileProvider:
    """Reads a user row together with its onboarding profile."""

    def __init__(self, store: Datastore) -> None:
        self.store = store

    async def get_profile(self, user_id: str) -> ProfileRecord | None:
        user = await self.store.get("users", {"id": user_id})
        if user is None:
            return None
        row = await self.store.get("user_profiles", {"user_id": user_id})
        if row is None:
            return None
        return ProfileRecord(user=user, profile=parse_profile(row.get("profile_json")))

    async def save_profile(self, user_id: str, profile: dict[str, Any]) -> Record:
        """Create or replace the stored profile JSON."""
        now = datetime.now(timezone.utc)
        existing = await self.store.get("user_profiles", {"user_id": user_id})
        if existing is None:
            return await self.store.insert("user_profiles", {
                "user_id": user_id,
                "profile_json": profile,
                "created_at": now,
                "updated_at": now,
            })
        await self.store.update("user_profiles", {"id": existing["id"]}, {"profile_json": profile, "updated_at": now})
        return {**existing, "profile_json": profile, "updated_at": now}
