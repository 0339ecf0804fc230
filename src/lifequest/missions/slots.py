"""Daily mission slot tokens.

Daily missions are handed to clients under a slot token
(``daily:<date>:<difficulty>:<user digest>``) rather than their catalog id.
The token is registered in ``daily_mission_slots`` when the day's missions
are generated and resolved back to the catalog id on start/complete.
"""

from __future__ import annotations

import hashlib
from datetime import date
from typing import NamedTuple

from lifequest.missions.schemas import DIFFICULTIES

SLOT_PREFIX = "daily"


class SlotKey(NamedTuple):
    slot_date: str
    difficulty: str


def _user_digest(user_id: str) -> str:
    return hashlib.sha1(user_id.encode("utf-8")).hexdigest()[:12]


def make_slot_token(user_id: str, slot_date: date | str, difficulty: str) -> str:
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {difficulty}")
    day = slot_date.isoformat() if isinstance(slot_date, date) else slot_date
    return f"{SLOT_PREFIX}:{day}:{difficulty}:{_user_digest(user_id)}"


def parse_slot_token(token: str) -> SlotKey | None:
    """Date and difficulty of a slot token, or None if ``token`` is not one."""
    parts = token.split(":")
    if len(parts) != 4 or parts[0] != SLOT_PREFIX:
        return None
    _, day, difficulty, _ = parts
    if difficulty not in DIFFICULTIES:
        return None
    try:
        date.fromisoformat(day)
    except ValueError:
        return None
    return SlotKey(slot_date=day, difficulty=difficulty)


def is_slot_token(value: str) -> bool:
    return parse_slot_token(value) is not None
