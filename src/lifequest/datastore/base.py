"""Datastore contract shared by the in-memory and SQL implementations.

Repositories talk to tables by name with equality filters only, so the
business logic never depends on store-specific features.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any

Record = dict[str, Any]

# Table name -> unique key groups. "id" is always the first group.
TABLE_UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "users": [("id",), ("email",)],
    "user_profiles": [("id",), ("user_id",)],
    "missions": [("id",)],
    "user_missions": [("id",)],
    "mission_steps": [("id",), ("user_mission_id", "step_number")],
    "achievements": [("id",), ("slug",)],
    "user_achievements": [("id",), ("user_id", "achievement_id")],
    "daily_mission_slots": [("id",), ("slot_token",)],
    "lifescore_history": [("id",)],
    "xp_ledger": [("id",)],
}


def new_id() -> str:
    """Generate a record id."""
    return uuid.uuid4().hex


class Datastore(ABC):
    """Minimal query contract: select / insert / update with equality filters."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Record | None = None,
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        """Return matching rows as dicts.

        ``order_by`` is a column name, prefixed with ``-`` for descending.
        """
        ...

    @abstractmethod
    async def insert(self, table: str, record: Record) -> Record:
        """Insert a row and return it with its id assigned.

        Raises DuplicateRecordError on a uniqueness violation.
        """
        ...

    @abstractmethod
    async def update(self, table: str, filters: Record, patch: Record) -> int:
        """Apply ``patch`` to matching rows. Returns the number of rows changed."""
        ...

    @abstractmethod
    async def delete(self, table: str, filters: Record) -> int:
        """Delete matching rows. Returns the number of rows removed."""
        ...

    async def get(self, table: str, filters: Record) -> Record | None:
        """Return the first matching row, or None."""
        rows = await self.select(table, filters, limit=1)
        return rows[0] if rows else None

    async def ping(self) -> bool:
        """Connectivity check for readiness probes."""
        return True

    async def close(self) -> None:
        """Release any underlying resources."""
        return None
