"""In-memory datastore with the same semantics as the SQL store.

Used in tests and single-process development. Every operation completes
without yielding to the event loop, so each call is atomic with respect to
other coroutines.
"""

from __future__ import annotations

import copy
from typing import Any

from lifequest.datastore.base import TABLE_UNIQUE_KEYS, Datastore, Record, new_id
from lifequest.errors import DuplicateRecordError, UnknownTableError


def _matches(row: Record, filters: Record | None) -> bool:
    if not filters:
        return True
    return all(row.get(key) == value for key, value in filters.items())


def _sort_key(value: Any) -> tuple[int, Any]:
    # None sorts first, like NULLS FIRST on ascending order
    return (0, "") if value is None else (1, value)


class MemoryDatastore(Datastore):
    """Dict-of-lists store keyed by table name."""

    def __init__(self) -> None:
        self._tables: dict[str, list[Record]] = {name: [] for name in TABLE_UNIQUE_KEYS}

    def _rows(self, table: str) -> list[Record]:
        try:
            return self._tables[table]
        except KeyError:
            raise UnknownTableError(f"Unknown table: {table}") from None

    async def select(
        self,
        table: str,
        filters: Record | None = None,
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        rows = [copy.deepcopy(r) for r in self._rows(table) if _matches(r, filters)]
        if order_by:
            column = order_by.lstrip("-")
            rows.sort(key=lambda r: _sort_key(r.get(column)), reverse=order_by.startswith("-"))
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table: str, record: Record) -> Record:
        rows = self._rows(table)
        row = copy.deepcopy(record)
        if not row.get("id"):
            row["id"] = new_id()

        for key_group in TABLE_UNIQUE_KEYS[table]:
            values = tuple(row.get(k) for k in key_group)
            if any(v is None for v in values):
                continue
            for existing in rows:
                if tuple(existing.get(k) for k in key_group) == values:
                    raise DuplicateRecordError(table, ",".join(str(v) for v in values))

        rows.append(row)
        return copy.deepcopy(row)

    async def update(self, table: str, filters: Record, patch: Record) -> int:
        changed = 0
        for row in self._rows(table):
            if _matches(row, filters):
                row.update(copy.deepcopy(patch))
                changed += 1
        return changed

    async def delete(self, table: str, filters: Record) -> int:
        rows = self._rows(table)
        keep = [r for r in rows if not _matches(r, filters)]
        removed = len(rows) - len(keep)
        rows[:] = keep
        return removed
