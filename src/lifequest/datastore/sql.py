"""SQLAlchemy-backed datastore.

Translates the table-name contract onto Core statements over the ORM
metadata. Each call runs in its own short transaction.
"""

from __future__ import annotations

from sqlalchemy import Table, delete, insert, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import lifequest.db.models  # noqa: F401  (registers tables on Base.metadata)
from lifequest.datastore.base import Datastore, Record, new_id
from lifequest.db.base import Base
from lifequest.errors import DatastoreError, DuplicateRecordError, UnknownTableError

# SQLSTATE for unique_violation
_UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    """True for unique and primary-key violations, false for NOT NULL, FK and CHECK failures."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == _UNIQUE_VIOLATION
    # SQLite reports constraint failures only through the message
    return "UNIQUE constraint failed" in str(orig)


class SQLDatastore(Datastore):
    """Datastore over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise UnknownTableError(f"Unknown table: {name}")
        return table

    @staticmethod
    def _where(table: Table, filters: Record | None) -> list:
        return [table.c[key] == value for key, value in (filters or {}).items()]

    async def select(
        self,
        table: str,
        filters: Record | None = None,
        *,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        t = self._table(table)
        stmt = select(t).where(*self._where(t, filters))
        if order_by:
            column = t.c[order_by.lstrip("-")]
            stmt = stmt.order_by(column.desc() if order_by.startswith("-") else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [dict(row) for row in result.mappings()]

    async def insert(self, table: str, record: Record) -> Record:
        t = self._table(table)
        row = dict(record)
        if not row.get("id"):
            row["id"] = new_id()

        async with self._session_factory() as session:
            try:
                await session.execute(insert(t).values(**row))
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if _is_unique_violation(exc):
                    raise DuplicateRecordError(table, str(row["id"])) from None
                raise DatastoreError(f"Insert into {table} rejected: {exc.orig}") from exc
            result = await session.execute(select(t).where(t.c.id == row["id"]))
            return dict(result.mappings().one())

    async def update(self, table: str, filters: Record, patch: Record) -> int:
        t = self._table(table)
        async with self._session_factory() as session:
            result = await session.execute(
                update(t).where(*self._where(t, filters)).values(**patch)
            )
            await session.commit()
            return result.rowcount or 0

    async def delete(self, table: str, filters: Record) -> int:
        t = self._table(table)
        async with self._session_factory() as session:
            result = await session.execute(delete(t).where(*self._where(t, filters)))
            await session.commit()
            return result.rowcount or 0

    async def ping(self) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
