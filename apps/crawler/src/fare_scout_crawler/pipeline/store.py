"""Persist records into the database by deterministic id."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite

from fare_scout_db.models import Base

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence

    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

# Keeps each statement under the bind-parameter limit of both backends.
_CHUNK_SIZE = 500

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _table(name: str) -> Table:
    try:
        return Base.metadata.tables[name]
    except KeyError:
        msg = f"Unknown table {name!r}"
        raise ValueError(msg) from None


class FareStore:
    """``upsert``/``query`` access to the fare tables.

    Writes are ``INSERT ... ON CONFLICT DO UPDATE`` keyed on the record id,
    so feeding the same records twice leaves one row each, holding the
    values from the second write.

    ``upsert`` commits on its own unless it is handed a session, in which
    case the caller owns the transaction (see :meth:`transaction`).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Session whose writes commit together, or roll back on error."""
        async with self._session_factory() as session, session.begin():
            yield session

    async def upsert(
        self,
        table: str,
        records: Sequence[Mapping[str, Any]],
        conflict_key: str = "id",
        *,
        session: AsyncSession | None = None,
    ) -> int:
        """Insert or update ``records`` in ``table``.  Returns the row count."""
        if not records:
            return 0
        target = _table(table)
        rows = [dict(r) for r in records]

        if session is not None:
            await self._execute_upsert(session, target, rows, conflict_key)
        else:
            async with self._session_factory() as own:
                await self._execute_upsert(own, target, rows, conflict_key)
                await own.commit()

        logger.info("Upserted %d rows into %s", len(rows), table)
        return len(rows)

    async def _execute_upsert(
        self,
        session: AsyncSession,
        target: Table,
        rows: list[dict[str, Any]],
        conflict_key: str,
    ) -> None:
        dialect = session.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            msg = f"Upsert is not supported on {dialect}"
            raise NotImplementedError(msg)

        for start in range(0, len(rows), _CHUNK_SIZE):
            stmt = insert(target).values(rows[start : start + _CHUNK_SIZE])
            updates = {
                col: stmt.excluded[col]
                for col in rows[0]
                if col != conflict_key and col in target.c
            }
            if "updated_at" in target.c and "updated_at" not in rows[0]:
                updates["updated_at"] = func.now()
            await session.execute(
                stmt.on_conflict_do_update(index_elements=[conflict_key], set_=updates)
            )

    async def query(
        self,
        table: str,
        order_by: str | None = None,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        """Return rows of ``table`` matching every ``column=value`` filter."""
        target = _table(table)
        stmt = select(target)
        for column, value in filters.items():
            if column not in target.c:
                msg = f"Unknown column {column!r} on {table}"
                raise ValueError(msg)
            col = target.c[column]
            stmt = stmt.where(col.is_(None) if value is None else col == value)
        if order_by is not None:
            stmt = stmt.order_by(target.c[order_by])

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [dict(row) for row in result.mappings()]
