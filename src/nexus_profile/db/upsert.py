"""Atomic INSERT ... ON CONFLICT helpers.

Uniqueness (one profile per user, one policy per college, one cache row per
user) lives in the store; these statements let the store resolve races.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_for(db: AsyncSession, model: type) -> Any:  # noqa: ANN401
    dialect = db.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[dialect](model)
    except KeyError:
        msg = f"Upsert is not supported on dialect {dialect!r}"
        raise RuntimeError(msg) from None


async def upsert(
    db: AsyncSession,
    model: type,
    values: dict[str, Any],
    *,
    conflict_on: str,
    update: dict[str, Any],
) -> None:
    """Insert ``values`` or, when ``conflict_on`` already exists, apply ``update``."""
    stmt = _insert_for(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(index_elements=[conflict_on], set_=update)
    await db.execute(stmt)


async def insert_ignore(
    db: AsyncSession,
    model: type,
    values: dict[str, Any],
    *,
    conflict_on: str,
) -> None:
    """Insert ``values`` unless a row with the same ``conflict_on`` key exists."""
    stmt = _insert_for(db, model).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=[conflict_on])
    await db.execute(stmt)
