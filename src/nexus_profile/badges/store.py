"""Badge persistence: catalog, awards, policies and the eligibility cache."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.db.models import (
    BadgeDefinition,
    BadgeEligibilityCache,
    BadgePolicy,
    StudentBadge,
    new_id,
)
from nexus_profile.db.upsert import upsert
from nexus_profile.errors import ConflictError

_OPTIONAL_DEFINITION_FIELDS = ("icon", "color", "category", "criteria")


# ── Definitions ──


async def list_definitions(db: AsyncSession) -> Sequence[BadgeDefinition]:
    result = await db.execute(select(BadgeDefinition).order_by(BadgeDefinition.created_at.desc()))
    return result.scalars().all()


async def get_definition(db: AsyncSession, definition_id: str) -> BadgeDefinition | None:
    return await db.get(BadgeDefinition, definition_id)


async def create_definition(db: AsyncSession, created_by: str, data: dict[str, Any]) -> BadgeDefinition:
    """Insert a catalog entry. Blank optional fields are stored as NULL."""
    values = dict(data)
    for key in _OPTIONAL_DEFINITION_FIELDS:
        if not (values.get(key) or "").strip():
            values[key] = None
    definition = BadgeDefinition(created_by=created_by, **values)
    db.add(definition)
    await db.flush()
    await db.refresh(definition)
    return definition


# ── Awards ──


async def create_award(
    db: AsyncSession,
    *,
    student_id: str,
    badge_id: str,
    awarded_by: str,
    reason: str,
    awarded_by_name: str | None = None,
    project_id: str | None = None,
    event_id: str | None = None,
) -> StudentBadge:
    """Append an award row and return it joined to its definition."""
    award = StudentBadge(
        student_id=student_id,
        badge_id=badge_id,
        awarded_by=awarded_by,
        awarded_by_name=awarded_by_name,
        reason=reason,
        project_id=project_id,
        event_id=event_id,
    )
    db.add(award)
    await db.flush()
    result = await db.execute(
        select(StudentBadge)
        .where(StudentBadge.id == award.id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def list_awards(
    db: AsyncSession,
    *,
    student_id: str | None = None,
    awarded_by: str | None = None,
    limit: int | None = None,
) -> Sequence[StudentBadge]:
    """Awards with their definitions, newest first."""
    stmt = select(StudentBadge).order_by(StudentBadge.awarded_at.desc())
    if student_id is not None:
        stmt = stmt.where(StudentBadge.student_id == student_id)
    if awarded_by is not None:
        stmt = stmt.where(StudentBadge.awarded_by == awarded_by)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return result.unique().scalars().all()


async def count_awards_by_definition(db: AsyncSession) -> dict[str, int]:
    """Number of awards per definition id, zero for never-awarded badges."""
    result = await db.execute(
        select(BadgeDefinition.id, func.count(StudentBadge.id))
        .outerjoin(StudentBadge, StudentBadge.badge_id == BadgeDefinition.id)
        .group_by(BadgeDefinition.id)
    )
    return {badge_id: count for badge_id, count in result.all()}


async def active_award_categories(db: AsyncSession, student_id: str) -> list[str | None]:
    """Category of every award whose definition is active, one entry per award."""
    result = await db.execute(
        select(BadgeDefinition.category)
        .join(StudentBadge, StudentBadge.badge_id == BadgeDefinition.id)
        .where(StudentBadge.student_id == student_id, BadgeDefinition.is_active.is_(True))
    )
    return list(result.scalars().all())


# ── Policies ──


async def get_policy(db: AsyncSession, college_id: str) -> BadgePolicy | None:
    result = await db.execute(select(BadgePolicy).where(BadgePolicy.college_id == college_id))
    return result.scalar_one_or_none()


async def create_policy(db: AsyncSession, data: dict[str, Any]) -> BadgePolicy:
    """Insert a policy. Raises ConflictError when the college already has one."""
    policy = BadgePolicy(**data)
    db.add(policy)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(
            "Badge policy already exists for this college",
            details={"college_id": data.get("college_id")},
        ) from e
    await db.refresh(policy)
    return policy


# ── Eligibility cache ──


async def get_cached_eligibility(db: AsyncSession, user_id: str) -> BadgeEligibilityCache | None:
    result = await db.execute(
        select(BadgeEligibilityCache)
        .where(BadgeEligibilityCache.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def save_eligibility(
    db: AsyncSession,
    user_id: str,
    *,
    can_create: bool,
    badge_count: int,
    categories: list[str],
    required_badges: int,
    required_categories: int,
    last_checked: datetime,
    expires_at: datetime,
) -> None:
    """Create or overwrite the cache row for ``user_id``."""
    fields = {
        "can_create": can_create,
        "badge_count": badge_count,
        "categories": categories,
        "required_badges": required_badges,
        "required_categories": required_categories,
        "last_checked": last_checked,
        "expires_at": expires_at,
    }
    await upsert(
        db,
        BadgeEligibilityCache,
        {"id": new_id(), "user_id": user_id, **fields},
        conflict_on="user_id",
        update=fields,
    )
