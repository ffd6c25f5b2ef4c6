"""Profile Record Store: profiles and the records they own.

Every read or write of a project, publication or experience filters on the
owner's ``user_id``; a row owned by someone else is indistinguishable from a
missing one.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nexus_profile.db.models import (
    Experience,
    PersonalProject,
    Profile,
    Publication,
    new_id,
    utcnow,
)
from nexus_profile.db.upsert import insert_ignore, upsert
from nexus_profile.errors import NotFoundError

OwnedRow = TypeVar("OwnedRow", PersonalProject, Publication, Experience)

_PROFILE_RELATIONS = (
    selectinload(Profile.personal_projects),
    selectinload(Profile.publications),
    selectinload(Profile.experiences),
    selectinload(Profile.student_badges),
)

_LABELS = {
    PersonalProject: "Project",
    Publication: "Publication",
    Experience: "Experience",
}

_ORDERING = {
    PersonalProject: PersonalProject.created_at.desc(),
    Publication: Publication.year.desc(),
    Experience: Experience.created_at,
}


def _new_profile_values(user_id: str) -> dict[str, Any]:
    now = utcnow()
    return {
        "id": new_id(),
        "user_id": user_id,
        "skills": [],
        "expertise": [],
        "created_at": now,
        "updated_at": now,
    }


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    """Load a profile with all owned records, refreshing any cached instance."""
    result = await db.execute(
        select(Profile)
        .where(Profile.user_id == user_id)
        .options(*_PROFILE_RELATIONS)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def ensure_profile(db: AsyncSession, user_id: str) -> None:
    """Create an empty profile for ``user_id`` unless one exists."""
    await insert_ignore(db, Profile, _new_profile_values(user_id), conflict_on="user_id")


async def upsert_profile_fields(db: AsyncSession, user_id: str, changes: dict[str, Any]) -> Profile:
    """Create or update the profile with ``changes``; other columns keep their value."""
    values = {**_new_profile_values(user_id), **changes}
    await upsert(
        db,
        Profile,
        values,
        conflict_on="user_id",
        update={**changes, "updated_at": utcnow()},
    )
    profile = await get_profile(db, user_id)
    if profile is None:
        msg = f"Profile for {user_id} vanished after upsert"
        raise RuntimeError(msg)
    return profile


async def backfill_name(db: AsyncSession, user_id: str, display_name: str) -> Profile:
    """Store ``display_name`` as the profile name and re-read the profile."""
    return await upsert_profile_fields(db, user_id, {"name": display_name})


async def get_skills(db: AsyncSession, user_id: str) -> list[str]:
    result = await db.execute(select(Profile.skills).where(Profile.user_id == user_id))
    return list(result.scalar_one_or_none() or [])


async def set_skills(db: AsyncSession, user_id: str, skills: list[str]) -> list[str]:
    profile = await upsert_profile_fields(db, user_id, {"skills": skills})
    return list(profile.skills)


# ---------------------------------------------------------------------------
# Owned records (projects, publications, experiences)
# ---------------------------------------------------------------------------


async def list_owned(db: AsyncSession, model: type[OwnedRow], user_id: str) -> Sequence[OwnedRow]:
    result = await db.execute(
        select(model).where(model.user_id == user_id).order_by(_ORDERING[model])
    )
    return result.scalars().all()


async def get_owned(db: AsyncSession, model: type[OwnedRow], row_id: str, user_id: str) -> OwnedRow:
    """Fetch a row by id and owner. Raises NotFoundError on any miss."""
    result = await db.execute(
        select(model).where(model.id == row_id, model.user_id == user_id)
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise NotFoundError(f"{_LABELS[model]} not found")
    return row


async def create_owned(
    db: AsyncSession, model: type[OwnedRow], user_id: str, data: dict[str, Any]
) -> OwnedRow:
    """Insert a row owned by ``user_id``, creating the profile first if needed."""
    await ensure_profile(db, user_id)
    row = model(user_id=user_id, **data)
    db.add(row)
    await db.flush()
    await db.refresh(row)
    return row


async def update_owned(
    db: AsyncSession,
    model: type[OwnedRow],
    row_id: str,
    user_id: str,
    data: dict[str, Any],
) -> OwnedRow:
    row = await get_owned(db, model, row_id, user_id)
    for key, value in data.items():
        setattr(row, key, value)
    await db.flush()
    await db.refresh(row)
    return row


async def delete_owned(db: AsyncSession, model: type[OwnedRow], row_id: str, user_id: str) -> None:
    row = await get_owned(db, model, row_id, user_id)
    await db.delete(row)
    await db.flush()
