"""Directory listing: gateway users merged with locally stored profiles."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.db.models import Profile
from nexus_profile.directory.schemas import DirectoryPage, DirectoryUser, SuggestedUser
from nexus_profile.errors import UpstreamUnavailableError
from nexus_profile.gateway.client import GatewayError, IdentityGateway
from nexus_profile.gateway.schemas import IdentityUser

logger = logging.getLogger(__name__)

MAX_SUGGESTION_POOL = 50


async def _profiles_by_user(db: AsyncSession, user_ids: Iterable[str]) -> dict[str, Profile]:
    ids = list(user_ids)
    if not ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.user_id.in_(ids)))
    return {p.user_id: p for p in result.scalars()}


def _name(user: IdentityUser, profile: Profile | None) -> str | None:
    return (profile.name if profile else None) or user.label


def _directory_user(user: IdentityUser, profile: Profile | None) -> DirectoryUser:
    return DirectoryUser(
        id=user.id,
        name=_name(user, profile),
        email=user.email,
        avatar_url=user.avatar_url,
        college=user.college_name,
        college_id=user.college_id,
        department=user.department,
        year=user.year,
        bio=profile.bio if profile else None,
        skills=list(profile.skills) if profile else [],
    )


async def list_directory(
    db: AsyncSession,
    gateway: IdentityGateway,
    *,
    offset: int = 0,
    limit: int = 20,
    search: str | None = None,
    college_id: str | None = None,
    token: str | None = None,
) -> DirectoryPage:
    """One page of the user directory. Gateway failures surface as UpstreamUnavailableError."""
    try:
        page = await gateway.list_users(
            offset=offset, limit=limit, search=search, college_id=college_id, token=token
        )
    except GatewayError as e:
        raise UpstreamUnavailableError("Failed to fetch users directory") from e

    if not page.users:
        return DirectoryPage(users=[], next_offset=offset, has_more=False, total_count=0)

    profiles = await _profiles_by_user(db, (u.id for u in page.users))
    users = [_directory_user(u, profiles.get(u.id)) for u in page.users]
    return DirectoryPage(
        users=users,
        next_offset=page.next_offset or offset + limit,
        has_more=page.has_more,
        total_count=page.total_count or len(users),
    )


async def suggest_users(
    db: AsyncSession,
    gateway: IdentityGateway,
    user_id: str,
    *,
    limit: int = 10,
    token: str | None = None,
) -> list[SuggestedUser]:
    """Users from the same college as ``user_id``. Degrades to an empty list."""
    try:
        current = await gateway.get_user(user_id, token)
        page = await gateway.list_users(
            limit=min(limit * 2, MAX_SUGGESTION_POOL),
            college_id=current.college_id,
            token=token,
        )
    except GatewayError as e:
        logger.warning("User suggestions unavailable for %s: %s", user_id, e)
        return []

    candidates = [u for u in page.users if u.id != user_id][:limit]
    profiles = await _profiles_by_user(db, (u.id for u in candidates))
    suggestions = []
    for user in candidates:
        profile = profiles.get(user.id)
        suggestions.append(
            SuggestedUser(
                id=user.id,
                name=_name(user, profile),
                avatar_url=user.avatar_url,
                college=user.college_name,
                department=user.department,
                bio=profile.bio if profile else None,
                skills=list(profile.skills) if profile else [],
            )
        )
    return suggestions
