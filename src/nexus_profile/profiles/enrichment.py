"""Profile Enrichment Service.

Reading an enriched profile happens in two phases:

1. ``load_identity`` fetches the identity record (and college name) from the
   gateway. It never raises; failures degrade to an empty snapshot.
2. ``build_enriched_view`` is a pure projection of the stored profile and the
   snapshot, driven by ``FIELD_PRECEDENCE``.

Backfilling an empty stored name (``needs_name_backfill`` plus
``store.backfill_name``) is a separate step the caller runs between the two.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

import structlog

from nexus_profile.badges.schemas import StudentBadgeOut
from nexus_profile.db.models import Profile
from nexus_profile.gateway.client import GatewayError, IdentityGateway
from nexus_profile.gateway.schemas import IdentityUser
from nexus_profile.profiles.schemas import (
    EnrichedProfile,
    ExperienceOut,
    ProjectOut,
    PublicationOut,
)

logger = structlog.get_logger()


class Precedence(enum.Enum):
    LOCAL_FIRST = "local_first"  # stored value, identity value when empty
    UPSTREAM_FIRST = "upstream_first"
    LOCAL_ONLY = "local_only"
    UPSTREAM_ONLY = "upstream_only"


# view field -> (rule, profile attribute, identity attribute)
FIELD_PRECEDENCE: dict[str, tuple[Precedence, str | None, str | None]] = {
    "id": (Precedence.LOCAL_ONLY, "id", None),
    "name": (Precedence.LOCAL_FIRST, "name", "display_name"),
    "department": (Precedence.LOCAL_FIRST, "department", "department"),
    "year": (Precedence.LOCAL_FIRST, "year", "year"),
    "bio": (Precedence.LOCAL_ONLY, "bio", None),
    "skills": (Precedence.LOCAL_ONLY, "skills", None),
    "expertise": (Precedence.LOCAL_ONLY, "expertise", None),
    "linked_in": (Precedence.LOCAL_ONLY, "linked_in", None),
    "github": (Precedence.LOCAL_ONLY, "github", None),
    "twitter": (Precedence.LOCAL_ONLY, "twitter", None),
    "resume_url": (Precedence.LOCAL_ONLY, "resume_url", None),
    "contact_info": (Precedence.LOCAL_ONLY, "contact_info", None),
    "phone_number": (Precedence.LOCAL_ONLY, "phone_number", None),
    "alternate_email": (Precedence.LOCAL_ONLY, "alternate_email", None),
    "projects": (Precedence.LOCAL_ONLY, "personal_projects", None),
    "publications": (Precedence.LOCAL_ONLY, "publications", None),
    "experiences": (Precedence.LOCAL_ONLY, "experiences", None),
    "badges": (Precedence.LOCAL_ONLY, "student_badges", None),
    "display_name": (Precedence.UPSTREAM_ONLY, None, "display_name"),
    "email": (Precedence.UPSTREAM_ONLY, None, "email"),
    "avatar_url": (Precedence.UPSTREAM_ONLY, None, "avatar_url"),
    "college_id": (Precedence.UPSTREAM_ONLY, None, "college_id"),
    "college_member_id": (Precedence.UPSTREAM_ONLY, None, "college_member_id"),
    "college_name": (Precedence.UPSTREAM_ONLY, None, "college_name"),
    "roles": (Precedence.UPSTREAM_ONLY, None, "roles"),
    "joined_at": (Precedence.UPSTREAM_FIRST, "created_at", "created_at"),
}

_ROW_SCHEMAS = {
    "personal_projects": ProjectOut,
    "publications": PublicationOut,
    "experiences": ExperienceOut,
    "student_badges": StudentBadgeOut,
}


@dataclass(frozen=True)
class IdentitySnapshot:
    """What the gateway told us about a user; empty when it could not be reached."""

    user: IdentityUser | None = None
    college_name: str | None = None

    @property
    def display_name(self) -> str | None:
        return self.user.display_name if self.user else None

    def fields(self) -> dict[str, Any]:
        if self.user is None:
            return {}
        data = {name: getattr(self.user, name) for name in IdentityUser.model_fields}
        # College name comes from the college record, not the user payload.
        data["college_name"] = self.college_name
        return data


async def load_identity(gateway: IdentityGateway, user_id: str, token: str | None = None) -> IdentitySnapshot:
    """Fetch the identity record and college name for ``user_id``. Never raises."""
    try:
        user = await gateway.get_user(user_id, token)
    except GatewayError as e:
        logger.warning("identity_fetch_failed", user_id=user_id, error=str(e))
        return IdentitySnapshot()

    college_name = None
    if user.college_id:
        try:
            college = await gateway.get_college(user.college_id, token)
            college_name = college.name
        except GatewayError as e:
            logger.warning("college_fetch_failed", college_id=user.college_id, error=str(e))
    return IdentitySnapshot(user=user, college_name=college_name)


def needs_name_backfill(profile: Profile | None, identity: IdentitySnapshot) -> bool:
    """True when the gateway knows a display name and no name is stored yet."""
    return bool(identity.display_name) and (profile is None or not profile.name)


def _profile_fields(profile: Profile | None) -> dict[str, Any]:
    if profile is None:
        return {}
    data: dict[str, Any] = {}
    for _rule, attr, _upstream in FIELD_PRECEDENCE.values():
        if attr is None:
            continue
        value = getattr(profile, attr)
        schema = _ROW_SCHEMAS.get(attr)
        data[attr] = [schema.model_validate(row) for row in value] if schema else value
    return data


def build_enriched_view(user_id: str, profile: Profile | None, identity: IdentitySnapshot) -> EnrichedProfile:
    """Merge a stored profile and an identity snapshot into one view.

    Pure: performs no I/O. Missing values fall back to the view's defaults
    (empty strings and lists).
    """
    local = _profile_fields(profile)
    upstream = identity.fields()
    values: dict[str, Any] = {"user_id": user_id}
    for field, (rule, local_attr, upstream_attr) in FIELD_PRECEDENCE.items():
        mine = local.get(local_attr) if local_attr else None
        theirs = upstream.get(upstream_attr) if upstream_attr else None
        if rule is Precedence.LOCAL_FIRST:
            value = mine or theirs
        elif rule is Precedence.UPSTREAM_FIRST:
            value = theirs or mine
        elif rule is Precedence.LOCAL_ONLY:
            value = mine
        else:
            value = theirs
        if value is not None:
            values[field] = value
    return EnrichedProfile.model_validate(values)
