"""Profile API endpoints.

Enriched reads, partial profile updates, owned records and skill editing.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.auth.dependencies import Principal, get_current_principal
from nexus_profile.auth.guards import PUBLICATION_EDITORS, require_roles
from nexus_profile.db.models import Experience, PersonalProject, Publication
from nexus_profile.dependencies import get_db, get_gateway
from nexus_profile.errors import NotFoundError, UpstreamUnavailableError
from nexus_profile.gateway.client import GatewayError, IdentityGateway
from nexus_profile.profiles import store
from nexus_profile.profiles.enrichment import (
    build_enriched_view,
    load_identity,
    needs_name_backfill,
)
from nexus_profile.profiles.schemas import (
    EnrichedProfile,
    EnrichedProfileEnvelope,
    ExperienceEnvelope,
    ExperienceIn,
    ExperienceList,
    ProfileEnvelope,
    ProfileUpdate,
    ProjectEnvelope,
    ProjectIn,
    ProjectList,
    PublicationEnvelope,
    PublicationIn,
    PublicationList,
    SkillIn,
    SkillList,
    SkillsIn,
    StoredProfileEnvelope,
)
from nexus_profile.profiles.skills import add_skill, clean_skills, remove_skill

logger = structlog.get_logger()

router = APIRouter(prefix="/v1", tags=["Profiles"])

_publication_editor = require_roles(PUBLICATION_EDITORS)


async def _read_enriched(
    db: AsyncSession, gateway: IdentityGateway, user_id: str, token: str
) -> EnrichedProfile:
    """Compose the enriched view, backfilling the stored name when it is empty."""
    profile = await store.get_profile(db, user_id)
    identity = await load_identity(gateway, user_id, token)
    view = build_enriched_view(user_id, profile, identity)
    if not needs_name_backfill(profile, identity):
        return view

    try:
        profile = await store.backfill_name(db, user_id, identity.display_name or "")
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("name_backfill_failed", user_id=user_id, error=str(e))
        return view
    return build_enriched_view(user_id, profile, identity)


# ── Profiles ──


@router.get("/profile/me", response_model=EnrichedProfileEnvelope)
async def get_my_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
):
    """Caller's profile merged with identity data."""
    view = await _read_enriched(db, gateway, principal.subject_id, principal.token)
    return EnrichedProfileEnvelope(profile=view)


@router.put("/profile/me", response_model=ProfileEnvelope)
async def update_my_profile(
    body: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
):
    """Partial update. Identity fields go to the gateway first; nothing is stored if that fails."""
    identity_changes = body.identity_changes()
    if identity_changes:
        try:
            await gateway.update_user(principal.subject_id, identity_changes, principal.token)
        except GatewayError as e:
            raise UpstreamUnavailableError("Failed to update user data") from e

    changes = body.profile_changes()
    if "skills" in changes:
        changes["skills"] = clean_skills(changes["skills"])
    profile = await store.upsert_profile_fields(db, principal.subject_id, changes)
    await db.commit()
    return ProfileEnvelope(profile=profile)


@router.get("/profile/user/{user_id}", response_model=EnrichedProfileEnvelope)
async def get_user_profile(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
):
    view = await _read_enriched(db, gateway, user_id, principal.token)
    return EnrichedProfileEnvelope(profile=view)


@router.get("/profiles/{user_id}", response_model=ProfileEnvelope)
async def get_stored_profile(
    user_id: str,
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Stored profile only, without identity data."""
    profile = await store.get_profile(db, user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return ProfileEnvelope(profile=profile)


@router.get("/profile/{user_id}", response_model=StoredProfileEnvelope)
async def find_stored_profile(
    user_id: str,
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Stored profile, or ``{"profile": null}`` when the user has none."""
    return StoredProfileEnvelope(profile=await store.get_profile(db, user_id))


@router.put("/profiles/me", response_model=ProfileEnvelope)
async def update_my_stored_profile(
    body: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Partial update of locally stored fields only; identity fields are not forwarded."""
    changes = body.profile_changes()
    if "skills" in changes:
        changes["skills"] = clean_skills(changes["skills"])
    profile = await store.upsert_profile_fields(db, principal.subject_id, changes)
    await db.commit()
    return ProfileEnvelope(profile=profile)


# ── Projects ──


@router.get("/profile/me/projects", response_model=ProjectList)
async def list_my_projects(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    projects = await store.list_owned(db, PersonalProject, principal.subject_id)
    return ProjectList(projects=projects)


@router.post("/profiles/me/projects", response_model=ProjectEnvelope, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectIn,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    project = await store.create_owned(db, PersonalProject, principal.subject_id, body.model_dump())
    await db.commit()
    return ProjectEnvelope(project=project)


@router.put("/profiles/me/projects/{project_id}", response_model=ProjectEnvelope)
async def update_project(
    project_id: str,
    body: ProjectIn,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    project = await store.update_owned(
        db, PersonalProject, project_id, principal.subject_id, body.model_dump(exclude_unset=True)
    )
    await db.commit()
    return ProjectEnvelope(project=project)


@router.delete("/profiles/me/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> None:
    await store.delete_owned(db, PersonalProject, project_id, principal.subject_id)
    await db.commit()


# ── Publications ──


@router.get("/profile/me/publications", response_model=PublicationList)
async def list_my_publications(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    publications = await store.list_owned(db, Publication, principal.subject_id)
    return PublicationList(publications=publications)


@router.post(
    "/profiles/me/publications",
    response_model=PublicationEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_publication(
    body: PublicationIn,
    principal: Principal = Depends(_publication_editor),
    db: AsyncSession = Depends(get_db),
):
    publication = await store.create_owned(db, Publication, principal.subject_id, body.model_dump())
    await db.commit()
    return PublicationEnvelope(publication=publication)


@router.put("/profiles/me/publications/{publication_id}", response_model=PublicationEnvelope)
async def update_publication(
    publication_id: str,
    body: PublicationIn,
    principal: Principal = Depends(_publication_editor),
    db: AsyncSession = Depends(get_db),
):
    publication = await store.update_owned(
        db, Publication, publication_id, principal.subject_id, body.model_dump(exclude_unset=True)
    )
    await db.commit()
    return PublicationEnvelope(publication=publication)


@router.delete("/profiles/me/publications/{publication_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_publication(
    publication_id: str,
    principal: Principal = Depends(_publication_editor),
    db: AsyncSession = Depends(get_db),
) -> None:
    await store.delete_owned(db, Publication, publication_id, principal.subject_id)
    await db.commit()


# ── Experiences ──


@router.get("/profile/me/experiences", response_model=ExperienceList)
async def list_my_experiences(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    experiences = await store.list_owned(db, Experience, principal.subject_id)
    return ExperienceList(experiences=experiences)


@router.post("/profile/experiences", response_model=ExperienceEnvelope, status_code=status.HTTP_201_CREATED)
async def create_experience(
    body: ExperienceIn,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    experience = await store.create_owned(db, Experience, principal.subject_id, body.model_dump())
    await db.commit()
    return ExperienceEnvelope(experience=experience)


@router.put("/profile/experiences/{experience_id}", response_model=ExperienceEnvelope)
async def update_experience(
    experience_id: str,
    body: ExperienceIn,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    experience = await store.update_owned(
        db, Experience, experience_id, principal.subject_id, body.model_dump(exclude_unset=True)
    )
    await db.commit()
    return ExperienceEnvelope(experience=experience)


@router.delete("/profile/experiences/{experience_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_experience(
    experience_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> None:
    await store.delete_owned(db, Experience, experience_id, principal.subject_id)
    await db.commit()


# ── Skills ──


@router.get("/profile/me/skills", response_model=SkillList)
async def get_my_skills(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return SkillList(skills=await store.get_skills(db, principal.subject_id))


@router.put("/profile/me/skills", response_model=SkillList)
async def replace_my_skills(
    body: SkillsIn,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    skills = await store.set_skills(db, principal.subject_id, clean_skills(body.skills))
    await db.commit()
    return SkillList(skills=skills)


@router.post("/profile/me/skills", response_model=SkillList)
async def add_my_skill(
    body: SkillIn,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    current = await store.get_skills(db, principal.subject_id)
    skills = await store.set_skills(db, principal.subject_id, add_skill(current, body.skill))
    await db.commit()
    return SkillList(skills=skills)


@router.delete("/profile/me/skills/{skill}", response_model=SkillList)
async def remove_my_skill(
    skill: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    current = await store.get_skills(db, principal.subject_id)
    skills = remove_skill(current, skill)
    if skills != current:
        skills = await store.set_skills(db, principal.subject_id, skills)
        await db.commit()
    return SkillList(skills=skills)
