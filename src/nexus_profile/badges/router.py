"""Badge API endpoints.

Catalog, awards, export, eligibility and per-college policies.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.auth.dependencies import Principal, get_current_principal
from nexus_profile.auth.guards import BADGE_MANAGERS, POLICY_ADMINS, require_roles
from nexus_profile.badges import store
from nexus_profile.badges.award_service import award_badge
from nexus_profile.badges.eligibility import EligibilityEngine, NoCollegeError
from nexus_profile.badges.export import build_export_rows, rows_to_csv
from nexus_profile.badges.feed import FeedPublisher
from nexus_profile.badges.schemas import (
    AwardBadgeRequest,
    AwardEnvelope,
    BadgeCounts,
    BadgeDefinitionCreate,
    BadgeDefinitionEnvelope,
    BadgeDefinitionList,
    BadgeExportRow,
    BadgePolicyCreate,
    BadgePolicyEnvelope,
    BadgePolicyOut,
    EligibilityOut,
    RecentAwardList,
    RecentAwardOut,
    StudentBadgeList,
)
from nexus_profile.config import Settings
from nexus_profile.dependencies import get_app_settings, get_db, get_feed_publisher, get_gateway
from nexus_profile.errors import UpstreamUnavailableError
from nexus_profile.gateway.client import IdentityGateway

router = APIRouter(prefix="/v1", tags=["Badges"])

_badge_manager = require_roles(BADGE_MANAGERS)
_policy_admin = require_roles(POLICY_ADMINS)


# ── Catalog ──


@router.get("/badge-definitions", response_model=BadgeDefinitionList)
async def list_badge_definitions(db: AsyncSession = Depends(get_db)):
    """All badge definitions, newest first."""
    return BadgeDefinitionList(badge_definitions=await store.list_definitions(db))


@router.post(
    "/badge-definitions",
    response_model=BadgeDefinitionEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_badge_definition(
    body: BadgeDefinitionCreate,
    principal: Principal = Depends(_badge_manager),
    db: AsyncSession = Depends(get_db),
):
    definition = await store.create_definition(db, principal.subject_id, body.model_dump())
    await db.commit()
    return BadgeDefinitionEnvelope(badge_definition=definition)


# ── Awards ──


@router.post("/badges/award", response_model=AwardEnvelope, status_code=status.HTTP_201_CREATED)
async def award(
    body: AwardBadgeRequest,
    principal: Principal = Depends(_badge_manager),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
    publisher: FeedPublisher = Depends(get_feed_publisher),
):
    """Award a badge; the student must exist in the identity gateway."""
    badge = await award_badge(db, gateway, publisher, principal, body)
    return AwardEnvelope(badge=badge)


@router.get("/badges/export", response_model=list[BadgeExportRow])
async def export_awards(
    export_format: Literal["json", "csv"] = Query("json", alias="format"),
    principal: Principal = Depends(_badge_manager),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
):
    """Every award with student details, as JSON rows or a CSV download."""
    awards = await store.list_awards(db)
    students = await gateway.get_users({a.student_id for a in awards}, principal.token)
    rows = build_export_rows(awards, students)
    if export_format == "csv":
        return Response(
            content=rows_to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="badge-awards.csv"'},
        )
    return rows


@router.get("/badges/recent", response_model=RecentAwardList)
async def recent_awards(
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(_badge_manager),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
):
    """Latest awards granted by the caller."""
    awards = await store.list_awards(db, awarded_by=principal.subject_id, limit=limit)
    students = await gateway.get_users({a.student_id for a in awards}, principal.token)

    items = []
    for a in awards:
        student = students.get(a.student_id)
        items.append(
            RecentAwardOut.model_validate(a).model_copy(
                update={
                    "student_name": student.label if student else None,
                    "college_member_id": student.college_member_id if student else None,
                }
            )
        )
    return RecentAwardList(awards=items)


@router.get("/badges/counts", response_model=BadgeCounts)
async def award_counts(
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return BadgeCounts(counts=await store.count_awards_by_definition(db))


@router.get("/profile/badges/{user_id}", response_model=StudentBadgeList)
async def user_badges(
    user_id: str,
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return StudentBadgeList(badges=await store.list_awards(db, student_id=user_id))


# ── Eligibility & policy ──


@router.get(
    "/badges/eligibility/{user_id}",
    response_model=EligibilityOut,
    responses={400: {"description": "User has no college"}, 503: {"description": "Identity gateway unavailable"}},
)
async def eligibility(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    """Whether the user may create events, served from cache while fresh."""
    engine = EligibilityEngine(db, gateway, settings)
    try:
        result = await engine.check(user_id, principal.token)
    except NoCollegeError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={**e.to_dict(), "canCreate": False, "missing": []},
        )
    except UpstreamUnavailableError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={**e.to_dict(), "canCreate": False},
        )
    if not result.cached:
        await db.commit()
    return EligibilityOut.model_validate(result)


@router.post("/badges/policies", response_model=BadgePolicyEnvelope, status_code=status.HTTP_201_CREATED)
async def create_policy(
    body: BadgePolicyCreate,
    _principal: Principal = Depends(_policy_admin),
    db: AsyncSession = Depends(get_db),
):
    policy = await store.create_policy(db, body.model_dump())
    await db.commit()
    return BadgePolicyEnvelope(policy=policy)


@router.get("/badges/policies/{college_id}", response_model=BadgePolicyEnvelope)
async def get_policy(
    college_id: str,
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """The college's policy, or the default thresholds when it has none."""
    policy = await store.get_policy(db, college_id)
    if policy is None:
        return BadgePolicyEnvelope(
            policy=BadgePolicyOut(
                college_id=college_id,
                event_creation_required=settings.default_event_creation_required,
                category_diversity_min=settings.default_category_diversity_min,
                is_active=True,
            )
        )
    return BadgePolicyEnvelope(policy=policy)
