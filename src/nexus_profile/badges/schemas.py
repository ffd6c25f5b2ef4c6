"""Request/response schemas for badge endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from nexus_profile.schemas import CamelModel

Rarity = Literal["COMMON", "UNCOMMON", "RARE", "EPIC", "LEGENDARY"]


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


class BadgeDefinitionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str = Field(..., min_length=1)
    icon: str | None = Field(None, max_length=512)  # emoji or URL
    color: str | None = Field(None, max_length=32)
    category: str | None = Field(None, max_length=64)
    criteria: str | None = None
    rarity: Rarity = "COMMON"


class BadgeDefinitionOut(CamelModel):
    id: str
    name: str
    description: str
    icon: str | None = None
    color: str | None = None
    category: str | None = None
    criteria: str | None = None
    rarity: str
    created_by: str
    is_active: bool
    created_at: datetime


class BadgeDefinitionEnvelope(CamelModel):
    badge_definition: BadgeDefinitionOut


class BadgeDefinitionList(CamelModel):
    badge_definitions: list[BadgeDefinitionOut]


# ---------------------------------------------------------------------------
# Awards
# ---------------------------------------------------------------------------


class AwardBadgeRequest(CamelModel):
    badge_definition_id: str = Field(..., min_length=1, max_length=36)
    user_id: str = Field(..., min_length=1, max_length=64)
    reason: str = Field(..., min_length=1)
    project_id: str | None = Field(None, max_length=64)
    event_id: str | None = Field(None, max_length=64)
    awarded_by_name: str | None = Field(None, max_length=128)


class StudentBadgeOut(CamelModel):
    id: str
    student_id: str
    badge_id: str
    awarded_by: str
    awarded_by_name: str | None = None
    reason: str
    project_id: str | None = None
    event_id: str | None = None
    awarded_at: datetime
    badge: BadgeDefinitionOut


class AwardEnvelope(CamelModel):
    badge: StudentBadgeOut


class StudentBadgeList(CamelModel):
    badges: list[StudentBadgeOut]


class RecentAwardOut(StudentBadgeOut):
    student_name: str | None = None
    college_member_id: str | None = None


class RecentAwardList(CamelModel):
    awards: list[RecentAwardOut]


class BadgeCounts(CamelModel):
    counts: dict[str, int]


class BadgeExportRow(CamelModel):
    badge_name: str
    student_name: str
    college_member_id: str
    department: str
    awarded_at: datetime
    awarded_by_name: str
    reason: str
    badge_category: str
    badge_rarity: str
    project_name: str
    event_name: str


# ---------------------------------------------------------------------------
# Eligibility & policy
# ---------------------------------------------------------------------------


class EligibilityOut(CamelModel):
    can_create: bool
    badge_count: int
    categories: list[str]
    required_badges: int
    required_categories: int
    last_checked: datetime
    cached: bool = False


class BadgePolicyCreate(CamelModel):
    college_id: str = Field(..., min_length=1, max_length=64)
    department_id: str | None = Field(None, max_length=64)
    event_creation_required: int = Field(8, ge=1)
    category_diversity_min: int = Field(4, ge=1)


class BadgePolicyOut(CamelModel):
    id: str | None = None
    college_id: str
    department_id: str | None = None
    event_creation_required: int
    category_diversity_min: int
    is_active: bool = True
    created_at: datetime | None = None


class BadgePolicyEnvelope(CamelModel):
    policy: BadgePolicyOut
