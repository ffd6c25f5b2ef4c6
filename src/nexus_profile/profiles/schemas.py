"""Request/response schemas for profile endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import EmailStr, Field, field_validator

from nexus_profile.badges.schemas import StudentBadgeOut
from nexus_profile.schemas import CamelModel, UrlOrEmpty

ExperienceLevel = Literal["Beginner", "Intermediate", "Advanced", "Expert"]

# Body fields owned by the identity gateway; everything else is stored here.
IDENTITY_FIELDS = ("display_name", "avatar_url", "year", "department")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ProfileUpdate(CamelModel):
    """Partial update of ``/v1/profile/me``. Omitted fields are left untouched."""

    display_name: str | None = Field(None, min_length=1, max_length=100)
    avatar_url: UrlOrEmpty | None = None
    year: int | None = Field(None, ge=1, le=6)
    department: str | None = Field(None, max_length=100)

    name: str | None = Field(None, min_length=1, max_length=100)
    bio: str | None = Field(None, max_length=1000)
    skills: list[str] | None = None
    expertise: list[str] | None = None
    linked_in: UrlOrEmpty | None = None
    github: UrlOrEmpty | None = None
    twitter: UrlOrEmpty | None = None
    resume_url: UrlOrEmpty | None = None
    contact_info: str | None = Field(None, max_length=500)
    phone_number: str | None = Field(None, max_length=20)
    alternate_email: EmailStr | None = None

    def identity_changes(self) -> dict[str, object]:
        """Identity-owned fields, camelCased for the gateway PUT."""
        data = self.model_dump(include=set(IDENTITY_FIELDS), exclude_unset=True, by_alias=True)
        return {k: v for k, v in data.items() if v not in (None, "")}

    def profile_changes(self) -> dict[str, object]:
        """Columns to store locally; year and department are kept on both sides."""
        data = self.model_dump(exclude={"display_name", "avatar_url"}, exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None}


class ProjectIn(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    github: UrlOrEmpty | None = None
    demo_link: UrlOrEmpty | None = None
    image: UrlOrEmpty | None = None


class PublicationIn(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    year: int
    link: UrlOrEmpty | None = None

    @field_validator("year")
    @classmethod
    def _year_in_range(cls, v: int) -> int:
        current = datetime.now(timezone.utc).year
        if not 1900 <= v <= current:
            raise ValueError(f"year must be between 1900 and {current}")
        return v


class ExperienceIn(CamelModel):
    area: str = Field(..., min_length=1, max_length=100)
    level: ExperienceLevel
    years_exp: float | None = Field(None, ge=0, le=50)
    description: str | None = None


class SkillIn(CamelModel):
    skill: str


class SkillsIn(CamelModel):
    skills: list[str]


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ProjectOut(CamelModel):
    id: str
    user_id: str
    title: str
    description: str
    github: str | None = None
    demo_link: str | None = None
    image: str | None = None
    created_at: datetime
    updated_at: datetime


class PublicationOut(CamelModel):
    id: str
    user_id: str
    title: str
    year: int
    link: str | None = None
    created_at: datetime
    updated_at: datetime


class ExperienceOut(CamelModel):
    id: str
    user_id: str
    area: str
    level: str
    years_exp: float | None = None
    description: str | None = None
    created_at: datetime
    updated_at: datetime


class ProfileOut(CamelModel):
    """Stored profile row with its owned records."""

    id: str
    user_id: str
    name: str | None = None
    bio: str | None = None
    skills: list[str] = Field(default_factory=list)
    expertise: list[str] = Field(default_factory=list)
    linked_in: str | None = None
    github: str | None = None
    twitter: str | None = None
    resume_url: str | None = None
    contact_info: str | None = None
    phone_number: str | None = None
    alternate_email: str | None = None
    department: str | None = None
    year: int | None = None
    created_at: datetime
    updated_at: datetime
    personal_projects: list[ProjectOut] = Field(default_factory=list)
    publications: list[PublicationOut] = Field(default_factory=list)
    experiences: list[ExperienceOut] = Field(default_factory=list)
    student_badges: list[StudentBadgeOut] = Field(default_factory=list)


class EnrichedProfile(CamelModel):
    """Stored profile merged with identity attributes."""

    id: str = ""
    user_id: str
    name: str = ""
    display_name: str = ""
    email: str = ""
    avatar_url: str = ""
    bio: str = ""
    skills: list[str] = Field(default_factory=list)
    expertise: list[str] = Field(default_factory=list)
    linked_in: str = ""
    github: str = ""
    twitter: str = ""
    resume_url: str = ""
    contact_info: str = ""
    phone_number: str = ""
    alternate_email: str = ""
    college_id: str = ""
    college_member_id: str = ""
    college_name: str | None = None
    department: str = ""
    year: int | None = None
    roles: list[str] = Field(default_factory=list)
    joined_at: datetime | None = None
    projects: list[ProjectOut] = Field(default_factory=list)
    publications: list[PublicationOut] = Field(default_factory=list)
    experiences: list[ExperienceOut] = Field(default_factory=list)
    badges: list[StudentBadgeOut] = Field(default_factory=list)


class EnrichedProfileEnvelope(CamelModel):
    profile: EnrichedProfile


class ProfileEnvelope(CamelModel):
    profile: ProfileOut


class StoredProfileEnvelope(CamelModel):
    profile: ProfileOut | None = None


class ProjectEnvelope(CamelModel):
    project: ProjectOut


class ProjectList(CamelModel):
    projects: list[ProjectOut]


class PublicationEnvelope(CamelModel):
    publication: PublicationOut


class PublicationList(CamelModel):
    publications: list[PublicationOut]


class ExperienceEnvelope(CamelModel):
    experience: ExperienceOut


class ExperienceList(CamelModel):
    experiences: list[ExperienceOut]


class SkillList(CamelModel):
    skills: list[str]
