"""ORM models for the profile store.

Every owned row points at ``profiles.user_id``; ownership checks filter on it.
List columns are JSON (JSONB on PostgreSQL).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexus_profile.db.base import Base

JSONList = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    """One row per user, created lazily on first write."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    expertise: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    linked_in: Mapped[str | None] = mapped_column(String(512), nullable=True)
    github: Mapped[str | None] = mapped_column(String(512), nullable=True)
    twitter: Mapped[str | None] = mapped_column(String(512), nullable=True)
    resume_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    contact_info: Mapped[str | None] = mapped_column(String(500), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    alternate_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    personal_projects: Mapped[list[PersonalProject]] = relationship(
        "PersonalProject",
        back_populates="profile",
        order_by="PersonalProject.created_at.desc()",
        cascade="all, delete-orphan",
    )
    publications: Mapped[list[Publication]] = relationship(
        "Publication",
        back_populates="profile",
        order_by="Publication.year.desc()",
        cascade="all, delete-orphan",
    )
    experiences: Mapped[list[Experience]] = relationship(
        "Experience",
        back_populates="profile",
        order_by="Experience.created_at",
        cascade="all, delete-orphan",
    )
    student_badges: Mapped[list[StudentBadge]] = relationship(
        "StudentBadge",
        back_populates="profile",
        order_by="StudentBadge.awarded_at.desc()",
    )


class PersonalProject(Base):
    __tablename__ = "personal_projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    github: Mapped[str | None] = mapped_column(String(512), nullable=True)
    demo_link: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    profile: Mapped[Profile] = relationship("Profile", back_populates="personal_projects")


class Publication(Base):
    """Faculty publications."""

    __tablename__ = "publications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    link: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    profile: Mapped[Profile] = relationship("Profile", back_populates="publications")


class Experience(Base):
    __tablename__ = "experiences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    area: Mapped[str] = mapped_column(String(100), nullable=False)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    years_exp: Mapped[float | None] = mapped_column(Float, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    profile: Mapped[Profile] = relationship("Profile", back_populates="experiences")


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class BadgeDefinition(Base):
    """Badge catalog entry. Rarity is a label only, never a weight."""

    __tablename__ = "badge_definitions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(512), nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    criteria: Mapped[str | None] = mapped_column(Text, nullable=True)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, default="COMMON")
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class StudentBadge(Base):
    """Append-only award of a badge definition to a student."""

    __tablename__ = "student_badges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    student_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    badge_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("badge_definitions.id"), nullable=False, index=True
    )
    awarded_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    awarded_by_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    project_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    event_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    badge: Mapped[BadgeDefinition] = relationship("BadgeDefinition", lazy="joined")
    profile: Mapped[Profile] = relationship("Profile", back_populates="student_badges")


class BadgePolicy(Base):
    """Per-college eligibility thresholds."""

    __tablename__ = "badge_policies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    college_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    department_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    event_creation_required: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    category_diversity_min: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class BadgeEligibilityCache(Base):
    """Derived eligibility snapshot, valid only while now < expires_at."""

    __tablename__ = "badge_eligibility_cache"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    can_create: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    badge_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    categories: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    required_badges: Mapped[int] = mapped_column(Integer, nullable=False)
    required_categories: Mapped[int] = mapped_column(Integer, nullable=False)
    last_checked: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

