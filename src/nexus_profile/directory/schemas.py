"""Directory response schemas."""

from __future__ import annotations

from pydantic import Field

from nexus_profile.schemas import CamelModel


class DirectoryUser(CamelModel):
    id: str
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    college: str | None = None
    college_id: str | None = None
    department: str | None = None
    year: int | None = None
    bio: str | None = None
    skills: list[str] = Field(default_factory=list)


class DirectoryPage(CamelModel):
    users: list[DirectoryUser]
    next_offset: int
    has_more: bool = False
    total_count: int = 0


class SuggestedUser(CamelModel):
    id: str
    name: str | None = None
    avatar_url: str | None = None
    college: str | None = None
    department: str | None = None
    bio: str | None = None
    skills: list[str] = Field(default_factory=list)


class SuggestionList(CamelModel):
    users: list[SuggestedUser]
