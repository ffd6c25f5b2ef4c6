"""Typed views of identity gateway payloads.

The gateway speaks camelCase; unknown keys are kept so that passthrough
endpoints lose nothing.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class IdentityUser(BaseModel):
    """A user record as returned by ``GET /v1/users/{id}``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    email: str | None = None
    display_name: str | None = Field(None, alias="displayName")
    name: str | None = None
    avatar_url: str | None = Field(None, alias="avatarUrl")
    college_id: str | None = Field(None, alias="collegeId")
    college_member_id: str | None = Field(None, alias="collegeMemberId")
    college_name: str | None = Field(None, alias="collegeName")
    department: str | None = None
    year: int | None = None
    roles: list[str] = Field(default_factory=list)
    created_at: datetime | None = Field(None, alias="createdAt")

    @property
    def label(self) -> str | None:
        """Human-readable name: display name first, then legal name."""
        return self.display_name or self.name


class College(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None


class UserPage(BaseModel):
    """One page of the gateway user listing."""

    model_config = ConfigDict(populate_by_name=True)

    users: list[IdentityUser] = Field(default_factory=list)
    next_offset: int | None = Field(None, alias="nextOffset")
    has_more: bool = Field(False, alias="hasMore")
    total_count: int | None = Field(None, alias="totalCount")
