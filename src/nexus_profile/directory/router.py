"""Directory endpoints: colleges, users and suggestions."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.auth.dependencies import Principal, get_current_principal
from nexus_profile.dependencies import get_db, get_gateway
from nexus_profile.directory.schemas import DirectoryPage, SuggestionList
from nexus_profile.directory.service import list_directory, suggest_users
from nexus_profile.errors import UpstreamUnavailableError
from nexus_profile.gateway.client import GatewayError, IdentityGateway

router = APIRouter(prefix="/v1", tags=["Directory"])


@router.get("/colleges")
async def list_colleges(gateway: IdentityGateway = Depends(get_gateway)) -> Any:  # noqa: ANN401
    """College listing, passed through from the identity gateway."""
    try:
        return await gateway.list_colleges()
    except GatewayError as e:
        raise UpstreamUnavailableError("Failed to fetch colleges") from e


@router.get("/users", response_model=DirectoryPage)
async def users_directory(
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, max_length=100),
    college_id: str | None = Query(None, alias="collegeId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
):
    return await list_directory(
        db,
        gateway,
        offset=offset,
        limit=limit,
        search=search,
        college_id=college_id,
        token=principal.token,
    )


@router.get("/users/suggestions", response_model=SuggestionList)
async def user_suggestions(
    user_id: str | None = Query(None, alias="userId"),
    limit: int = Query(10, ge=1, le=50),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    gateway: IdentityGateway = Depends(get_gateway),
):
    """Same-college users to follow; empty when the gateway is unavailable."""
    users = await suggest_users(
        db, gateway, user_id or principal.subject_id, limit=limit, token=principal.token
    )
    return SuggestionList(users=users)
