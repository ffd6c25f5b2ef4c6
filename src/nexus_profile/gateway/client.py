"""HTTP client for the identity gateway (auth service).

Every call carries a bounded timeout and forwards the caller's bearer token.
Failures are raised as ``GatewayNotFoundError`` (404) or
``GatewayUnavailableError`` (everything else); callers decide whether to
degrade or surface them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from nexus_profile.config import Settings
from nexus_profile.gateway.schemas import College, IdentityUser, UserPage

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100


class GatewayError(Exception):
    """Base error for identity gateway failures."""


class GatewayNotFoundError(GatewayError):
    """The gateway reports that the resource does not exist."""


class GatewayUnavailableError(GatewayError):
    """Timeout, transport failure, non-2xx status or unreadable payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class IdentityGateway:
    """Async client for the identity gateway REST API."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.http = http or httpx.AsyncClient(
            base_url=settings.auth_service_url,
            timeout=httpx.Timeout(settings.gateway_timeout_seconds),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:  # noqa: ANN401
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self.http.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
                timeout=timeout if timeout is not None else self.settings.gateway_timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            msg = f"gateway_timeout: {method} {path}"
            raise GatewayUnavailableError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"gateway_connection_failed: {exc}"
            raise GatewayUnavailableError(msg) from exc

        if response.status_code == 404:
            msg = f"gateway_not_found: {path}"
            raise GatewayNotFoundError(msg)
        if response.status_code >= 400:
            msg = f"gateway_error_{response.status_code}: {path}"
            raise GatewayUnavailableError(msg, status_code=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            msg = f"gateway_invalid_json: {path}"
            raise GatewayUnavailableError(msg, status_code=response.status_code) from exc

    async def get_user(self, user_id: str, token: str | None = None) -> IdentityUser:
        """Fetch one user. A body without a ``user`` object counts as not found."""
        data = await self._request("GET", f"/v1/users/{user_id}", token=token)
        payload = data.get("user") if isinstance(data, dict) else None
        if not payload:
            msg = f"gateway_not_found: user {user_id}"
            raise GatewayNotFoundError(msg)
        try:
            return IdentityUser.model_validate(payload)
        except PydanticValidationError as exc:
            msg = f"gateway_invalid_user: {user_id}"
            raise GatewayUnavailableError(msg) from exc

    async def get_college(self, college_id: str, token: str | None = None) -> College:
        data = await self._request("GET", f"/v1/colleges/{college_id}", token=token)
        if isinstance(data, dict) and isinstance(data.get("college"), dict):
            data = data["college"]
        try:
            return College.model_validate(data or {})
        except PydanticValidationError as exc:
            msg = f"gateway_invalid_college: {college_id}"
            raise GatewayUnavailableError(msg) from exc

    async def list_colleges(self) -> Any:  # noqa: ANN401
        """Raw college listing, passed through to public callers."""
        return await self._request("GET", "/v1/colleges")

    async def list_users(
        self,
        *,
        offset: int = 0,
        limit: int = 20,
        search: str | None = None,
        college_id: str | None = None,
        token: str | None = None,
    ) -> UserPage:
        params: dict[str, Any] = {"offset": offset, "limit": min(limit, MAX_PAGE_SIZE)}
        if search:
            params["search"] = search
        if college_id:
            params["collegeId"] = college_id
        data = await self._request(
            "GET",
            "/v1/users",
            token=token,
            params=params,
            timeout=self.settings.gateway_list_timeout_seconds,
        )
        if not isinstance(data, dict) or not data.get("users"):
            return UserPage()
        try:
            return UserPage.model_validate(data)
        except PydanticValidationError as exc:
            msg = "gateway_invalid_user_page"
            raise GatewayUnavailableError(msg) from exc

    async def update_user(self, user_id: str, changes: dict[str, Any], token: str | None = None) -> None:
        """Push identity-owned fields (display name, avatar, year, department)."""
        await self._request("PUT", f"/v1/users/{user_id}", token=token, json=changes)

    async def get_users(self, user_ids: Iterable[str], token: str | None = None) -> dict[str, IdentityUser]:
        """Fetch several users concurrently; ids that fail are left out."""
        semaphore = asyncio.Semaphore(self.settings.gateway_max_concurrency)

        async def _fetch(user_id: str) -> tuple[str, IdentityUser | None]:
            async with semaphore:
                try:
                    return user_id, await self.get_user(user_id, token)
                except GatewayError as exc:
                    logger.warning("identity_fetch_failed", user_id=user_id, error=str(exc))
                    return user_id, None

        results = await asyncio.gather(*(_fetch(uid) for uid in dict.fromkeys(user_ids)))
        return {uid: user for uid, user in results if user is not None}
