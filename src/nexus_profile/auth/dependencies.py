"""FastAPI authentication dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nexus_profile.auth.jwt import verify_token
from nexus_profile.config import Settings
from nexus_profile.dependencies import get_app_settings
from nexus_profile.errors import AuthenticationError

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as vouched for by the auth service."""

    subject_id: str
    email: str = ""
    roles: frozenset[str] = field(default_factory=frozenset)
    display_name: str | None = None
    token: str = field(default="", repr=False)

    def has_any_role(self, roles: frozenset[str]) -> bool:
        return not self.roles.isdisjoint(roles)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    settings: Settings = Depends(get_app_settings),
) -> Principal:
    """
    Extract and verify the bearer token, return the calling Principal.

    Raises 401 when the token is missing, malformed, expired or rejected.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing authorization token")
    try:
        payload = await verify_token(credentials.credentials, settings)
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid or expired token", details=str(e)) from e

    roles = payload.get("roles") or []
    return Principal(
        subject_id=str(payload["sub"]),
        email=payload.get("email") or "",
        roles=frozenset(str(r) for r in roles),
        display_name=payload.get("name"),
        token=credentials.credentials,
    )
