"""Role guards for role-gated endpoints.

Ownership of projects, publications and experiences is enforced in the
stores, which look rows up by ``(id, owner user_id)`` and report a miss as
not found.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends

from nexus_profile.auth.dependencies import Principal, get_current_principal
from nexus_profile.errors import AuthorizationError

FACULTY = "FACULTY"
DEPT_ADMIN = "DEPT_ADMIN"
HEAD_ADMIN = "HEAD_ADMIN"

PUBLICATION_EDITORS = frozenset({FACULTY, HEAD_ADMIN})
BADGE_MANAGERS = frozenset({FACULTY, DEPT_ADMIN, HEAD_ADMIN})
POLICY_ADMINS = frozenset({HEAD_ADMIN})


def require_roles(roles: frozenset[str]) -> Callable[..., Awaitable[Principal]]:
    """Dependency factory: authenticated caller holding at least one of ``roles``."""

    async def _guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_any_role(roles):
            raise AuthorizationError("Insufficient permissions", details={"required_roles": sorted(roles)})
        return principal

    return _guard
