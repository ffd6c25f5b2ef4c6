"""Test helpers: signed tokens and gateway payloads."""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

import jwt

GATEWAY_URL = "http://auth.test"
NETWORK_URL = "http://network.test"
TEST_SECRET = "nexus-profile-test-secret-0123456789abcdef"


def make_token(
    subject: str,
    roles: Sequence[str] = (),
    *,
    name: str | None = None,
    email: str = "",
    expires_in: int = 3600,
) -> str:
    """Sign an access token the way the auth service would."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": subject,
        "roles": list(roles),
        "email": email or f"{subject}@example.edu",
        "iss": "nexus-auth",
        "aud": "nexus",
        "iat": now,
        "exp": now + expires_in,
    }
    if name:
        payload["name"] = name
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def auth_headers(subject: str, *roles: str, name: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(subject, roles, name=name)}"}


def identity_user(user_id: str, **fields: Any) -> dict[str, Any]:  # noqa: ANN401
    """Gateway payload for ``GET /v1/users/{id}``."""
    user = {
        "id": user_id,
        "email": f"{user_id}@example.edu",
        "displayName": f"User {user_id}",
        "avatarUrl": f"https://cdn.example.edu/{user_id}.png",
        "collegeId": "college-1",
        "collegeMemberId": f"M-{user_id}",
        "department": "Computer Science",
        "year": 2,
        "roles": ["STUDENT"],
        "createdAt": "2025-09-01T10:00:00Z",
    }
    user.update(fields)
    return {"user": user}
