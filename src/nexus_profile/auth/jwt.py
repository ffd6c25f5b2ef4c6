"""Access token verification.

Tokens are issued by the auth service. They are verified either against its
JWKS endpoint or against a configured public key (PEM text or file).
"""

from __future__ import annotations

import asyncio
from functools import lru_cache
from pathlib import Path
from typing import Any

import jwt

from nexus_profile.config import Settings


@lru_cache(maxsize=4)
def _read_key_file(path: str) -> str:
    return Path(path).read_text()


@lru_cache(maxsize=4)
def _jwks_client(url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(url, cache_keys=True)


async def _verification_key(token: str, settings: Settings) -> Any:  # noqa: ANN401
    if settings.jwt_jwks_url:
        client = _jwks_client(settings.jwt_jwks_url)
        try:
            signing_key = await asyncio.to_thread(client.get_signing_key_from_jwt, token)
        except jwt.PyJWKClientError as exc:
            raise jwt.InvalidTokenError(str(exc)) from exc
        return signing_key.key
    if settings.jwt_public_key:
        return settings.jwt_public_key
    try:
        return _read_key_file(settings.jwt_public_key_path)
    except OSError as exc:
        msg = "Token verification key is not available"
        raise jwt.InvalidTokenError(msg) from exc


async def verify_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or lacks a subject.
    """
    key = await _verification_key(token, settings)
    options = {"require": ["sub", "exp"], "verify_aud": bool(settings.jwt_audience)}
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer or None,
            audience=settings.jwt_audience or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None
    return payload
