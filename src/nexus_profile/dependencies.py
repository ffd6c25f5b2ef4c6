"""Shared FastAPI dependencies.

Settings and the gateway client are built once in ``create_app`` and kept on
``app.state``; handlers receive them through these dependencies.
"""

from __future__ import annotations

from fastapi import Request

from nexus_profile.badges.feed import FeedPublisher
from nexus_profile.config import Settings
from nexus_profile.database import get_session
from nexus_profile.gateway.client import IdentityGateway
from nexus_profile.redis_client import get_redis_or_none

get_db = get_session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> IdentityGateway:
    return request.app.state.gateway


def get_feed_publisher(request: Request) -> FeedPublisher:
    """Publisher bound to the shared Redis pool; publishing is skipped without Redis."""
    return FeedPublisher(get_redis_or_none(), request.app.state.settings)
