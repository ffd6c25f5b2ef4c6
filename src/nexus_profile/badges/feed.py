"""Badge award feed posts.

The API appends each post to a Redis stream; ``badges.worker`` delivers
stream entries to the network service. Publishing is best-effort: a failure
is logged and never affects the award.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import redis.asyncio as aioredis
import structlog

from nexus_profile.config import Settings
from nexus_profile.db.models import StudentBadge
from nexus_profile.gateway.schemas import IdentityUser

if TYPE_CHECKING:
    from nexus_profile.auth.dependencies import Principal

logger = structlog.get_logger()

STREAM_MAXLEN = 10_000
FALLBACK_STUDENT_NAME = "Student"


def build_badge_award_post(
    award: StudentBadge,
    student: IdentityUser | None,
    awarded_by: Principal,
) -> dict[str, Any]:
    """Payload for ``POST /v1/posts/specialized`` announcing an award."""
    badge = award.badge
    student_name = (student.label if student else None) or FALLBACK_STUDENT_NAME
    tags = ["badge", "achievement"]
    if badge.category:
        tags.append(badge.category.lower())
    return {
        "type": "BADGE_AWARD",
        "content": (
            f'\U0001f389 Congratulations to {student_name} for earning the "{badge.name}" badge!'
            f"\n\n{award.reason}"
        ),
        "visibility": "COLLEGE",
        "badgeData": {
            "badgeId": badge.id,
            "badgeName": badge.name,
            "description": badge.description,
            "criteria": badge.criteria or award.reason,
            "rarity": (badge.rarity or "common").lower(),
            "awardedTo": student_name,
            "awardedToId": award.student_id,
            "awardedAt": award.awarded_at.isoformat(),
            "awardedByName": award.awarded_by_name or awarded_by.display_name,
        },
        "tags": tags,
    }


class FeedPublisher:
    """Appends feed posts to the delivery stream."""

    def __init__(self, redis: aioredis.Redis | None, settings: Settings) -> None:
        self.redis = redis
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.badge_auto_post_enabled and self.redis is not None

    async def publish(self, post: dict[str, Any], token: str = "") -> str | None:
        """Queue ``post`` for delivery. Returns the stream entry id, or None when skipped or failed."""
        if not self.enabled:
            return None
        try:
            entry_id = await self.redis.xadd(  # type: ignore[union-attr]
                self.settings.feed_stream,
                {"data": json.dumps(post), "token": token},
                maxlen=STREAM_MAXLEN,
                approximate=True,
            )
        except aioredis.RedisError as e:
            logger.warning("badge_feed_publish_failed", error=str(e), badge_id=post["badgeData"]["badgeId"])
            return None
        logger.info("badge_feed_published", entry_id=entry_id, badge_id=post["badgeData"]["badgeId"])
        return entry_id
