"""Badge Award Service."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.auth.dependencies import Principal
from nexus_profile.badges import store
from nexus_profile.badges.feed import FeedPublisher, build_badge_award_post
from nexus_profile.badges.schemas import AwardBadgeRequest
from nexus_profile.db.models import StudentBadge
from nexus_profile.errors import NotFoundError, UpstreamUnavailableError
from nexus_profile.gateway.client import GatewayError, GatewayNotFoundError, IdentityGateway
from nexus_profile.profiles.store import ensure_profile

logger = structlog.get_logger()


async def award_badge(
    db: AsyncSession,
    gateway: IdentityGateway,
    publisher: FeedPublisher,
    principal: Principal,
    request: AwardBadgeRequest,
) -> StudentBadge:
    """Award a badge to a student and announce it on the feed.

    The definition and the student must both exist; nothing is written
    otherwise. The award is committed before the feed post is queued, and
    a failed post never undoes it.
    """
    definition = await store.get_definition(db, request.badge_definition_id)
    if definition is None:
        raise NotFoundError("Badge definition not found", details={"badge_definition_id": request.badge_definition_id})

    try:
        student = await gateway.get_user(request.user_id, principal.token)
    except GatewayNotFoundError as e:
        raise NotFoundError(f"User with ID {request.user_id} does not exist") from e
    except GatewayError as e:
        raise UpstreamUnavailableError("Could not verify user existence") from e

    await ensure_profile(db, request.user_id)
    award = await store.create_award(
        db,
        student_id=request.user_id,
        badge_id=definition.id,
        awarded_by=principal.subject_id,
        awarded_by_name=request.awarded_by_name,
        reason=request.reason,
        project_id=request.project_id,
        event_id=request.event_id,
    )
    await db.commit()
    logger.info("badge_awarded", award_id=award.id, badge_id=definition.id, student_id=request.user_id)

    try:
        await publisher.publish(build_badge_award_post(award, student, principal), principal.token)
    except Exception as e:  # noqa: BLE001
        logger.warning("badge_feed_publish_failed", award_id=award.id, error=str(e), exc_info=e)
    return award
