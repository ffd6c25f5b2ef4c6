"""Badge Eligibility Engine.

Decides whether a user may create events, based on how many active badges
they hold and how many distinct categories those badges span, measured
against their college's policy. Results are cached per user for a fixed
TTL; a cached row is trusted only while ``now < expires_at`` and is never
invalidated early, not even by a policy change.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.badges import store
from nexus_profile.config import Settings
from nexus_profile.db.models import BadgeEligibilityCache, utcnow
from nexus_profile.errors import ServiceError, UpstreamUnavailableError
from nexus_profile.gateway.client import GatewayNotFoundError, GatewayUnavailableError, IdentityGateway

logger = structlog.get_logger()


class NoCollegeError(ServiceError):
    """The user has no resolvable college; a business outcome, not a fault."""

    status_code = 400
    code = "no_college"


@dataclass(frozen=True)
class Thresholds:
    required_badges: int
    required_categories: int


@dataclass(frozen=True)
class EligibilityResult:
    can_create: bool
    badge_count: int
    categories: list[str]
    required_badges: int
    required_categories: int
    last_checked: datetime
    cached: bool = False


def evaluate_eligibility(badge_count: int, categories: Collection[str], thresholds: Thresholds) -> bool:
    """Both the badge count and the category diversity must meet the policy."""
    return badge_count >= thresholds.required_badges and len(set(categories)) >= thresholds.required_categories


def _as_utc(value: datetime) -> datetime:
    # Some drivers hand back naive datetimes; stored values are always UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _from_cache(row: BadgeEligibilityCache) -> EligibilityResult:
    return EligibilityResult(
        can_create=row.can_create,
        badge_count=row.badge_count,
        categories=list(row.categories or []),
        required_badges=row.required_badges,
        required_categories=row.required_categories,
        last_checked=_as_utc(row.last_checked),
        cached=True,
    )


class EligibilityEngine:
    """Cache-backed eligibility evaluation for one request."""

    def __init__(self, db: AsyncSession, gateway: IdentityGateway, settings: Settings) -> None:
        self.db = db
        self.gateway = gateway
        self.settings = settings

    async def check(self, user_id: str, token: str | None = None, now: datetime | None = None) -> EligibilityResult:
        """Return the cached result while it is fresh, otherwise recompute and cache.

        Raises NoCollegeError when the user has no college and
        UpstreamUnavailableError when the gateway cannot be reached.
        """
        now = now or utcnow()
        cached = await store.get_cached_eligibility(self.db, user_id)
        if cached is not None and now < _as_utc(cached.expires_at):
            return _from_cache(cached)

        college_id = await self._resolve_college(user_id, token)
        thresholds = await self.thresholds_for(college_id)

        award_categories = await store.active_award_categories(self.db, user_id)
        badge_count = len(award_categories)
        categories = sorted({c for c in award_categories if c})
        can_create = evaluate_eligibility(badge_count, categories, thresholds)

        await store.save_eligibility(
            self.db,
            user_id,
            can_create=can_create,
            badge_count=badge_count,
            categories=categories,
            required_badges=thresholds.required_badges,
            required_categories=thresholds.required_categories,
            last_checked=now,
            expires_at=now + timedelta(minutes=self.settings.eligibility_cache_ttl_minutes),
        )
        logger.info(
            "eligibility_computed",
            user_id=user_id,
            college_id=college_id,
            can_create=can_create,
            badge_count=badge_count,
            category_count=len(categories),
        )
        return EligibilityResult(
            can_create=can_create,
            badge_count=badge_count,
            categories=categories,
            required_badges=thresholds.required_badges,
            required_categories=thresholds.required_categories,
            last_checked=now,
        )

    async def thresholds_for(self, college_id: str) -> Thresholds:
        """Thresholds of the college's active policy, or the configured defaults."""
        policy = await store.get_policy(self.db, college_id)
        if policy is None or not policy.is_active:
            return Thresholds(
                required_badges=self.settings.default_event_creation_required,
                required_categories=self.settings.default_category_diversity_min,
            )
        return Thresholds(
            required_badges=policy.event_creation_required,
            required_categories=policy.category_diversity_min,
        )

    async def _resolve_college(self, user_id: str, token: str | None) -> str:
        try:
            user = await self.gateway.get_user(user_id, token)
        except GatewayNotFoundError as e:
            raise NoCollegeError("User college information not found") from e
        except GatewayUnavailableError as e:
            logger.warning("eligibility_gateway_unavailable", user_id=user_id, error=str(e))
            raise UpstreamUnavailableError("Failed to check badge eligibility") from e
        if not user.college_id:
            raise NoCollegeError("User college information not found")
        return user.college_id
