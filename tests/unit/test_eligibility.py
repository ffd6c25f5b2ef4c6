"""Badge eligibility: threshold rule, policy resolution and the TTL cache."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from nexus_profile.badges.eligibility import (
    EligibilityEngine,
    NoCollegeError,
    Thresholds,
    _as_utc,
    evaluate_eligibility,
)
from nexus_profile.config import Settings
from nexus_profile.db.models import (
    BadgeDefinition,
    BadgeEligibilityCache,
    BadgePolicy,
    Profile,
    StudentBadge,
)
from nexus_profile.errors import UpstreamUnavailableError
from nexus_profile.gateway.client import IdentityGateway

from helpers import identity_user

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
DEFAULTS = Thresholds(required_badges=8, required_categories=4)


async def _award(db: AsyncSession, student_id: str, category: str | None, *, active: bool = True) -> None:
    definition = BadgeDefinition(
        name=f"{category or 'general'} badge",
        description="test badge",
        category=category,
        created_by="faculty-1",
        is_active=active,
    )
    db.add(definition)
    await db.flush()
    db.add(StudentBadge(student_id=student_id, badge_id=definition.id, awarded_by="faculty-1", reason="great work"))
    await db.flush()


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> str:
    db_session.add(Profile(user_id="s1", skills=[], expertise=[]))
    await db_session.commit()
    return "s1"


@pytest.fixture
def engine_for(db_session: AsyncSession, gateway: IdentityGateway, settings: Settings):
    return EligibilityEngine(db_session, gateway, settings)


class TestEvaluateEligibility:
    def test_eight_badges_four_categories(self):
        assert evaluate_eligibility(8, {"A", "B", "C", "D"}, DEFAULTS) is True

    def test_eight_badges_three_categories(self):
        assert evaluate_eligibility(8, {"A", "B", "C"}, DEFAULTS) is False

    def test_seven_badges_four_categories(self):
        assert evaluate_eligibility(7, {"A", "B", "C", "D"}, DEFAULTS) is False

    def test_duplicate_categories_count_once(self):
        assert evaluate_eligibility(9, ["A", "A", "B", "C"], DEFAULTS) is False

    def test_custom_thresholds(self):
        assert evaluate_eligibility(2, {"A"}, Thresholds(2, 1)) is True


class TestAsUtc:
    def test_naive_is_treated_as_utc(self):
        assert _as_utc(datetime(2026, 1, 1, 8, 0)) == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_aware_is_unchanged(self):
        aware = datetime(2026, 1, 1, 8, 0, tzinfo=timezone(timedelta(hours=2)))
        assert _as_utc(aware) is aware


class TestEligibilityEngine:
    @pytest.mark.asyncio
    async def test_fresh_computation_with_default_policy(self, engine_for, db_session, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        for category in ["AI", "IoT", "Web", "Security", "AI", "IoT", "Web", "Security"]:
            await _award(db_session, student, category)

        result = await engine_for.check(student, now=NOW)

        assert result.can_create is True
        assert result.badge_count == 8
        assert result.categories == ["AI", "IoT", "Security", "Web"]
        assert (result.required_badges, result.required_categories) == (8, 4)
        assert result.last_checked == NOW
        assert result.cached is False

    @pytest.mark.asyncio
    async def test_writes_cache_row_with_ttl(self, engine_for, db_session, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        await _award(db_session, student, "AI")

        await engine_for.check(student, now=NOW)

        row = (await db_session.execute(select(BadgeEligibilityCache))).scalar_one()
        assert row.user_id == student
        assert row.badge_count == 1
        assert row.categories == ["AI"]
        assert _as_utc(row.expires_at) == NOW + timedelta(minutes=30)
        assert row.required_badges == 8

    @pytest.mark.asyncio
    async def test_inactive_definitions_are_ignored(self, engine_for, db_session, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        await _award(db_session, student, "AI")
        await _award(db_session, student, "Retired", active=False)
        await _award(db_session, student, None)

        result = await engine_for.check(student, now=NOW)

        assert result.badge_count == 2
        assert result.categories == ["AI"]

    @pytest.mark.asyncio
    async def test_college_policy_applies(self, engine_for, db_session, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        db_session.add(BadgePolicy(college_id="college-1", event_creation_required=2, category_diversity_min=2))
        await _award(db_session, student, "AI")
        await _award(db_session, student, "Web")

        result = await engine_for.check(student, now=NOW)

        assert result.can_create is True
        assert (result.required_badges, result.required_categories) == (2, 2)

    @pytest.mark.asyncio
    async def test_inactive_policy_falls_back_to_defaults(self, engine_for, db_session, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        db_session.add(
            BadgePolicy(college_id="college-1", event_creation_required=1, category_diversity_min=1, is_active=False)
        )
        await _award(db_session, student, "AI")

        result = await engine_for.check(student, now=NOW)

        assert result.can_create is False
        assert (result.required_badges, result.required_categories) == (8, 4)

    @pytest.mark.asyncio
    async def test_cache_hit_skips_gateway_and_awards(
        self, engine_for, db_session, student, gateway_mock, engine: AsyncEngine
    ):
        user_route = gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        await _award(db_session, student, "AI")
        first = await engine_for.check(student, now=NOW)
        await db_session.commit()

        statements: list[str] = []

        def _record(_conn, _cursor, statement, *_args) -> None:
            statements.append(statement)

        event.listen(engine.sync_engine, "before_cursor_execute", _record)
        try:
            second = await engine_for.check(student, now=NOW + timedelta(minutes=10))
        finally:
            event.remove(engine.sync_engine, "before_cursor_execute", _record)

        assert user_route.call_count == 1
        assert not any("student_badges" in s for s in statements)
        assert second.cached is True
        assert (second.can_create, second.badge_count, second.categories) == (
            first.can_create,
            first.badge_count,
            first.categories,
        )
        assert second.last_checked == first.last_checked
        assert (second.required_badges, second.required_categories) == (8, 4)

    @pytest.mark.asyncio
    async def test_policy_change_does_not_invalidate_fresh_cache(self, engine_for, db_session, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        await _award(db_session, student, "AI")
        await engine_for.check(student, now=NOW)
        db_session.add(BadgePolicy(college_id="college-1", event_creation_required=1, category_diversity_min=1))
        await db_session.flush()

        result = await engine_for.check(student, now=NOW + timedelta(minutes=5))

        assert result.cached is True
        assert result.can_create is False

    @pytest.mark.asyncio
    async def test_expired_cache_is_recomputed(self, engine_for, db_session, student, gateway_mock):
        route = gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1"))
        await _award(db_session, student, "AI")
        await engine_for.check(student, now=NOW)
        await _award(db_session, student, "Web")

        result = await engine_for.check(student, now=NOW + timedelta(minutes=31))

        assert route.call_count == 2
        assert result.cached is False
        assert result.badge_count == 2

    @pytest.mark.asyncio
    async def test_no_college(self, engine_for, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(200, json=identity_user("s1", collegeId=None))
        with pytest.raises(NoCollegeError):
            await engine_for.check(student, now=NOW)

    @pytest.mark.asyncio
    async def test_gateway_failure_is_upstream_unavailable(self, engine_for, student, gateway_mock):
        gateway_mock.get("/v1/users/s1").respond(502)
        with pytest.raises(UpstreamUnavailableError):
            await engine_for.check(student, now=NOW)
