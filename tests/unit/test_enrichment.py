"""Profile enrichment: identity loading, backfill decision, view projection."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from nexus_profile.db.models import PersonalProject, Profile
from nexus_profile.gateway.client import IdentityGateway
from nexus_profile.gateway.schemas import IdentityUser
from nexus_profile.profiles.enrichment import (
    FIELD_PRECEDENCE,
    IdentitySnapshot,
    Precedence,
    build_enriched_view,
    load_identity,
    needs_name_backfill,
)

from helpers import identity_user

CREATED = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)


def _identity(**fields) -> IdentitySnapshot:
    user = IdentityUser.model_validate(identity_user("u1", **fields)["user"])
    return IdentitySnapshot(user=user, college_name="North College")


def _profile(**fields) -> Profile:
    values = {
        "id": "p1",
        "user_id": "u1",
        "skills": [],
        "expertise": [],
        "created_at": CREATED,
        "updated_at": CREATED,
    }
    values.update(fields)
    return Profile(**values)


class TestLoadIdentity:
    @pytest.mark.asyncio
    async def test_loads_user_and_college(self, gateway: IdentityGateway, gateway_mock):
        gateway_mock.get("/v1/users/u1").respond(200, json=identity_user("u1"))
        gateway_mock.get("/v1/colleges/college-1").respond(200, json={"id": "college-1", "name": "North College"})

        snapshot = await load_identity(gateway, "u1", "tok")

        assert snapshot.display_name == "User u1"
        assert snapshot.college_name == "North College"

    @pytest.mark.asyncio
    async def test_gateway_failure_gives_empty_snapshot(self, gateway: IdentityGateway, gateway_mock):
        gateway_mock.get("/v1/users/u1").mock(side_effect=httpx.ConnectTimeout("down"))

        snapshot = await load_identity(gateway, "u1")

        assert snapshot.user is None
        assert snapshot.fields() == {}

    @pytest.mark.asyncio
    async def test_college_failure_keeps_user(self, gateway: IdentityGateway, gateway_mock):
        gateway_mock.get("/v1/users/u1").respond(200, json=identity_user("u1"))
        gateway_mock.get("/v1/colleges/college-1").respond(500)

        snapshot = await load_identity(gateway, "u1")

        assert snapshot.display_name == "User u1"
        assert snapshot.college_name is None

    @pytest.mark.asyncio
    async def test_malformed_college_keeps_user(self, gateway: IdentityGateway, gateway_mock):
        gateway_mock.get("/v1/users/u1").respond(200, json=identity_user("u1"))
        gateway_mock.get("/v1/colleges/college-1").respond(200, json=["not", "an", "object"])

        snapshot = await load_identity(gateway, "u1")

        assert snapshot.display_name == "User u1"
        assert snapshot.college_name is None

    @pytest.mark.asyncio
    async def test_no_college_lookup_without_college_id(self, gateway: IdentityGateway, gateway_mock):
        gateway_mock.get("/v1/users/u1").respond(200, json=identity_user("u1", collegeId=None))
        college_route = gateway_mock.get("/v1/colleges/college-1")

        snapshot = await load_identity(gateway, "u1")

        assert snapshot.college_name is None
        assert not college_route.called


class TestNeedsNameBackfill:
    def test_no_profile_and_display_name(self):
        assert needs_name_backfill(None, _identity()) is True

    def test_profile_without_name(self):
        assert needs_name_backfill(_profile(name=None), _identity()) is True

    def test_profile_with_name(self):
        assert needs_name_backfill(_profile(name="Ada"), _identity()) is False

    def test_no_identity(self):
        assert needs_name_backfill(None, IdentitySnapshot()) is False

    def test_identity_without_display_name(self):
        assert needs_name_backfill(None, _identity(displayName=None)) is False


class TestBuildEnrichedView:
    def test_precedence_rules(self):
        assert "user_id" not in FIELD_PRECEDENCE
        assert FIELD_PRECEDENCE["name"][0] is Precedence.LOCAL_FIRST
        assert FIELD_PRECEDENCE["email"][0] is Precedence.UPSTREAM_ONLY
        assert FIELD_PRECEDENCE["bio"][0] is Precedence.LOCAL_ONLY

    def test_local_values_win(self):
        profile = _profile(name="Ada L.", department="Mathematics", year=4, bio="Hello")
        view = build_enriched_view("u1", profile, _identity())

        assert view.name == "Ada L."
        assert view.department == "Mathematics"
        assert view.year == 4
        assert view.bio == "Hello"
        assert view.display_name == "User u1"

    def test_identity_fills_empty_local_values(self):
        view = build_enriched_view("u1", _profile(), _identity())

        assert view.name == "User u1"
        assert view.department == "Computer Science"
        assert view.year == 2

    def test_upstream_only_fields_pass_through(self):
        view = build_enriched_view("u1", _profile(), _identity())

        assert view.email == "u1@example.edu"
        assert view.avatar_url == "https://cdn.example.edu/u1.png"
        assert view.college_id == "college-1"
        assert view.college_member_id == "M-u1"
        assert view.college_name == "North College"
        assert view.roles == ["STUDENT"]
        assert view.joined_at == datetime(2025, 9, 1, 10, 0, tzinfo=timezone.utc)

    def test_college_name_comes_from_college_record(self):
        user = IdentityUser.model_validate(identity_user("u1", collegeName="Stale Name")["user"])
        view = build_enriched_view("u1", None, IdentitySnapshot(user=user, college_name=None))
        assert view.college_name is None

    def test_profile_only_when_gateway_unavailable(self):
        profile = _profile(name="Ada", skills=["Python"])
        view = build_enriched_view("u1", profile, IdentitySnapshot())

        assert view.name == "Ada"
        assert view.skills == ["Python"]
        assert view.email == ""
        assert view.roles == []
        assert view.college_name is None
        assert view.joined_at == CREATED

    def test_nothing_known(self):
        view = build_enriched_view("u1", None, IdentitySnapshot())

        assert view.user_id == "u1"
        assert view.id == ""
        assert view.name == ""
        assert view.projects == []
        assert view.joined_at is None

    def test_owned_records_are_projected(self):
        project = PersonalProject(
            id="pr1",
            user_id="u1",
            title="Compiler",
            description="A toy compiler",
            created_at=CREATED,
            updated_at=CREATED,
        )
        profile = _profile(personal_projects=[project])

        view = build_enriched_view("u1", profile, IdentitySnapshot())

        assert [p.title for p in view.projects] == ["Compiler"]

    def test_view_serializes_camel_case(self):
        data = build_enriched_view("u1", _profile(), _identity()).model_dump(by_alias=True)
        assert {"userId", "displayName", "avatarUrl", "collegeMemberId", "joinedAt"} <= set(data)
