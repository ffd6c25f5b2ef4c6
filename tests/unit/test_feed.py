"""Badge award feed: post payload, stream publisher and delivery worker."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest
import redis.asyncio as aioredis
import respx

from nexus_profile.auth.dependencies import Principal
from nexus_profile.badges.feed import FeedPublisher, build_badge_award_post
from nexus_profile.badges.worker import POSTS_PATH, consume_badge_feed, deliver_post
from nexus_profile.db.models import BadgeDefinition, StudentBadge
from nexus_profile.gateway.schemas import IdentityUser

from helpers import NETWORK_URL

AWARDED_AT = datetime(2026, 2, 14, 9, 30, tzinfo=timezone.utc)
FACULTY = Principal(subject_id="f1", roles=frozenset({"FACULTY"}), display_name="Dr. Rao", token="tok-f1")


def _award(*, category: str | None = "AI", criteria: str | None = None, awarded_by_name: str | None = None):
    badge = BadgeDefinition(
        id="b1",
        name="Innovator",
        description="Built something new",
        category=category,
        criteria=criteria,
        rarity="RARE",
        created_by="f1",
    )
    return StudentBadge(
        id="a1",
        student_id="s1",
        badge_id="b1",
        badge=badge,
        awarded_by="f1",
        awarded_by_name=awarded_by_name,
        reason="Shipped the campus app",
        awarded_at=AWARDED_AT,
    )


def _post() -> dict:
    return build_badge_award_post(_award(), IdentityUser(id="s1", displayName="Asha"), FACULTY)


class TestBuildBadgeAwardPost:
    def test_payload(self):
        post = _post()

        assert post["type"] == "BADGE_AWARD"
        assert post["visibility"] == "COLLEGE"
        assert post["content"].startswith('\U0001f389 Congratulations to Asha for earning the "Innovator" badge!')
        assert post["content"].endswith("Shipped the campus app")
        assert post["tags"] == ["badge", "achievement", "ai"]
        assert post["badgeData"] == {
            "badgeId": "b1",
            "badgeName": "Innovator",
            "description": "Built something new",
            "criteria": "Shipped the campus app",
            "rarity": "rare",
            "awardedTo": "Asha",
            "awardedToId": "s1",
            "awardedAt": AWARDED_AT.isoformat(),
            "awardedByName": "Dr. Rao",
        }

    def test_unknown_student_and_no_category(self):
        post = build_badge_award_post(
            _award(category=None, criteria="Ship it", awarded_by_name="Prof. K"), None, FACULTY
        )

        assert "Congratulations to Student " in post["content"]
        assert post["tags"] == ["badge", "achievement"]
        assert post["badgeData"]["criteria"] == "Ship it"
        assert post["badgeData"]["awardedByName"] == "Prof. K"

    def test_is_json_serializable(self):
        assert json.loads(json.dumps(_post()))["badgeData"]["awardedToId"] == "s1"


class TestFeedPublisher:
    @pytest.mark.asyncio
    async def test_appends_to_stream(self, settings):
        redis = AsyncMock()
        redis.xadd.return_value = "1700000000000-0"
        publisher = FeedPublisher(redis, settings)

        entry_id = await publisher.publish(_post(), "tok-f1")

        assert entry_id == "1700000000000-0"
        args, kwargs = redis.xadd.call_args
        assert args[0] == settings.feed_stream
        assert json.loads(args[1]["data"])["type"] == "BADGE_AWARD"
        assert args[1]["token"] == "tok-f1"
        assert kwargs["approximate"] is True

    @pytest.mark.asyncio
    async def test_disabled_by_setting(self, settings):
        redis = AsyncMock()
        publisher = FeedPublisher(redis, settings.model_copy(update={"badge_auto_post_enabled": False}))

        assert publisher.enabled is False
        assert await publisher.publish(_post()) is None
        redis.xadd.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_without_redis(self, settings):
        publisher = FeedPublisher(None, settings)

        assert publisher.enabled is False
        assert await publisher.publish(_post()) is None

    @pytest.mark.asyncio
    async def test_redis_error_is_swallowed(self, settings):
        redis = AsyncMock()
        redis.xadd.side_effect = aioredis.RedisError("connection reset")

        assert await FeedPublisher(redis, settings).publish(_post()) is None


class TestDeliverPost:
    @pytest.mark.asyncio
    async def test_posts_with_bearer_token(self):
        with respx.mock(base_url=NETWORK_URL) as mock:
            route = mock.post(POSTS_PATH).respond(201, json={"post": {"id": "p1"}})
            async with httpx.AsyncClient(base_url=NETWORK_URL) as http:
                ok = await deliver_post(http, {"data": json.dumps({"type": "BADGE_AWARD"}), "token": "tok-f1"})

        assert ok is True
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer tok-f1"
        assert json.loads(request.content) == {"type": "BADGE_AWARD"}

    @pytest.mark.asyncio
    async def test_error_status_is_not_delivered(self):
        with respx.mock(base_url=NETWORK_URL) as mock:
            mock.post(POSTS_PATH).respond(500)
            async with httpx.AsyncClient(base_url=NETWORK_URL) as http:
                assert await deliver_post(http, {"data": "{}", "token": ""}) is False

    @pytest.mark.asyncio
    async def test_transport_error_is_not_delivered(self):
        with respx.mock(base_url=NETWORK_URL) as mock:
            mock.post(POSTS_PATH).mock(side_effect=httpx.ConnectError("refused"))
            async with httpx.AsyncClient(base_url=NETWORK_URL) as http:
                assert await deliver_post(http, {"data": "{}", "token": ""}) is False

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_dropped(self):
        async with httpx.AsyncClient(base_url=NETWORK_URL) as http:
            assert await deliver_post(http, {"data": "not json"}) is True


class TestConsumeBadgeFeed:
    @pytest.mark.asyncio
    async def test_acks_only_delivered_entries(self, settings):
        stream = settings.feed_stream
        redis = AsyncMock()
        redis.xreadgroup.side_effect = [
            [[stream, [("1-0", {"data": "{}", "token": "a"}), ("2-0", {"data": "{}", "token": "b"})]]],
            [[stream, []]],
            asyncio.CancelledError(),
        ]

        with respx.mock(base_url=NETWORK_URL) as mock:
            mock.post(POSTS_PATH).mock(side_effect=[httpx.Response(201), httpx.Response(503)])
            async with httpx.AsyncClient(base_url=NETWORK_URL) as http:
                ctx = {"settings": settings, "feed_redis": redis, "http": http}
                with pytest.raises(asyncio.CancelledError):
                    await consume_badge_feed(ctx)

        redis.xack.assert_awaited_once_with(stream, settings.feed_consumer_group, "1-0")
        cursors = [call.kwargs["streams"][stream] for call in redis.xreadgroup.call_args_list]
        assert cursors == ["0", "2-0", ">"]

    @pytest.mark.asyncio
    async def test_pages_through_pending_before_new_entries(self, settings):
        stream = settings.feed_stream
        redis = AsyncMock()
        redis.xreadgroup.side_effect = [
            [[stream, [("1-0", {"data": "{}", "token": "a"})]]],
            [[stream, [("3-0", {"data": "{}", "token": "b"})]]],
            [[stream, []]],
            [[stream, [("4-0", {"data": "{}", "token": "c"})]]],
            asyncio.CancelledError(),
        ]

        with respx.mock(base_url=NETWORK_URL) as mock:
            route = mock.post(POSTS_PATH).respond(201)
            async with httpx.AsyncClient(base_url=NETWORK_URL) as http:
                ctx = {"settings": settings, "feed_redis": redis, "http": http}
                with pytest.raises(asyncio.CancelledError):
                    await consume_badge_feed(ctx)

        assert route.call_count == 3
        acked = [call.args[2] for call in redis.xack.call_args_list]
        assert acked == ["1-0", "3-0", "4-0"]
        cursors = [call.kwargs["streams"][stream] for call in redis.xreadgroup.call_args_list]
        assert cursors == ["0", "1-0", "3-0", ">", ">"]
