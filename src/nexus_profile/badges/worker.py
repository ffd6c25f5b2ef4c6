"""Badge feed delivery worker (arq).

Reads badge award posts from the feed stream and delivers them to the
network service. An entry is acknowledged only after a successful delivery,
so failed entries stay pending and are retried from the pending list on the
next start (at-least-once).

Run with: arq nexus_profile.workers.settings.WorkerSettings
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx
import redis.asyncio as aioredis

from nexus_profile.config import Settings, get_settings

logger = logging.getLogger(__name__)

POSTS_PATH = "/v1/posts/specialized"
DELIVERY_TIMEOUT_SECONDS = 10.0


async def deliver_post(http: httpx.AsyncClient, fields: dict[str, str]) -> bool:
    """POST one stream entry to the network service. True when it was accepted."""
    try:
        post = json.loads(fields.get("data", ""))
    except json.JSONDecodeError:
        logger.error("Dropping unreadable feed entry: %r", fields.get("data"))
        return True  # nothing to retry

    token = fields.get("token", "")
    try:
        response = await http.post(
            POSTS_PATH,
            json=post,
            headers={"Authorization": f"Bearer {token}"},
        )
    except httpx.HTTPError as e:
        logger.warning("Feed delivery failed: %s", e)
        return False
    if response.is_error:
        logger.warning("Network service returned %s for badge post", response.status_code)
        return False
    return True


async def feed_startup(ctx: dict[str, Any]) -> None:
    """Open Redis and HTTP clients and make sure the consumer group exists."""
    settings = get_settings()
    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    try:
        await redis_client.xgroup_create(
            settings.feed_stream, settings.feed_consumer_group, id="0", mkstream=True
        )
    except aioredis.ResponseError as e:
        if "BUSYGROUP" not in str(e):
            raise

    ctx["settings"] = settings
    ctx["feed_redis"] = redis_client
    ctx["http"] = httpx.AsyncClient(
        base_url=settings.network_service_url,
        timeout=DELIVERY_TIMEOUT_SECONDS,
    )
    # ctx["redis"] is arq's own pool; the fixed job id keeps a single consumer loop.
    await ctx["redis"].enqueue_job("consume_badge_feed", _job_id="consume_badge_feed")
    logger.info("Badge feed worker started")


async def feed_shutdown(ctx: dict[str, Any]) -> None:
    http: httpx.AsyncClient | None = ctx.get("http")
    if http:
        await http.aclose()
    redis_client: aioredis.Redis | None = ctx.get("feed_redis")
    if redis_client:
        await redis_client.aclose()
    logger.info("Badge feed worker shut down")


async def consume_badge_feed(ctx: dict[str, Any]) -> None:
    """Main loop: page through our pending entries first, then block for new ones."""
    settings: Settings = ctx["settings"]
    redis_client: aioredis.Redis = ctx["feed_redis"]
    http: httpx.AsyncClient = ctx["http"]
    consumer_name = settings.feed_consumer_name
    cursor = "0"

    while True:
        try:
            events = await redis_client.xreadgroup(
                groupname=settings.feed_consumer_group,
                consumername=consumer_name,
                streams={settings.feed_stream: cursor},
                count=50,
                block=5000,
            )
        except aioredis.ResponseError as e:
            logger.error("XREADGROUP error: %s", e)
            await asyncio.sleep(1)
            continue

        messages = events[0][1] if events else []
        if not messages:
            cursor = ">"
            continue

        for msg_id, fields in messages:
            if await deliver_post(http, fields):
                await redis_client.xack(settings.feed_stream, settings.feed_consumer_group, msg_id)
        if cursor != ">":
            # Page through the pending list; undelivered entries wait for the next start.
            cursor = messages[-1][0]


class WorkerSettings:
    """arq worker settings for badge feed delivery."""

    functions = [consume_badge_feed]
    on_startup = feed_startup
    on_shutdown = feed_shutdown
    max_jobs = 1
    job_timeout = 0  # consume_badge_feed runs forever
    allow_abort_jobs = True
