"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from redis.exceptions import RedisError

from nexus_profile.badges.router import router as badges_router
from nexus_profile.config import Settings, get_settings
from nexus_profile.database import close_db, init_db
from nexus_profile.directory.router import router as directory_router
from nexus_profile.gateway.client import IdentityGateway
from nexus_profile.health.router import router as health_router
from nexus_profile.middleware import setup_middleware
from nexus_profile.profiles.router import router as profiles_router
from nexus_profile.redis_client import close_redis, get_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    await init_db(settings.database_url)

    # Redis backs rate limiting and the badge feed; the service runs without it.
    try:
        await init_redis(settings.redis_url)
        await get_redis().ping()
    except (RedisError, OSError) as exc:
        logger.warning("redis_unavailable", error=str(exc))
        await close_redis()

    yield

    await app.state.gateway.aclose()
    await close_db()
    await close_redis()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Nexus Profile Service",
        description="Profiles, owned records and badges for the Nexus platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = IdentityGateway(settings)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(directory_router)
    app.include_router(profiles_router)
    app.include_router(badges_router)

    return app


app = create_app()
