"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nexus_profile.config import Settings
from nexus_profile.dependencies import get_app_settings, get_db
from nexus_profile.redis_client import get_redis_or_none

router = APIRouter()


@router.get("/")
async def root(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:  # noqa: B008
    return {"service": "nexus-profile", "version": settings.app_version}


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe, returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe, checks DB and Redis connectivity."""
    checks: dict[str, object] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc}"

    # Redis only backs rate limiting and the feed stream; absent is not fatal.
    redis = get_redis_or_none()
    if redis is None:
        checks["redis"] = "not_configured"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except (RedisError, OSError) as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = checks["database"] == "ok" and checks["redis"] in ("ok", "not_configured")
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:  # noqa: B008
    """Return API version and environment."""
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
