"""Shared test fixtures.

The app runs against an in-memory SQLite database built from the ORM
metadata, the identity gateway is stubbed with respx, and bearer tokens are
HS256-signed with a test secret.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
import respx
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from nexus_profile.config import Settings
from nexus_profile.database import get_session
from nexus_profile.db.base import Base
from nexus_profile.gateway.client import IdentityGateway
from nexus_profile.main import create_app

from helpers import GATEWAY_URL, TEST_SECRET


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        auth_service_url=GATEWAY_URL,
        jwt_public_key=TEST_SECRET,
        jwt_algorithm="HS256",
        jwt_issuer="nexus-auth",
        jwt_audience="nexus",
        log_format="console",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test; StaticPool shares the one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for arranging data and asserting on it."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway_mock() -> Iterator[respx.MockRouter]:
    """Stub of the identity gateway. Unmatched gateway calls fail the test."""
    with respx.mock(base_url=GATEWAY_URL, assert_all_called=False) as mock:
        yield mock


@pytest_asyncio.fixture
async def gateway(settings: Settings) -> AsyncGenerator[IdentityGateway, None]:
    client = IdentityGateway(settings)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def app(
    settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> AsyncGenerator[FastAPI, None]:
    app = create_app(settings)

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    yield app
    await app.state.gateway.aclose()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app (no lifespan: DB and Redis are test-provided)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
