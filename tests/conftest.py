"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

TEST_API_KEY = "test-job-key"

# Settings are cached on first use, so the environment is set before any import
os.environ["APP_ENV"] = "test"
os.environ["JOB_API_KEY"] = TEST_API_KEY
os.environ["TMDB_BEARER_TOKEN"] = "test-tmdb-token"
os.environ.pop("REDIS_URL", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from mediahub.api.jobs import get_category_sync_service
from mediahub.config import Settings
from mediahub.db.database import get_db
from mediahub.main import app
from mediahub.models.base import Base
from mediahub.models.media import MediaType, ProviderType
from mediahub.services.category_sync import CategorySyncService
from mediahub.services.providers.jikan import JikanClient
from mediahub.services.providers.mangadex import MangaDexClient
from mediahub.services.providers.tmdb import TMDBClient
from mediahub.services.providers.types import AnimeDetails, MangaDetails, NormalizedMediaItem

# Test database URL (uses SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory engine with working SAVEPOINTs."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT, let SQLAlchemy emit BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a small category cap."""
    return Settings(sync_items_per_category=5)


@pytest.fixture
def make_item() -> Callable[..., NormalizedMediaItem]:
    """Factory for normalized provider items."""

    def _make(
        provider_id: str,
        title: str | None = None,
        provider_type: ProviderType = ProviderType.TMDB,
        media_type: MediaType = MediaType.MOVIE,
        **fields: Any,
    ) -> NormalizedMediaItem:
        return NormalizedMediaItem(
            provider_id=provider_id,
            provider_type=provider_type,
            media_type=media_type,
            title=f"Title {provider_id}" if title is None else title,
            **fields,
        )

    return _make


@pytest.fixture
def make_anime(make_item) -> Callable[..., NormalizedMediaItem]:
    def _make(provider_id: str, **fields: Any) -> NormalizedMediaItem:
        fields.setdefault("anime", AnimeDetails(anime_type="TV", episodes=12, studios=["Madhouse"]))
        return make_item(provider_id, None, ProviderType.JIKAN, MediaType.ANIME, **fields)

    return _make


@pytest.fixture
def make_manga(make_item) -> Callable[..., NormalizedMediaItem]:
    def _make(provider_id: str, **fields: Any) -> NormalizedMediaItem:
        fields.setdefault("manga", MangaDetails(last_chapter="100", content_rating="safe"))
        return make_item(provider_id, None, ProviderType.MANGADEX, MediaType.MANGA, **fields)

    return _make


def _provider_mock(client_cls: type) -> MagicMock:
    """Provider client double whose listing methods return empty lists."""
    provider = MagicMock(spec=client_cls)
    for name in dir(client_cls):
        if name.startswith("get_"):
            getattr(provider, name).return_value = []
    return provider


@pytest.fixture
def fake_tmdb() -> MagicMock:
    return _provider_mock(TMDBClient)


@pytest.fixture
def fake_jikan() -> MagicMock:
    return _provider_mock(JikanClient)


@pytest.fixture
def fake_mangadex() -> MagicMock:
    return _provider_mock(MangaDexClient)


@pytest.fixture
def fake_limiter() -> MagicMock:
    """Rate limiter double that never waits."""
    limiter = MagicMock()
    limiter.check_rate_limit = AsyncMock(return_value=None)
    return limiter


@pytest.fixture
def sync_service(
    db_session: AsyncSession,
    fake_tmdb: MagicMock,
    fake_jikan: MagicMock,
    fake_mangadex: MagicMock,
    fake_limiter: MagicMock,
    test_settings: Settings,
) -> CategorySyncService:
    """Orchestrator wired to provider doubles."""
    return CategorySyncService(
        db_session,
        tmdb=fake_tmdb,
        jikan=fake_jikan,
        mangadex=fake_mangadex,
        limiter=fake_limiter,
        settings=test_settings,
    )


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"x-api-key": TEST_API_KEY}


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, sync_service: CategorySyncService
) -> AsyncGenerator[AsyncClient, None]:
    """Test client using the test session and the provider doubles."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_category_sync_service] = lambda: sync_service

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
