"""Async engine and sessions for the catalog database.

The API and the sync CLI share one engine per process. Sessions never expire
on commit and never autoflush: the sync pipeline commits once per category
and keeps using the loaded rows afterwards.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mediahub.config import get_settings

settings = get_settings()


def engine_options(url: str) -> dict[str, Any]:
    """Pool settings for ``url``. SQLite has a single connection and takes none."""
    if make_url(url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


engine = create_async_engine(
    settings.database_url_async,
    echo=False,
    **engine_options(settings.database_url_async),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create missing tables. Migrations remain the source of truth in production."""
    from mediahub.models.base import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Close pooled connections. Call on shutdown."""
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, committed when the handler returns."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
