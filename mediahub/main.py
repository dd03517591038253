"""Main FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mediahub import __version__
from mediahub.api import api_router
from mediahub.auth import UnauthorizedError
from mediahub.config import get_settings
from mediahub.db import async_session_maker, dispose_db, init_db
from mediahub.utils.cache import RedisCache, get_provider_cache
from mediahub.utils.http_client import close_all_clients
from mediahub.utils.logging import get_logger, setup_logging

settings = get_settings()
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    await init_db()
    logger.info("Database initialized")

    yield

    # Close the provider cache connection when it is Redis
    cache = get_provider_cache()
    if isinstance(cache, RedisCache):
        await cache.close()
        logger.info("Redis cache closed")

    # Close persistent HTTP clients
    await close_all_clients()
    logger.info("HTTP clients closed")

    await dispose_db()

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    lifespan=lifespan,
)

# Routers
app.include_router(api_router)


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    """Answer 401 for job requests without a valid API key."""
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


# Store app start time for uptime tracking
_app_start_time = datetime.now(UTC)


@app.get("/health", include_in_schema=True, tags=["monitoring"])
async def health_check() -> JSONResponse:
    """Health check endpoint for monitoring and load balancers.

    Returns:
        JSONResponse with status, uptime, and service health checks.
    """
    from sqlalchemy import text

    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": (datetime.now(UTC) - _app_start_time).total_seconds(),
        "version": __version__,
        "checks": {},
    }

    # Check database connection
    try:
        async with async_session_maker() as db:
            await db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy"}
    except Exception:
        health_status["checks"]["database"] = {"status": "unhealthy"}
        health_status["status"] = "degraded"

    # Check Redis connection, when configured
    cache = get_provider_cache()
    if isinstance(cache, RedisCache):
        try:
            await cache.ping()
            health_status["checks"]["redis"] = {"status": "healthy"}
        except Exception:
            health_status["checks"]["redis"] = {"status": "unhealthy"}
            health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)
