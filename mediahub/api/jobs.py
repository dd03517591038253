"""Job trigger and status endpoints.

Every route requires the ``x-api-key`` header. Trigger routes run the job
inline and answer once it finished.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.constants import JOB_RECENT_DEFAULT_LIMIT, JOB_RECENT_MAX_LIMIT
from mediahub.db import get_db
from mediahub.models.schemas import (
    CleanupResponse,
    SyncJobDetail,
    SyncJobRead,
    SyncJobSummary,
    SyncLogRead,
    SyncTriggerResponse,
)
from mediahub.services.category_sync import CategorySyncService, SyncResult
from mediahub.services.cleanup import cleanup_old_data
from mediahub.services.job_logger import JobLogger
from mediahub.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


def get_category_sync_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CategorySyncService:
    """Orchestrator bound to the request's session."""
    return CategorySyncService(db)


SyncService = Annotated[CategorySyncService, Depends(get_category_sync_service)]


async def _run_sync(run: Callable[[], Awaitable[SyncResult]], label: str) -> JSONResponse:
    """Run one sync kind and map its result onto the response contract."""
    try:
        result = await run()
    except Exception as e:
        logger.exception(f"{label} sync raised before producing a result")
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to run {label.lower()} sync", "details": str(e)},
        )

    if not result.success:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": f"{label} sync failed",
                "error": result.error,
                "jobId": result.job_id,
            },
        )

    body = SyncTriggerResponse(
        success=True, message=f"{label} sync completed", job_id=result.job_id
    )
    return JSONResponse(content=body.model_dump(by_alias=True))


# ==================== Triggers ====================


@router.post("/trending", response_model=SyncTriggerResponse)
async def trigger_trending(service: SyncService) -> JSONResponse:
    """Refresh the trending categories."""
    return await _run_sync(service.sync_trending, "Trending")


@router.post("/popular", response_model=SyncTriggerResponse)
async def trigger_popular(service: SyncService) -> JSONResponse:
    """Refresh the popular categories."""
    return await _run_sync(service.sync_popular, "Popular")


@router.post("/top-rated", response_model=SyncTriggerResponse)
async def trigger_top_rated(service: SyncService) -> JSONResponse:
    """Refresh the top rated categories and the current anime season."""
    return await _run_sync(service.sync_top_rated, "Top rated")


@router.post("/dramas", response_model=SyncTriggerResponse)
async def trigger_dramas(service: SyncService) -> JSONResponse:
    """Refresh the regional drama categories."""
    return await _run_sync(service.sync_dramas, "Dramas")


@router.post("/upcoming", response_model=SyncTriggerResponse)
async def trigger_upcoming(service: SyncService) -> JSONResponse:
    """Refresh upcoming and in-theaters movies and upcoming anime."""
    return await _run_sync(service.sync_upcoming, "Upcoming")


@router.post("/cleanup", response_model=CleanupResponse)
async def trigger_cleanup(db: Annotated[AsyncSession, Depends(get_db)]) -> JSONResponse:
    """Delete job history and category rows past their retention windows."""
    try:
        result = await cleanup_old_data(db)
    except Exception as e:
        logger.exception("Cleanup raised before producing a result")
        return JSONResponse(
            status_code=500, content={"error": "Failed to run cleanup", "details": str(e)}
        )

    if not result.success:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Cleanup failed",
                "error": result.error,
                "jobId": result.job_id,
            },
        )

    body = CleanupResponse(
        success=True,
        message="Cleanup completed",
        job_id=result.job_id,
        deleted=result.deleted,
    )
    return JSONResponse(content=body.model_dump(by_alias=True))


# ==================== Status ====================


@router.get("/running", response_model=list[SyncJobRead])
async def list_running_jobs(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[SyncJobRead]:
    """Jobs still in RUNNING state."""
    jobs = await JobLogger.get_running_jobs(db)
    return [SyncJobRead.model_validate(job) for job in jobs]


@router.get("/recent", response_model=list[SyncJobSummary])
async def list_recent_jobs(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=JOB_RECENT_MAX_LIMIT)] = JOB_RECENT_DEFAULT_LIMIT,
) -> list[SyncJobSummary]:
    """Most recent jobs, newest first, with their log counts."""
    rows = await JobLogger.get_recent_jobs(db, limit=limit)
    return [
        SyncJobSummary.model_validate(job).model_copy(update={"log_count": count})
        for job, count in rows
    ]


@router.get("/{job_id}", response_model=SyncJobDetail)
async def get_job(
    job_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SyncJobDetail:
    """A job with its latest log lines."""
    status = await JobLogger.get_job_status(db, job_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Job not found")
    job, logs = status
    return SyncJobDetail(
        **SyncJobRead.model_validate(job).model_dump(),
        logs=[SyncLogRead.model_validate(log) for log in logs],
    )
