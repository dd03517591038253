"""Retention cleanup for job history and stale category memberships."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.config import Settings, get_settings
from mediahub.models.base import utcnow
from mediahub.models.media import MediaCategory
from mediahub.models.sync import SyncJob, SyncJobStatus, SyncJobType, SyncLog
from mediahub.services.job_logger import JobLogger, JobStateError
from mediahub.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CleanupResult:
    """Outcome of a cleanup run with rows deleted per table."""

    success: bool
    job_id: int | None
    deleted: dict[str, int] = field(default_factory=dict)
    error: str | None = None


async def _purge(db: AsyncSession, settings: Settings, now: datetime) -> dict[str, int]:
    job_cutoff = now - timedelta(days=settings.cleanup_job_retention_days)
    log_cutoff = now - timedelta(days=settings.cleanup_log_retention_days)
    category_cutoff = now - timedelta(days=settings.cleanup_category_retention_days)

    # Deleted rows are never read back in this session
    options = {"synchronize_session": False}

    # Logs first so the count excludes rows removed through the job cascade
    logs = await db.execute(
        delete(SyncLog).where(SyncLog.created_at < log_cutoff), execution_options=options
    )
    jobs = await db.execute(
        delete(SyncJob).where(
            SyncJob.started_at < job_cutoff,
            SyncJob.status != SyncJobStatus.RUNNING,
        ),
        execution_options=options,
    )
    categories = await db.execute(
        delete(MediaCategory).where(MediaCategory.updated_at < category_cutoff),
        execution_options=options,
    )
    return {
        "jobs": jobs.rowcount or 0,
        "logs": logs.rowcount or 0,
        "categories": categories.rowcount or 0,
    }


async def cleanup_old_data(
    db: AsyncSession,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> CleanupResult:
    """Delete job history and category rows past their retention windows.

    Runs as a ``CLEANUP`` job. Running jobs are never deleted. Like the sync
    runs, failures are reported in the result rather than raised.
    """
    settings = settings or get_settings()
    job: JobLogger | None = None

    try:
        job = await JobLogger.create_job(db, SyncJobType.CLEANUP)
        await job.info("Starting cleanup")
        deleted = await _purge(db, settings, now or utcnow())
        await db.commit()
        await job.info("Cleanup finished", deleted)
        await job.complete_job(True)
        logger.info(f"Cleanup job {job.job_id} deleted {deleted}")
        return CleanupResult(success=True, job_id=job.job_id, deleted=deleted)

    except Exception as e:
        message = str(e) or type(e).__name__
        logger.error(f"Cleanup failed: {message}")
        await db.rollback()
        if job is not None:
            try:
                await job.error("Cleanup failed", {"error": message})
                await job.complete_job(False, message)
            except (SQLAlchemyError, JobStateError) as db_error:
                logger.error(f"Could not record failure of job {job.job_id}: {db_error}")
                await db.rollback()
        return CleanupResult(
            success=False, job_id=job.job_id if job else None, error=message
        )
