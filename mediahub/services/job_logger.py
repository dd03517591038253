"""Persistent job log for batch runs.

Each run owns one ``SyncJob`` row and appends ``SyncLog`` lines to it so
operators can inspect what a run did after the fact. Every log line is
committed as soon as it is written, so a later rollback of the run's own work
cannot remove it. Callers therefore log only between units of work, never
while rows of their own are pending. Lifecycle transitions commit too.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.config import get_settings
from mediahub.constants import JOB_RECENT_DEFAULT_LIMIT, JOB_STATUS_LOG_LIMIT
from mediahub.models.base import utcnow
from mediahub.models.sync import LogLevel, SyncJob, SyncJobStatus, SyncJobType, SyncLog
from mediahub.utils.logging import job_log_context

_PYTHON_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

# SyncLog.message column width
_MAX_MESSAGE_LENGTH = 1000


class JobStateError(RuntimeError):
    """Raised on a lifecycle transition out of a terminal state."""


class JobLogger:
    """Handle on one running job.

    Usage:
        job = await JobLogger.create_job(db, SyncJobType.TRENDING_SYNC)
        await job.info("Fetched trending movies", {"count": 20})
        await job.complete_job(True)
    """

    def __init__(self, db: AsyncSession, job: SyncJob) -> None:
        self.db = db
        self.job = job
        self._job_id = job.id
        self._console = (
            job_log_context(job.id) if not get_settings().is_production else None
        )

    @property
    def job_id(self) -> int:
        return self._job_id

    @classmethod
    async def create_job(
        cls,
        db: AsyncSession,
        job_type: SyncJobType,
        metadata: dict[str, Any] | None = None,
    ) -> "JobLogger":
        """Insert a RUNNING job and return a logger bound to it."""
        job = SyncJob(
            job_type=job_type,
            status=SyncJobStatus.RUNNING,
            started_at=utcnow(),
            job_metadata=metadata or {},
        )
        db.add(job)
        await db.commit()
        return cls(db, job)

    # ==================== Log lines ====================

    async def log(
        self, level: LogLevel, message: str, details: dict[str, Any] | None = None
    ) -> None:
        """Append one log line to the job and commit it."""
        self.db.add(
            SyncLog(
                job_id=self._job_id,
                level=level,
                message=message[:_MAX_MESSAGE_LENGTH],
                details=details or {},
                created_at=utcnow(),
            )
        )
        await self.db.commit()

        if self._console is not None:
            suffix = f" {details}" if details else ""
            self._console.log(_PYTHON_LEVELS[level], f"{message}{suffix}")

    async def debug(self, message: str, details: dict[str, Any] | None = None) -> None:
        await self.log(LogLevel.DEBUG, message, details)

    async def info(self, message: str, details: dict[str, Any] | None = None) -> None:
        await self.log(LogLevel.INFO, message, details)

    async def warn(self, message: str, details: dict[str, Any] | None = None) -> None:
        await self.log(LogLevel.WARN, message, details)

    async def error(self, message: str, details: dict[str, Any] | None = None) -> None:
        await self.log(LogLevel.ERROR, message, details)

    # ==================== Lifecycle ====================

    async def update_progress(self, total: int, synced: int) -> None:
        self.job.items_total = total
        self.job.items_synced = synced
        await self.db.flush()

    async def _ensure_running(self, action: str) -> None:
        # Reload so a rolled back session still sees the stored state
        await self.db.refresh(self.job)
        if self.job.status.is_terminal:
            raise JobStateError(
                f"Cannot {action} job {self._job_id}: already {self.job.status.value}"
            )

    async def complete_job(self, success: bool, error_msg: str | None = None) -> None:
        """Move the job to COMPLETED or FAILED.

        Raises:
            JobStateError: If the job already reached a terminal state
        """
        await self._ensure_running("complete")
        self.job.status = SyncJobStatus.COMPLETED if success else SyncJobStatus.FAILED
        self.job.completed_at = utcnow()
        self.job.error_msg = None if success else error_msg
        await self.db.commit()

    async def cancel_job(self, reason: str | None = None) -> None:
        """Move the job to CANCELLED, recording the reason as its error.

        Raises:
            JobStateError: If the job already reached a terminal state
        """
        await self._ensure_running("cancel")
        self.job.status = SyncJobStatus.CANCELLED
        self.job.completed_at = utcnow()
        self.job.error_msg = reason
        await self.db.commit()

    # ==================== Queries ====================

    @staticmethod
    async def get_job_status(
        db: AsyncSession, job_id: int, log_limit: int = JOB_STATUS_LOG_LIMIT
    ) -> tuple[SyncJob, list[SyncLog]] | None:
        """Job with its most recent log lines, newest first."""
        job = await db.get(SyncJob, job_id)
        if job is None:
            return None
        result = await db.execute(
            select(SyncLog)
            .where(SyncLog.job_id == job_id)
            .order_by(SyncLog.created_at.desc(), SyncLog.id.desc())
            .limit(log_limit)
        )
        return job, list(result.scalars().all())

    @staticmethod
    async def get_running_jobs(db: AsyncSession) -> list[SyncJob]:
        result = await db.execute(
            select(SyncJob)
            .where(SyncJob.status == SyncJobStatus.RUNNING)
            .order_by(SyncJob.started_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_recent_jobs(
        db: AsyncSession, limit: int = JOB_RECENT_DEFAULT_LIMIT
    ) -> list[tuple[SyncJob, int]]:
        """Most recent jobs with their number of log lines."""
        log_counts = (
            select(SyncLog.job_id, func.count(SyncLog.id).label("log_count"))
            .group_by(SyncLog.job_id)
            .subquery()
        )
        result = await db.execute(
            select(SyncJob, func.coalesce(log_counts.c.log_count, 0))
            .outerjoin(log_counts, log_counts.c.job_id == SyncJob.id)
            .order_by(SyncJob.started_at.desc(), SyncJob.id.desc())
            .limit(limit)
        )
        return [(job, count) for job, count in result.all()]
