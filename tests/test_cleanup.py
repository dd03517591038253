"""Tests for the retention cleanup job."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mediahub.config import Settings
from mediahub.models.base import utcnow
from mediahub.models.media import MediaCategory
from mediahub.models.sync import LogLevel, SyncJob, SyncJobStatus, SyncJobType, SyncLog
from mediahub.services import cleanup
from mediahub.services.cleanup import cleanup_old_data
from mediahub.services.media_upsert import insert_media


@pytest.fixture
def retention() -> Settings:
    return Settings(
        cleanup_category_retention_days=7,
        cleanup_log_retention_days=30,
        cleanup_job_retention_days=90,
    )


async def ids(db: AsyncSession, model) -> set[int]:
    return set((await db.execute(select(model.id))).scalars().all())


class TestCleanup:
    """Tests for cleanup_old_data."""

    @pytest.mark.asyncio
    async def test_deletes_rows_past_retention(
        self, db_session: AsyncSession, retention: Settings, make_item
    ):
        """Test old history and stale categories go, recent rows and running jobs stay."""
        now = utcnow()
        old_job = SyncJob(
            job_type=SyncJobType.TRENDING_SYNC,
            status=SyncJobStatus.COMPLETED,
            started_at=now - timedelta(days=120),
        )
        stuck_job = SyncJob(
            job_type=SyncJobType.POPULAR_SYNC,
            status=SyncJobStatus.RUNNING,
            started_at=now - timedelta(days=120),
        )
        recent_job = SyncJob(
            job_type=SyncJobType.DRAMAS_SYNC,
            status=SyncJobStatus.FAILED,
            started_at=now - timedelta(days=10),
        )
        db_session.add_all([old_job, stuck_job, recent_job])
        await db_session.flush()

        db_session.add_all(
            [
                SyncLog(
                    job_id=recent_job.id,
                    level=LogLevel.INFO,
                    message="old line",
                    created_at=now - timedelta(days=40),
                ),
                SyncLog(
                    job_id=recent_job.id,
                    level=LogLevel.INFO,
                    message="fresh line",
                    created_at=now - timedelta(days=1),
                ),
            ]
        )
        media = await insert_media(db_session, make_item("550"))
        db_session.add_all(
            [
                MediaCategory(
                    media_id=media.id,
                    category_title="trending_movies",
                    position=1,
                    created_at=now - timedelta(days=8),
                    updated_at=now - timedelta(days=8),
                ),
                MediaCategory(media_id=media.id, category_title="popular_movies", position=1),
            ]
        )
        await db_session.commit()

        result = await cleanup_old_data(db_session, retention, now=now)

        assert result.success is True
        assert result.deleted == {"jobs": 1, "logs": 1, "categories": 1}
        remaining_jobs = await ids(db_session, SyncJob)
        assert old_job.id not in remaining_jobs
        assert {stuck_job.id, recent_job.id, result.job_id} <= remaining_jobs
        messages = (await db_session.execute(select(SyncLog.message))).scalars().all()
        assert "old line" not in messages
        assert "fresh line" in messages
        titles = (await db_session.execute(select(MediaCategory.category_title))).scalars().all()
        assert titles == ["popular_movies"]

    @pytest.mark.asyncio
    async def test_records_a_cleanup_job(self, db_session: AsyncSession, retention: Settings):
        result = await cleanup_old_data(db_session, retention)

        job = await db_session.get(SyncJob, result.job_id)
        assert job.job_type == SyncJobType.CLEANUP
        assert job.status == SyncJobStatus.COMPLETED
        assert result.deleted == {"jobs": 0, "logs": 0, "categories": 0}

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(
        self, db_session: AsyncSession, retention: Settings
    ):
        with patch.object(cleanup, "_purge", side_effect=RuntimeError("lock timeout")):
            result = await cleanup_old_data(db_session, retention)

        assert result.success is False
        assert result.error == "lock timeout"
        job = await db_session.get(SyncJob, result.job_id)
        assert job.status == SyncJobStatus.FAILED
        assert job.error_msg == "lock timeout"
