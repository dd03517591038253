"""Sync job bookkeeping: one SyncJob per run, append-only SyncLog lines."""

import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mediahub.models.base import Base, utcnow


class SyncJobType(str, enum.Enum):
    """Kind of batch job."""

    TRENDING_SYNC = "TRENDING_SYNC"
    POPULAR_SYNC = "POPULAR_SYNC"
    TOP_RATED_SYNC = "TOP_RATED_SYNC"
    DRAMAS_SYNC = "DRAMAS_SYNC"
    UPCOMING_SYNC = "UPCOMING_SYNC"
    CLEANUP = "CLEANUP"


class SyncJobStatus(str, enum.Enum):
    """Lifecycle state of a job. Everything but RUNNING is terminal."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not SyncJobStatus.RUNNING


class LogLevel(str, enum.Enum):
    """Severity of a job log line."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class SyncJob(Base):
    """A single run of a batch job."""

    __tablename__ = "sync_jobs"

    id: Mapped[int] = mapped_column(primary_key=True)
    job_type: Mapped[SyncJobType] = mapped_column(Enum(SyncJobType), nullable=False)
    status: Mapped[SyncJobStatus] = mapped_column(
        Enum(SyncJobStatus), default=SyncJobStatus.RUNNING, nullable=False, index=True
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_msg: Mapped[str | None] = mapped_column(Text, nullable=True)
    items_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    items_synced: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # "metadata" is reserved on declarative classes
    job_metadata: Mapped[dict] = mapped_column("metadata", JSON, default=dict, nullable=False)

    logs: Mapped[list["SyncLog"]] = relationship(
        "SyncLog",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<SyncJob(id={self.id}, type={self.job_type}, status={self.status})>"


class SyncLog(Base):
    """One log line of a job. Never updated after insert."""

    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    job_id: Mapped[int] = mapped_column(
        ForeignKey("sync_jobs.id", ondelete="CASCADE"), nullable=False
    )
    level: Mapped[LogLevel] = mapped_column(Enum(LogLevel), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    job: Mapped["SyncJob"] = relationship("SyncJob", back_populates="logs")

    __table_args__ = (Index("ix_sync_logs_job_created", "job_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<SyncLog(job_id={self.job_id}, level={self.level})>"
