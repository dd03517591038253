"""Pydantic schemas for API serialization."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mediahub.models.sync import LogLevel, SyncJobStatus, SyncJobType


class SyncLogRead(BaseModel):
    """Job log line."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    level: LogLevel
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class SyncJobRead(BaseModel):
    """Job summary."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    job_type: SyncJobType
    status: SyncJobStatus
    started_at: datetime
    completed_at: datetime | None = None
    error_msg: str | None = None
    items_total: int = 0
    items_synced: int = 0


class SyncJobSummary(SyncJobRead):
    """Job summary with its number of log lines."""

    log_count: int = 0


class SyncJobDetail(SyncJobRead):
    """Job with its most recent log lines."""

    logs: list[SyncLogRead] = Field(default_factory=list)


class SyncTriggerResponse(BaseModel):
    """Response of a successful job trigger."""

    success: bool
    message: str
    job_id: int | None = Field(default=None, serialization_alias="jobId")


class CleanupResponse(BaseModel):
    """Response of the cleanup job."""

    success: bool
    message: str
    job_id: int | None = Field(default=None, serialization_alias="jobId")
    deleted: dict[str, int]
