"""SQLAlchemy models."""

from mediahub.models.base import Base, TimestampMixin
from mediahub.models.media import (
    AnimeData,
    MangaData,
    Media,
    MediaCategory,
    MediaType,
    ProviderType,
)
from mediahub.models.sync import LogLevel, SyncJob, SyncJobStatus, SyncJobType, SyncLog

__all__ = [
    "Base",
    "TimestampMixin",
    "Media",
    "MediaType",
    "ProviderType",
    "AnimeData",
    "MangaData",
    "MediaCategory",
    "SyncJob",
    "SyncJobType",
    "SyncJobStatus",
    "SyncLog",
    "LogLevel",
]
