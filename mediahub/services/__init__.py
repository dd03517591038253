"""Business logic services."""

from mediahub.services.category_sync import CategoryFetch, CategorySyncService, SyncResult
from mediahub.services.cleanup import CleanupResult, cleanup_old_data
from mediahub.services.job_logger import JobLogger, JobStateError
from mediahub.services.media_upsert import MediaValidationError, insert_media

__all__ = [
    # Category sync
    "CategorySyncService",
    "CategoryFetch",
    "SyncResult",
    # Cleanup
    "CleanupResult",
    "cleanup_old_data",
    # Jobs
    "JobLogger",
    "JobStateError",
    # Media
    "insert_media",
    "MediaValidationError",
]
