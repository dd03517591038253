"""Authentication module."""

from mediahub.auth.dependencies import UnauthorizedError, require_job_api_key

__all__ = [
    "UnauthorizedError",
    "require_job_api_key",
]
