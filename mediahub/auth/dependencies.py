"""API key guard for the job endpoints."""

import secrets
from typing import Annotated

from fastapi import Depends, Header

from mediahub.config import Settings, get_settings
from mediahub.utils.logging import get_logger

logger = get_logger(__name__)


class UnauthorizedError(Exception):
    """Raised when a job request carries no valid API key."""


async def require_job_api_key(
    settings: Annotated[Settings, Depends(get_settings)],
    x_api_key: Annotated[str | None, Header()] = None,
) -> None:
    """Accept the request only if ``x-api-key`` matches the configured key.

    An unset key on the server side rejects every request.
    """
    expected = settings.job_api_key
    if not expected or not x_api_key:
        raise UnauthorizedError()
    if not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        logger.warning("Rejected job request with invalid API key")
        raise UnauthorizedError()
