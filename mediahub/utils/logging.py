"""Logging setup for the API process and the sync CLI.

Sync runs write their own log lines to the database (see ``JobLogger``);
outside production those lines are mirrored to the ``mediahub.jobs`` logger
configured here, tagged with the job id.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, Literal

from mediahub.config import get_settings

JOB_LOGGER_NAME = "mediahub.jobs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request chatter from the HTTP and database drivers
_NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "uvicorn.access",
    "sqlalchemy.engine",
    "aiosqlite",
    "asyncpg",
)


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None
) -> None:
    """Configure root logging once for the process.

    Args:
        level: Override log level (default: INFO in production, DEBUG otherwise)
    """
    settings = get_settings()
    if level is None:
        level = "INFO" if settings.is_production else "DEBUG"

    logging.basicConfig(
        level=getattr(logging, level),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically __name__)."""
    return logging.getLogger(name)


class LogContext(logging.LoggerAdapter):
    """Logger adapter that prefixes every message with ``[key=value]`` pairs.

    Usage:
        log = LogContext(get_logger(JOB_LOGGER_NAME), job=42)
        log.info("Fetched 20 items")  # "[job=42] Fetched 20 items"
    """

    def __init__(self, logger: logging.Logger, **context: object) -> None:
        super().__init__(logger, dict(context))
        self.prefix = " ".join(f"[{k}={v}]" for k, v in context.items())

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        return f"{self.prefix} {msg}", kwargs


def job_log_context(job_id: int) -> LogContext:
    """Console mirror for the log lines of one job."""
    return LogContext(get_logger(JOB_LOGGER_NAME), job=job_id)
