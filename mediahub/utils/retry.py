"""Retry policy with exponential backoff for external API calls."""

from dataclasses import dataclass, field

import httpx

DEFAULT_RETRY_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    ``attempts`` counts retries after the first try, so a request is sent at
    most ``attempts + 1`` times.
    """

    attempts: int = 2
    backoff_ms: int = 250
    retry_on_status: frozenset[int] = field(default=DEFAULT_RETRY_STATUSES)
    retryable_exceptions: tuple[type[BaseException], ...] = (
        httpx.TimeoutException,
        httpx.TransportError,
        ConnectionResetError,
        ConnectionError,
        TimeoutError,
    )

    def __post_init__(self) -> None:
        # Negative values are clamped rather than rejected
        object.__setattr__(self, "attempts", max(0, self.attempts))
        object.__setattr__(self, "backoff_ms", max(0, self.backoff_ms))

    def delay_for(self, attempt: int) -> float:
        """Backoff in seconds before retrying after attempt ``attempt`` (0-based)."""
        return self.backoff_ms * (2**attempt) / 1000

    def should_retry_status(self, status_code: int) -> bool:
        return status_code in self.retry_on_status

    def should_retry_exception(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retryable_exceptions)


DEFAULT_RETRY_CONFIG = RetryConfig()
