"""Fixed-window rate limiter for external API calls.

Each provider gets a request budget per window. When the budget is spent the
caller sleeps until the window ends, then a fresh window starts. Counters are
process-local: a restart resets throttling.
"""

import asyncio
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from mediahub.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Budget of ``requests`` per ``window_ms`` milliseconds."""

    requests: int
    window_ms: int

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000


@dataclass
class FixedWindow:
    """Counter state for one provider."""

    count: int = 0
    window_start: float | None = None


class RateLimiter:
    """Per-provider fixed-window limiter.

    A lock per provider serializes callers of the same provider, so
    concurrent sync runs share one budget without racing past it. Different
    providers never block each other.
    """

    def __init__(
        self,
        configs: Mapping[str, RateLimitConfig],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._configs: dict[str, RateLimitConfig] = dict(configs)
        self._windows: dict[str, FixedWindow] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._clock = clock

    def configure(self, provider: str, config: RateLimitConfig) -> None:
        """Configure (or replace) the budget for a provider."""
        self._configs[provider] = config
        self._windows.pop(provider, None)

    def reset(self) -> None:
        """Forget every window."""
        self._windows.clear()

    def _get_lock(self, provider: str) -> asyncio.Lock:
        if provider not in self._locks:
            self._locks[provider] = asyncio.Lock()
        return self._locks[provider]

    async def check_rate_limit(self, provider: str) -> None:
        """Wait until ``provider`` has budget left, then consume one request.

        Raises:
            KeyError: If no budget is configured for the provider
        """
        config = self._configs[provider]
        window_size = config.window_seconds

        async with self._get_lock(provider):
            window = self._windows.setdefault(provider, FixedWindow())
            now = self._clock()

            if window.window_start is None or now - window.window_start >= window_size:
                window.count = 0
                window.window_start = now

            if window.count >= config.requests:
                wait = window_size - (now - window.window_start)
                if wait > 0:
                    logger.debug(f"Rate limit [{provider}]: waiting {wait:.3f}s")
                    await asyncio.sleep(wait)
                window.count = 0
                window.window_start = self._clock()

            window.count += 1

    def get_stats(self) -> dict[str, dict[str, float]]:
        """Get current window counters per provider."""
        stats = {}
        for provider, window in self._windows.items():
            config = self._configs[provider]
            stats[provider] = {
                "count": window.count,
                "limit": config.requests,
                "window_ms": config.window_ms,
            }
        return stats


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get the process-wide limiter built from settings."""
    global _rate_limiter
    if _rate_limiter is None:
        from mediahub.config import get_settings

        _rate_limiter = RateLimiter(get_settings().rate_limits)
    return _rate_limiter
