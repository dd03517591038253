"""Utility modules for mediahub."""

from mediahub.utils.cache import MemoryCache, RedisCache, get_provider_cache, make_cache_key
from mediahub.utils.http_client import ApiClient, ApiError, close_all_clients, get_http_client
from mediahub.utils.logging import LogContext, get_logger, job_log_context, setup_logging
from mediahub.utils.rate_limiter import RateLimitConfig, RateLimiter, get_rate_limiter
from mediahub.utils.retry import RetryConfig

__all__ = [
    # Cache
    "MemoryCache",
    "RedisCache",
    "get_provider_cache",
    "make_cache_key",
    # HTTP
    "ApiClient",
    "ApiError",
    "close_all_clients",
    "get_http_client",
    # Logging
    "get_logger",
    "job_log_context",
    "LogContext",
    "setup_logging",
    # Rate limiting
    "RateLimitConfig",
    "RateLimiter",
    "get_rate_limiter",
    # Retry
    "RetryConfig",
]
