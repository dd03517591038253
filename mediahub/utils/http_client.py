"""Outbound HTTP for provider APIs.

A single persistent httpx client is shared by every provider so connections
are pooled, and ``ApiClient`` layers the per-attempt timeout and the retry
policy on top of it. Provider clients only supply a base URL and headers.
"""

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from mediahub.constants import (
    HTTP_ATTEMPT_TIMEOUT,
    HTTP_KEEPALIVE_EXPIRY,
    HTTP_MAX_CONNECTIONS,
    HTTP_MAX_KEEPALIVE_CONNECTIONS,
)
from mediahub.utils.logging import get_logger
from mediahub.utils.retry import DEFAULT_RETRY_CONFIG, RetryConfig

logger = get_logger(__name__)

_POOL_LIMITS = httpx.Limits(
    max_connections=HTTP_MAX_CONNECTIONS,
    max_keepalive_connections=HTTP_MAX_KEEPALIVE_CONNECTIONS,
    keepalive_expiry=HTTP_KEEPALIVE_EXPIRY,
)

_shared_client: httpx.AsyncClient | None = None

QueryParams = Mapping[str, Any] | Iterable[tuple[str, Any]]


class ApiError(Exception):
    """Raised when a provider request fails for good.

    Carries the HTTP status when the provider answered, otherwise the
    transport error is chained as ``__cause__``.
    """

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


def get_http_client() -> httpx.AsyncClient:
    """Get the persistent httpx client used for provider calls."""
    global _shared_client
    if _shared_client is None:
        _shared_client = httpx.AsyncClient(
            timeout=HTTP_ATTEMPT_TIMEOUT,
            limits=_POOL_LIMITS,
            http2=False,
        )
    return _shared_client


async def close_all_clients() -> None:
    """Close the persistent httpx client. Call during app shutdown."""
    global _shared_client
    if _shared_client is not None:
        await _shared_client.aclose()
        _shared_client = None


def clean_params(params: QueryParams | None) -> list[tuple[str, str]]:
    """Flatten query parameters, dropping ``None``/empty values.

    Sequence values become repeated keys, in order.
    """
    if not params:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    cleaned: list[tuple[str, str]] = []
    for key, value in items:
        if isinstance(value, (list, tuple, set, frozenset)):
            cleaned.extend((key, _to_str(v)) for v in value if v is not None and v != "")
        elif value is not None and value != "":
            cleaned.append((key, _to_str(value)))
    return cleaned


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ApiClient:
    """JSON API client with per-attempt timeout and exponential backoff."""

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        retry: RetryConfig | None = None,
        timeout: float = HTTP_ATTEMPT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            **(headers or {}),
        }
        self.retry = retry or DEFAULT_RETRY_CONFIG
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: QueryParams | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ApiError: On a non-retryable status, an exhausted retry budget or
                an undecodable body
        """
        url = f"{self.base_url}{endpoint}"
        query = clean_params(params)
        merged_headers = {**self.headers, **(headers or {})}
        attempt = 0

        while True:
            try:
                # Bounds the whole attempt, httpx timeouts only bound each operation
                async with asyncio.timeout(self.timeout):
                    response = await self.client.request(
                        method,
                        url,
                        params=query,
                        json=json,
                        headers=merged_headers,
                        timeout=self.timeout,
                    )
            except Exception as e:
                if not self.retry.should_retry_exception(e):
                    raise
                if attempt < self.retry.attempts:
                    await self._backoff(attempt, f"{method} {url}: {type(e).__name__}")
                    attempt += 1
                    continue
                raise ApiError(
                    f"{method} {url} failed after {attempt + 1} attempts: {e!r}", url=url
                ) from e

            if response.is_success:
                try:
                    return response.json()
                except ValueError as e:
                    raise ApiError(
                        f"{method} {url} returned invalid JSON",
                        status_code=response.status_code,
                        url=url,
                    ) from e

            retryable = self.retry.should_retry_status(response.status_code)
            if retryable and attempt < self.retry.attempts:
                await self._backoff(attempt, f"{method} {url}: status {response.status_code}")
                attempt += 1
                continue

            raise ApiError(
                f"HTTP error {response.status_code} for {method} {url}",
                status_code=response.status_code,
                url=url,
            )

    async def _backoff(self, attempt: int, reason: str) -> None:
        delay = self.retry.delay_for(attempt)
        logger.warning(
            f"{reason}, retrying in {delay:.2f}s "
            f"(attempt {attempt + 1}/{self.retry.attempts + 1})"
        )
        await asyncio.sleep(delay)

    async def get(
        self,
        endpoint: str,
        params: QueryParams | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self.request("GET", endpoint, params=params, headers=headers)

    async def post(
        self, endpoint: str, body: Any = None, headers: dict[str, str] | None = None
    ) -> Any:
        return await self.request("POST", endpoint, json=body, headers=headers)

    async def put(
        self, endpoint: str, body: Any = None, headers: dict[str, str] | None = None
    ) -> Any:
        return await self.request("PUT", endpoint, json=body, headers=headers)

    async def delete(self, endpoint: str, headers: dict[str, str] | None = None) -> Any:
        return await self.request("DELETE", endpoint, headers=headers)
