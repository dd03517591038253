"""Tests for the provider HTTP client and its retry policy."""

import asyncio
from unittest.mock import AsyncMock, call, patch

import httpx
import pytest

from mediahub.utils.http_client import ApiClient, ApiError, clean_params
from mediahub.utils.retry import RetryConfig


def make_client(handler, retry: RetryConfig | None = None, timeout: float = 10.0) -> ApiClient:
    transport = httpx.MockTransport(handler)
    return ApiClient(
        "https://api.example.test",
        headers={"Authorization": "Bearer token"},
        retry=retry or RetryConfig(attempts=2, backoff_ms=250),
        timeout=timeout,
        client=httpx.AsyncClient(transport=transport),
    )


class TestRetry:
    """Tests for retries and exponential backoff."""

    @pytest.mark.asyncio
    async def test_succeeds_after_two_unavailable_responses(self):
        """Test 503, 503, 200 succeeds after waiting 0.25s then 0.5s."""
        statuses = iter([503, 503, 200])
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            status = next(statuses)
            return httpx.Response(status, json={"ok": status == 200})

        client = make_client(handler)
        with patch("mediahub.utils.http_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            data = await client.get("/items")

        assert data == {"ok": True}
        assert len(calls) == 3
        assert sleep.await_args_list == [call(0.25), call(0.5)]

    @pytest.mark.asyncio
    async def test_always_failing_makes_exactly_three_attempts(self):
        """Test a persistent 500 fails after attempts + 1 requests."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500, json={"error": "boom"})

        client = make_client(handler)
        with patch("mediahub.utils.http_client.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(ApiError) as exc_info:
                await client.get("/items")

        assert len(calls) == 3
        assert exc_info.value.status_code == 500
        assert exc_info.value.url == "https://api.example.test/items"

    @pytest.mark.asyncio
    async def test_non_retryable_status_fails_immediately(self):
        """Test a 404 is not retried."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        client = make_client(handler)
        with patch("mediahub.utils.http_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ApiError) as exc_info:
                await client.get("/missing")

        assert len(calls) == 1
        assert exc_info.value.status_code == 404
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_is_retried(self):
        """Test a timed out attempt is retried like a retryable status."""
        attempts = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["count"] += 1
            if attempts["count"] == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler)
        with patch("mediahub.utils.http_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            data = await client.get("/slow")

        assert data == {"ok": True}
        assert attempts["count"] == 2
        assert sleep.await_args_list == [call(0.25)]

    @pytest.mark.asyncio
    async def test_slow_attempt_is_cut_at_timeout(self):
        """Test a response trickling in stays within the per-attempt bound."""
        ticks = {"count": 0}

        async def handler(request: httpx.Request) -> httpx.Response:
            # Each step is short, the whole response takes about 1s
            for _ in range(20):
                await asyncio.sleep(0.05)
                ticks["count"] += 1
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler, RetryConfig(attempts=0), timeout=0.2)
        loop = asyncio.get_running_loop()
        started = loop.time()
        with pytest.raises(ApiError) as exc_info:
            await client.get("/trickle")

        assert loop.time() - started < 0.8
        assert ticks["count"] < 20
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    @pytest.mark.asyncio
    async def test_timed_out_attempt_is_retried(self):
        """Test an attempt cut by the timeout is retried."""
        attempts = {"count": 0}

        async def handler(request: httpx.Request) -> httpx.Response:
            attempts["count"] += 1
            if attempts["count"] == 1:
                await asyncio.sleep(5)
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler, RetryConfig(attempts=1, backoff_ms=0), timeout=0.1)

        assert await client.get("/stall") == {"ok": True}
        assert attempts["count"] == 2

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise ValueError("bad request build")

        client = make_client(handler)
        with pytest.raises(ValueError):
            await client.get("/broken")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_exhausted_transport_errors_chain_the_cause(self):
        """Test connection failures surface as ApiError with the cause attached."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, RetryConfig(attempts=1, backoff_ms=10))
        with patch("mediahub.utils.http_client.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(ApiError) as exc_info:
                await client.get("/down")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_zero_attempts_disables_retries(self):
        """Test attempts=0 sends a single request."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        client = make_client(handler, RetryConfig(attempts=0))
        with pytest.raises(ApiError):
            await client.get("/items")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_json_raises_api_error(self):
        """Test an undecodable success body is reported, not returned."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>")

        client = make_client(handler)
        with pytest.raises(ApiError) as exc_info:
            await client.get("/html")

        assert exc_info.value.status_code == 200


class TestRequest:
    """Tests for request construction."""

    @pytest.mark.asyncio
    async def test_sends_headers_and_query(self):
        """Test default headers and cleaned params reach the provider."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={})

        client = make_client(handler)
        await client.get("/search", params={"q": "dune", "page": 2, "year": None})

        assert seen["auth"] == "Bearer token"
        assert seen["url"].path == "/search"
        assert dict(seen["url"].params) == {"q": "dune", "page": "2"}


class TestCleanParams:
    """Tests for clean_params."""

    def test_drops_empty_values(self):
        assert clean_params({"a": None, "b": "", "c": 0}) == [("c", "0")]

    def test_sequences_become_repeated_keys(self):
        params = {"contentRating[]": ["safe", "suggestive"]}
        assert clean_params(params) == [
            ("contentRating[]", "safe"),
            ("contentRating[]", "suggestive"),
        ]

    def test_booleans_are_lowercase(self):
        assert clean_params({"sfw": True, "adult": False}) == [("sfw", "true"), ("adult", "false")]

    def test_accepts_tuple_lists(self):
        assert clean_params([("manga[]", "a"), ("manga[]", "b")]) == [
            ("manga[]", "a"),
            ("manga[]", "b"),
        ]


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_delay_doubles_per_attempt(self):
        config = RetryConfig(backoff_ms=250)
        assert [config.delay_for(n) for n in range(3)] == [0.25, 0.5, 1.0]

    def test_negative_values_are_clamped(self):
        config = RetryConfig(attempts=-1, backoff_ms=-5)
        assert config.attempts == 0
        assert config.backoff_ms == 0

    def test_retryable_exceptions(self):
        config = RetryConfig()
        assert config.should_retry_exception(httpx.ConnectTimeout("slow"))
        assert config.should_retry_exception(ConnectionResetError())
        assert not config.should_retry_exception(ValueError("bad"))
