"""
Unit tests for the base HTTP client retry state machine.

All HTTP is simulated with httpx.MockTransport.
"""
import httpx
import pytest

from laborcompare.core.api_errors import (
    AuthenticationError,
    NotFoundError,
    PayloadError,
    RateLimitError,
    RetryableError,
    classify_http_error,
)
from laborcompare.core.http_client import BaseAPIClient, RequestState, looks_rate_limited


class EchoClient(BaseAPIClient):
    SOURCE_NAME = "echo"
    BASE_URL = "https://example.test/api"


def make_client(handler, **kwargs):
    kwargs.setdefault("retry_delay", 0.0)
    return EchoClient(transport=httpx.MockTransport(handler), **kwargs)


class Counter:
    """Handler that replays a list of responses and counts calls."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    def __call__(self, request):
        self.calls += 1
        response = self.responses[min(self.calls, len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


# =============================================================================
# Error classification
# =============================================================================


class TestClassifyHttpError:

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status,expected",
        [
            (429, RateLimitError),
            (401, AuthenticationError),
            (404, NotFoundError),
            (500, RetryableError),
            (503, RetryableError),
        ],
    )
    def test_status_mapping(self, status, expected):
        assert isinstance(classify_http_error(status, "body", "echo"), expected)

    @pytest.mark.unit
    def test_rate_limit_is_not_retryable(self):
        assert classify_http_error(429).retryable is False

    @pytest.mark.unit
    def test_rate_limit_markers(self):
        assert looks_rate_limited("Daily threshold reached")
        assert looks_rate_limited("API quota exceeded")
        assert not looks_rate_limited("Series does not exist")


# =============================================================================
# Retry state machine
# =============================================================================


class TestRequestStateMachine:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        handler = Counter([httpx.Response(200, json={"ok": True})])
        async with make_client(handler) as client:
            data = await client.get("items")

        assert data == {"ok": True}
        assert handler.calls == 1
        assert client.state == RequestState.SUCCESS

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transient_error_retried_then_succeeds(self):
        handler = Counter([
            httpx.Response(503, text="busy"),
            httpx.Response(500, text="oops"),
            httpx.Response(200, json={"ok": True}),
        ])
        async with make_client(handler, max_retries=3) as client:
            data = await client.get("items")

        assert data == {"ok": True}
        assert handler.calls == 3
        assert client.total_attempts == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transient_error_exhausts_attempts(self):
        handler = Counter([httpx.Response(500, text="down")])
        async with make_client(handler, max_retries=3) as client:
            with pytest.raises(RetryableError) as exc_info:
                await client.get("items")

        assert handler.calls == 3
        assert "Failed after 3 attempts" in str(exc_info.value)
        assert client.state == RequestState.ABORTED

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_error_is_retryable(self):
        request = httpx.Request("GET", "https://example.test/api/items")
        handler = Counter([
            httpx.ConnectError("refused", request=request),
            httpx.Response(200, json=[1, 2]),
        ])
        async with make_client(handler) as client:
            assert await client.get("items") == [1, 2]
        assert handler.calls == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_429_fails_fast_with_zero_retries(self):
        handler = Counter([httpx.Response(429, text="slow down")])
        async with make_client(handler, max_retries=5) as client:
            with pytest.raises(RateLimitError):
                await client.get("items")

        assert handler.calls == 1
        assert client.total_attempts == 1
        assert client.state == RequestState.ABORTED

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rate_limit_message_in_body_fails_fast(self):
        handler = Counter([httpx.Response(200, json={"error": "daily quota exceeded"})])
        async with make_client(handler, max_retries=5) as client:
            with pytest.raises(RateLimitError):
                await client.get("items")
        assert handler.calls == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self):
        handler = Counter([httpx.Response(404, text="missing")])
        async with make_client(handler) as client:
            with pytest.raises(NotFoundError):
                await client.get("items")
        assert handler.calls == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unparseable_json_is_payload_error(self):
        handler = Counter([httpx.Response(200, text="<html>not json</html>")])
        async with make_client(handler) as client:
            with pytest.raises(PayloadError):
                await client.get("items")
        assert handler.calls == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_download_returns_bytes_without_error_check(self):
        handler = Counter([httpx.Response(200, content=b"PK\x03\x04rest")])
        async with make_client(handler) as client:
            assert await client.download("https://example.test/file.zip") == b"PK\x03\x04rest"


class TestBackoff:

    @pytest.mark.unit
    def test_linear_backoff_is_bounded(self):
        client = EchoClient(retry_delay=5.0, max_backoff=12.0)
        assert client.backoff_delay(1) == 5.0
        assert client.backoff_delay(2) == 10.0
        assert client.backoff_delay(3) == 12.0

    @pytest.mark.unit
    def test_max_retries_floor_is_one(self):
        assert EchoClient(max_retries=0).max_retries == 1
