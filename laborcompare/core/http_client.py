"""
Base HTTP client with unified retry logic, pacing, and error handling.

Provides a reusable foundation for every upstream client in the pipeline.
Requests are issued one at a time; each one runs through a small state
machine:

    IDLE -> ATTEMPTING -> SUCCESS
                       -> RETRY_WAIT -> ATTEMPTING ...
                       -> ABORTED

Transient failures wait ``retry_delay * attempt`` seconds before the next
attempt. Rate-limit signals go straight to ABORTED.
"""
import asyncio
import logging
from abc import ABC
from enum import Enum
from typing import Dict, Optional, Any, Callable

import httpx

from laborcompare.core.api_errors import (
    APIError,
    RetryableError,
    RateLimitError,
    PayloadError,
    classify_http_error,
)

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    """Lifecycle of a single logical request."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    RETRY_WAIT = "retry_wait"
    ABORTED = "aborted"


# Phrases providers use in a 200 response body to say the quota is gone
RATE_LIMIT_MARKERS = ("threshold", "daily", "rate limit", "rate-limit", "quota", "too many requests")


def looks_rate_limited(message: str) -> bool:
    """Return True when a provider message signals an exhausted quota."""
    text = message.lower()
    return any(marker in text for marker in RATE_LIMIT_MARKERS)


class BaseAPIClient(ABC):
    """
    Base class for all upstream clients.

    Provides unified:
    - HTTP request handling with linear retry backoff
    - Fail-fast handling of provider rate limits
    - Minimum spacing between requests
    - Standardized error classification

    Subclasses should:
    - Set SOURCE_NAME and BASE_URL class attributes
    - Implement source-specific methods that call get()/post()/download()
    - Override _check_api_error() for source-specific error detection
    """

    # Override in subclass
    SOURCE_NAME: str = "unknown"
    BASE_URL: str = ""

    # Default settings
    DEFAULT_TIMEOUT: float = 60.0
    DEFAULT_CONNECT_TIMEOUT: float = 15.0
    DEFAULT_MAX_RETRIES: int = 3
    DEFAULT_RETRY_DELAY: float = 5.0
    DEFAULT_MAX_BACKOFF: float = 60.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        rate_limit_interval: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Optional API key for authentication
            max_retries: Maximum attempts per request, first try included
            retry_delay: Base delay; attempt N waits retry_delay * N seconds
            max_backoff: Upper bound on a single retry wait
            timeout: Request timeout in seconds
            connect_timeout: Connection timeout in seconds
            rate_limit_interval: Minimum seconds between requests (None = no limit)
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.api_key = api_key
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.max_backoff = max_backoff
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.rate_limit_interval = rate_limit_interval
        self._transport = transport

        self.state = RequestState.IDLE
        self.total_attempts = 0

        self._last_request_time: float = 0
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            f"Initialized {self.SOURCE_NAME} client: "
            f"api_key_present={api_key is not None}, "
            f"max_retries={self.max_retries}"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug(f"{self.SOURCE_NAME} client closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _transition(self, state: RequestState) -> None:
        logger.debug(f"[{self.SOURCE_NAME}] {self.state.value} -> {state.value}")
        self.state = state

    async def _enforce_rate_limit(self) -> None:
        """Enforce minimum interval between requests."""
        if not self.rate_limit_interval:
            return

        now = asyncio.get_running_loop().time()
        elapsed = now - self._last_request_time
        if elapsed < self.rate_limit_interval:
            wait_time = self.rate_limit_interval - elapsed
            logger.debug(f"Rate limiting: waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)
        self._last_request_time = asyncio.get_running_loop().time()

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the retry that follows ``attempt`` (1-indexed)."""
        return min(self.retry_delay * attempt, self.max_backoff)

    async def _backoff(self, attempt: int) -> None:
        delay = self.backoff_delay(attempt)
        logger.debug(f"Backing off for {delay:.2f}s (attempt {attempt})")
        if delay > 0:
            await asyncio.sleep(delay)

    def _check_api_error(self, data: Any, resource_id: str) -> Optional[APIError]:
        """
        Check a parsed response for source-specific errors.

        Override in subclass to handle source-specific error formats.

        Args:
            data: Parsed response
            resource_id: Resource being requested (for logging)

        Returns:
            APIError if error detected, None otherwise
        """
        if isinstance(data, dict) and "error" in data:
            error_msg = data.get("error")
            if isinstance(error_msg, dict):
                error_msg = error_msg.get("message", str(error_msg))
            if looks_rate_limited(str(error_msg)):
                return RateLimitError(
                    message=str(error_msg),
                    source=self.SOURCE_NAME,
                    status_code=None,
                    response_data=data,
                )
            return RetryableError(
                message=str(error_msg),
                source=self.SOURCE_NAME,
                response_data=data,
            )
        return None

    def _build_headers(self) -> Dict[str, str]:
        """
        Build request headers.

        Override to add source-specific headers.
        """
        return {
            "Accept": "application/json",
            "User-Agent": f"LaborCompare/{self.SOURCE_NAME}-pipeline",
        }

    def _add_auth_to_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add authentication to request parameters.

        Override to add source-specific auth (e.g., a key query param).
        """
        return params

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        return response.json()

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
        resource_id: str = "unknown",
        parse: Optional[Callable[[httpx.Response], Any]] = None,
        check_errors: bool = True,
    ) -> Any:
        """
        Make an HTTP request and drive it through the retry state machine.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Full URL or path (if path, BASE_URL is prepended)
            params: Query parameters
            json_body: JSON body for POST requests
            resource_id: Identifier for logging
            parse: Response parser (defaults to JSON)
            check_errors: Run _check_api_error on the parsed payload

        Returns:
            Parsed response

        Raises:
            RateLimitError: Immediately, on the first quota signal
            APIError: When retries are exhausted or the error is permanent
        """
        if not url.startswith("http"):
            url = f"{self.BASE_URL.rstrip('/')}/{url.lstrip('/')}"

        params = self._add_auth_to_params(dict(params or {}))
        headers = self._build_headers()
        parse = parse or self._parse_json

        client = await self._get_client()
        self._transition(RequestState.IDLE)
        attempt = 0

        while True:
            attempt += 1
            self.total_attempts += 1
            self._transition(RequestState.ATTEMPTING)
            await self._enforce_rate_limit()

            logger.debug(
                f"[{self.SOURCE_NAME}] {method} {resource_id} "
                f"(attempt {attempt}/{self.max_retries})"
            )

            try:
                if method.upper() == "POST":
                    response = await client.post(
                        url,
                        params=params,
                        json=json_body,
                        headers={**headers, "Content-Type": "application/json"},
                    )
                else:
                    response = await client.request(
                        method, url, params=params, headers=headers
                    )
                response.raise_for_status()

                data = parse(response)

                if check_errors:
                    api_error = self._check_api_error(data, resource_id)
                    if api_error:
                        raise api_error

                self._transition(RequestState.SUCCESS)
                logger.debug(f"[{self.SOURCE_NAME}] Successfully fetched {resource_id}")
                return data

            except httpx.HTTPStatusError as e:
                error = classify_http_error(
                    e.response.status_code,
                    e.response.text[:500],
                    self.SOURCE_NAME,
                )
            except httpx.RequestError as e:
                error = RetryableError(
                    message=f"Request failed: {e}", source=self.SOURCE_NAME
                )
            except APIError as e:
                error = e
            except ValueError as e:
                error = PayloadError(
                    message=f"Unparseable response for {resource_id}: {e}",
                    source=self.SOURCE_NAME,
                )

            if isinstance(error, RateLimitError):
                self._transition(RequestState.ABORTED)
                logger.error(
                    f"[{self.SOURCE_NAME}] Rate limit reached on {resource_id}; "
                    f"not retrying: {error.message}"
                )
                raise error

            if error.retryable and attempt < self.max_retries:
                self._transition(RequestState.RETRY_WAIT)
                logger.warning(
                    f"[{self.SOURCE_NAME}] Retryable error on {resource_id} "
                    f"(attempt {attempt}/{self.max_retries}): {error}"
                )
                await self._backoff(attempt)
                continue

            self._transition(RequestState.ABORTED)
            if error.retryable:
                raise RetryableError(
                    message=f"Failed after {attempt} attempts: {error.message}",
                    source=self.SOURCE_NAME,
                    status_code=error.status_code,
                )
            raise error

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        resource_id: str = "unknown",
    ) -> Any:
        """Make GET request and return the parsed JSON body."""
        return await self._request("GET", url, params=params, resource_id=resource_id)

    async def post(
        self,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        resource_id: str = "unknown",
    ) -> Any:
        """Make POST request and return the parsed JSON body."""
        return await self._request(
            "POST",
            url,
            params=params,
            json_body=json_body,
            resource_id=resource_id,
        )

    async def download(self, url: str, resource_id: str = "unknown") -> bytes:
        """Download a file body with the same retry handling as API calls."""
        return await self._request(
            "GET",
            url,
            resource_id=resource_id,
            parse=lambda response: response.content,
            check_errors=False,
        )

    async def get_text(self, url: str, resource_id: str = "unknown") -> str:
        """Fetch an HTML/text page with the same retry handling as API calls."""
        return await self._request(
            "GET",
            url,
            resource_id=resource_id,
            parse=lambda response: response.text,
            check_errors=False,
        )
