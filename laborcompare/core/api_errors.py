"""
Standardized error classification for the ingestion pipeline.

Every upstream client and fetcher raises from this hierarchy so the
orchestrator can decide, per stage, whether to retry, abort, skip a
record, or exit non-zero.

Taxonomy:
- RetryableError: transient network/HTTP failure, retried with backoff
- RateLimitError: provider quota signal, never retried, aborts the stage
- PayloadError: malformed record or sheet, skipped and logged
- MissingCredentialError: required key absent, fatal before any network call
- MissingArtifactError: an upstream raw artifact does not exist yet
"""

from typing import Optional, Dict, Any


class APIError(Exception):
    """
    Base exception for all API-related errors.

    Attributes:
        message: Human-readable error description
        source: Source name (e.g., 'bls', 'bea', 'census', 'oews')
        status_code: HTTP status code if applicable
        response_data: Raw response data for debugging
        retryable: Whether this error should trigger a retry
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.status_code = status_code
        self.response_data = response_data
        self.retryable = retryable

    def __str__(self) -> str:
        parts = [self.message]
        if self.source:
            parts.insert(0, f"[{self.source}]")
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source": self.source,
            "status_code": self.status_code,
            "retryable": self.retryable,
        }


class RetryableError(APIError):
    """
    Transient errors that should trigger a retry.

    Examples:
    - HTTP 500-599 server errors
    - Network timeouts and connection resets
    - BLS REQUEST_NOT_PROCESSED responses that are not quota messages
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
    ):
        super().__init__(
            message=message,
            source=source,
            status_code=status_code,
            response_data=response_data,
            retryable=True,
        )


class RateLimitError(APIError):
    """
    Provider quota exhausted (HTTP 429 or a daily-threshold message).

    Never retried: the quota resets on the provider's schedule, so the
    current stage aborts and keeps whatever it already collected.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = 429,
        response_data: Optional[Any] = None,
    ):
        super().__init__(
            message=message,
            source=source,
            status_code=status_code,
            response_data=response_data,
            retryable=False,
        )


class FatalError(APIError):
    """
    Non-retryable errors that indicate a permanent problem.

    Examples:
    - Invalid API key (401)
    - Resource not found (404)
    - Invalid request parameters (400)
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
    ):
        super().__init__(
            message=message,
            source=source,
            status_code=status_code,
            response_data=response_data,
            retryable=False,
        )


class AuthenticationError(FatalError):
    """Authentication failed - invalid API key (HTTP 401)."""

    def __init__(
        self,
        message: str = "Authentication failed - check API key",
        source: Optional[str] = None,
        response_data: Optional[Any] = None,
    ):
        super().__init__(
            message=message, source=source, status_code=401, response_data=response_data
        )


class NotFoundError(FatalError):
    """
    Requested resource not found.

    Raised for HTTP 404 and for bulk files that are not yet published
    (e.g., an OEWS release year that BLS has not posted).
    """

    def __init__(
        self,
        message: str = "Resource not found",
        source: Optional[str] = None,
        resource_id: Optional[str] = None,
        response_data: Optional[Any] = None,
    ):
        if resource_id:
            message = f"{message}: {resource_id}"
        super().__init__(
            message=message, source=source, status_code=404, response_data=response_data
        )
        self.resource_id = resource_id


class PayloadError(FatalError):
    """
    Upstream payload did not have the expected shape.

    Raised per record or per sheet. Callers skip the offending unit and
    keep going; it only becomes fatal when a whole file is unusable.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        missing_fields: Optional[list] = None,
        response_data: Optional[Any] = None,
    ):
        super().__init__(
            message=message, source=source, status_code=None, response_data=response_data
        )
        self.missing_fields = missing_fields or []


class MissingCredentialError(FatalError):
    """
    A required API key is not configured.

    Raised before any network call so a misconfigured run fails fast.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        missing_config: Optional[str] = None,
    ):
        super().__init__(message=message, source=source)
        self.missing_config = missing_config


class MissingArtifactError(APIError):
    """A raw artifact needed by a build stage has not been fetched yet."""

    def __init__(self, artifact: str, source: Optional[str] = None):
        super().__init__(
            message=f"Raw artifact not found: {artifact}",
            source=source,
            retryable=False,
        )
        self.artifact = artifact


def classify_http_error(
    status_code: int, response_text: str = "", source: Optional[str] = None
) -> APIError:
    """
    Classify an HTTP error into the appropriate APIError subclass.

    Args:
        status_code: HTTP status code
        response_text: Response body text
        source: API source name

    Returns:
        Appropriate APIError subclass instance
    """
    if status_code == 429:
        return RateLimitError(
            message=f"Rate limited: {response_text[:200]}", source=source
        )
    elif status_code == 401:
        return AuthenticationError(
            message=f"Authentication failed: {response_text[:200]}", source=source
        )
    elif status_code == 403:
        return FatalError(
            message=f"Access forbidden: {response_text[:200]}",
            source=source,
            status_code=403,
        )
    elif status_code == 404:
        return NotFoundError(message=f"Not found: {response_text[:200]}", source=source)
    elif status_code == 400:
        return FatalError(
            message=f"Bad request: {response_text[:200]}",
            source=source,
            status_code=400,
        )
    elif 500 <= status_code < 600:
        return RetryableError(
            message=f"Server error: {response_text[:200]}",
            source=source,
            status_code=status_code,
        )
    else:
        return APIError(
            message=f"HTTP error {status_code}: {response_text[:200]}",
            source=source,
            status_code=status_code,
            retryable=False,
        )
