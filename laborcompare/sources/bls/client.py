"""
BLS (Bureau of Labor Statistics) API client with batching and fail-fast rate limiting.

Official BLS API documentation:
https://www.bls.gov/developers/api_signature_v2.htm

Rate limits:
- Without API key: 25 queries/day, 10 years per query, 25 series per query
- With API key (free): 500 queries/day, 20 years per query, 50 series per query
- API key available at: https://data.bls.gov/registrationEngine/

When the daily threshold is reached BLS still answers HTTP 200, with
status REQUEST_NOT_PROCESSED and a message about the threshold. That is
detected from the body and ends the fetch at once; retrying cannot
succeed until the quota resets.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Any

import httpx

from laborcompare.core.http_client import BaseAPIClient, looks_rate_limited
from laborcompare.core.api_errors import (
    APIError,
    AuthenticationError,
    RateLimitError,
    RetryableError,
)
from laborcompare.core.api_registry import get_api_config
from laborcompare.core.config import Settings
from laborcompare.core.models import SeriesFetchResult, SeriesObservation
from laborcompare.sources.bls.series import parse_series_payload

logger = logging.getLogger(__name__)


class BLSClient(BaseAPIClient):
    """
    HTTP client for BLS API v2.

    Inherits retry logic and error handling from BaseAPIClient.
    Note: BLS API uses POST for data requests.
    """

    SOURCE_NAME = "bls"
    BASE_URL = "https://api.bls.gov/publicAPI/v2/timeseries/data/"

    # Series limits based on API key presence
    MAX_SERIES_WITH_KEY = 50
    MAX_SERIES_WITHOUT_KEY = 25
    MAX_YEARS_WITH_KEY = 20
    MAX_YEARS_WITHOUT_KEY = 10

    DEFAULT_BATCH_DELAY = 1.5
    DEFAULT_MAX_CONSECUTIVE_FAILURES = 5

    def __init__(
        self,
        api_key: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        max_backoff: float = 60.0,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize BLS API client.

        Args:
            api_key: BLS API key (registration key)
            max_retries: Maximum attempts per batch request
            retry_delay: Base retry delay; attempt N waits retry_delay * N
            max_backoff: Upper bound on a single retry wait
            batch_delay: Seconds to sleep between batches
            max_consecutive_failures: Failed batches in a row before giving up
            timeout: Request timeout in seconds
            transport: Optional httpx transport for tests
        """
        config = get_api_config("bls")

        super().__init__(
            api_key=api_key,
            max_retries=max_retries,
            retry_delay=retry_delay,
            max_backoff=max_backoff,
            timeout=timeout,
            connect_timeout=config.connect_timeout_seconds,
            rate_limit_interval=config.get_rate_limit_interval(),
            transport=transport,
        )

        self.batch_delay = batch_delay
        self.max_consecutive_failures = max_consecutive_failures

        self.max_series_per_request = (
            self.MAX_SERIES_WITH_KEY if api_key else self.MAX_SERIES_WITHOUT_KEY
        )
        self.max_years = (
            self.MAX_YEARS_WITH_KEY if api_key else self.MAX_YEARS_WITHOUT_KEY
        )

        if not api_key:
            logger.warning(
                "BLS API key not provided. Limited to 25 queries/day, 25 series per query. "
                f"Get a free key at: {config.signup_url}"
            )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        api_key: Optional[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "BLSClient":
        return cls(
            api_key=api_key,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
            max_backoff=settings.max_backoff,
            batch_delay=settings.bls_batch_delay,
            max_consecutive_failures=settings.max_consecutive_failures,
            timeout=settings.request_timeout,
            transport=transport,
        )

    def _check_api_error(
        self, data: Any, resource_id: str
    ) -> Optional[APIError]:
        """Check for BLS-specific API errors."""
        if not isinstance(data, dict):
            return RetryableError(
                message=f"Unexpected BLS response type: {type(data).__name__}",
                source=self.SOURCE_NAME,
            )

        status = data.get("status")
        message = data.get("message", [])
        if isinstance(message, list):
            message = "; ".join(str(m) for m in message)
        message = str(message)

        if status == "REQUEST_SUCCEEDED":
            if message:
                # Per-series notes such as "Series does not exist" for
                # candidate county codes; the batch itself is fine.
                logger.debug(f"BLS notes for {resource_id}: {message[:300]}")
            return None

        if looks_rate_limited(message):
            return RateLimitError(
                message=f"BLS quota reached: {message}",
                source=self.SOURCE_NAME,
                status_code=None,
                response_data=data,
            )

        lowered = message.lower()
        if "key" in lowered and "invalid" in lowered:
            return AuthenticationError(
                message=f"BLS rejected the registration key: {message}",
                source=self.SOURCE_NAME,
                response_data=data,
            )

        return RetryableError(
            message=f"BLS request not processed ({status}): {message}",
            source=self.SOURCE_NAME,
            response_data=data,
        )

    async def fetch_batch(
        self,
        series_ids: List[str],
        start_year: int,
        end_year: int,
        annual_average: bool = True,
    ) -> Dict[str, List[SeriesObservation]]:
        """
        Fetch one batch of series in a single request.

        Args:
            series_ids: At most ``max_series_per_request`` BLS series IDs
            start_year: Start year (e.g., 2023)
            end_year: End year (e.g., 2024)
            annual_average: Ask for M13 annual averages (API key required)

        Returns:
            Dict mapping series_id to its observations

        Raises:
            ValueError: If series count or year range exceeds limits
            APIError: When the request ultimately fails
        """
        if len(series_ids) > self.max_series_per_request:
            raise ValueError(
                f"Too many series ({len(series_ids)}). "
                f"Max is {self.max_series_per_request} per request "
                f"({'with' if self.api_key else 'without'} API key)"
            )

        year_range = end_year - start_year
        if year_range > self.max_years:
            raise ValueError(
                f"Year range too large ({year_range} years). "
                f"Max is {self.max_years} years {'with' if self.api_key else 'without'} API key"
            )

        payload: Dict[str, Any] = {
            "seriesid": series_ids,
            "startyear": str(start_year),
            "endyear": str(end_year),
        }

        if self.api_key:
            payload["registrationkey"] = self.api_key
            if annual_average:
                payload["annualaverage"] = True

        series_list = ", ".join(series_ids[:3])
        if len(series_ids) > 3:
            series_list += f"... ({len(series_ids)} total)"

        response = await self.post(
            self.BASE_URL, json_body=payload, resource_id=f"series:[{series_list}]"
        )

        results: Dict[str, List[SeriesObservation]] = {}
        for series_data in (response.get("Results") or {}).get("series", []):
            series_id, observations = parse_series_payload(series_data)
            if series_id:
                results[series_id] = observations
        return results

    async def fetch_series(
        self,
        series_ids: List[str],
        start_year: int,
        end_year: int,
        annual_average: bool = True,
    ) -> SeriesFetchResult:
        """
        Fetch any number of series, one batch at a time.

        Batches are sent sequentially with ``batch_delay`` seconds between
        them. A rate-limit signal stops the loop immediately. After
        ``max_consecutive_failures`` failed batches in a row the loop
        stops as well. Either way, everything fetched so far is returned
        together with the error that ended the fetch.

        Args:
            series_ids: BLS series IDs (duplicates are dropped)
            start_year: Start year
            end_year: End year
            annual_average: Ask for M13 annual averages

        Returns:
            SeriesFetchResult with observations and the terminating error, if any
        """
        unique_ids = list(dict.fromkeys(series_ids))
        batch_size = self.max_series_per_request
        batches = [
            unique_ids[i : i + batch_size]
            for i in range(0, len(unique_ids), batch_size)
        ]

        result = SeriesFetchResult(batches_total=len(batches))
        consecutive_failures = 0

        for batch_num, batch in enumerate(batches, 1):
            if batch_num > 1 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

            logger.info(
                f"Fetching batch {batch_num}/{len(batches)}: {len(batch)} series"
            )

            try:
                observations = await self.fetch_batch(
                    batch, start_year, end_year, annual_average=annual_average
                )
            except RateLimitError as e:
                result.error = e
                logger.error(
                    f"BLS rate limit hit at batch {batch_num}/{len(batches)}; "
                    f"keeping {len(result.observations)} series already fetched"
                )
                break
            except AuthenticationError as e:
                result.error = e
                logger.error(f"BLS batch {batch_num} failed permanently: {e}")
                break
            except APIError as e:
                consecutive_failures += 1
                result.batches_failed += 1
                logger.warning(
                    f"BLS batch {batch_num} failed "
                    f"({consecutive_failures}/{self.max_consecutive_failures} in a row): {e}"
                )
                if consecutive_failures >= self.max_consecutive_failures:
                    result.error = RetryableError(
                        message=(
                            f"Aborted after {consecutive_failures} consecutive "
                            f"batch failures: {e.message}"
                        ),
                        source=self.SOURCE_NAME,
                    )
                    logger.error(f"{result.error}")
                    break
                continue

            consecutive_failures = 0
            result.batches_ok += 1
            result.observations.update(observations)

        logger.info(
            f"BLS fetch finished: {len(result.observations)} series, "
            f"{result.batches_ok}/{result.batches_total} batches ok"
        )
        return result
