"""
BEA API client with rate limiting and retry logic.

Official BEA API documentation:
https://apps.bea.gov/api/_pdf/bea_web_service_api_user_guide.pdf

Only the Regional dataset is used here (CAINC1, county and state
personal income).

Rate limits:
- 100 requests per minute per UserID
- 100 MB data volume per minute
- API key required (free registration)
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from laborcompare.core.api_errors import APIError, FatalError, PayloadError, RateLimitError
from laborcompare.core.api_registry import get_api_config
from laborcompare.core.http_client import BaseAPIClient, looks_rate_limited

logger = logging.getLogger(__name__)


class BEAClient(BaseAPIClient):
    """
    HTTP client for the BEA Regional dataset.

    Inherits retry logic, backoff, and error handling from BaseAPIClient.
    """

    SOURCE_NAME = "bea"
    BASE_URL = "https://apps.bea.gov/api/data"

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        max_backoff: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize BEA API client.

        Args:
            api_key: BEA API key (UserID) - required
            max_retries: Maximum attempts per request
            retry_delay: Base delay between attempts
            max_backoff: Upper bound on a single retry wait
            transport: Optional httpx transport
        """
        if not api_key:
            raise ValueError(
                "BEA_API_KEY is required. "
                "Get a free key at: https://apps.bea.gov/api/signup/"
            )

        config = get_api_config("bea")

        super().__init__(
            api_key=api_key,
            max_retries=max_retries,
            retry_delay=retry_delay,
            max_backoff=max_backoff,
            timeout=config.timeout_seconds,
            connect_timeout=config.connect_timeout_seconds,
            rate_limit_interval=config.get_rate_limit_interval(),
            transport=transport,
        )

    def _add_auth_to_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Add API key to request parameters."""
        params["UserID"] = self.api_key
        params["ResultFormat"] = "JSON"
        return params

    def _check_api_error(self, data: Any, resource_id: str) -> Optional[APIError]:
        """Check for BEA-specific API errors."""
        if not isinstance(data, dict) or "BEAAPI" not in data:
            return PayloadError(
                message=f"Unexpected BEA response for {resource_id}",
                source=self.SOURCE_NAME,
                response_data=data,
            )

        beaapi = data["BEAAPI"]
        error = beaapi.get("Error") or beaapi.get("Results", {}).get("Error")
        if not error:
            return None

        if isinstance(error, dict):
            error_msg = error.get("ErrorDetail", {}).get("Description") or error.get(
                "APIErrorDescription", str(error)
            )
        else:
            error_msg = str(error)

        logger.warning(f"BEA API error: {error_msg}")

        if looks_rate_limited(error_msg):
            return RateLimitError(
                message=f"BEA rate limit: {error_msg}",
                source=self.SOURCE_NAME,
                status_code=None,
                response_data=data,
            )

        return FatalError(
            message=f"BEA API error: {error_msg}",
            source=self.SOURCE_NAME,
            response_data=data,
        )

    async def get_regional_data(
        self,
        table_name: str,
        line_code: str = "1",
        geo_fips: str = "STATE",
        years: Iterable[int] = (),
    ) -> List[Dict[str, Any]]:
        """
        Fetch Regional Economic Accounts data rows.

        Args:
            table_name: Regional table name (e.g., "CAINC1")
            line_code: Line code for specific measure
            geo_fips: Geographic area - "STATE", "COUNTY", "MSA", or specific FIPS
            years: Years to retrieve (empty = "LAST5")

        Returns:
            The ``BEAAPI.Results.Data`` rows
        """
        year_param = ",".join(str(y) for y in years) or "LAST5"
        params = {
            "method": "GetData",
            "DataSetName": "Regional",
            "TableName": table_name,
            "LineCode": line_code,
            "GeoFips": geo_fips,
            "Year": year_param,
        }
        data = await self.get("", params=params, resource_id=f"Regional:{table_name}:{geo_fips}")

        rows = data["BEAAPI"].get("Results", {}).get("Data")
        if not isinstance(rows, list):
            raise PayloadError(
                message=f"No data rows in BEA response for {table_name} {geo_fips}",
                source=self.SOURCE_NAME,
                missing_fields=["Results.Data"],
            )
        return rows
