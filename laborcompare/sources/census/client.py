"""
Census API client with rate limiting and retry logic.

This module handles all HTTP communication with the Census data API.
Responses are JSON arrays: the first row holds the headers, the rest
hold one geography each.
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from laborcompare.core.api_errors import APIError, PayloadError
from laborcompare.core.api_registry import get_api_config
from laborcompare.core.http_client import BaseAPIClient

logger = logging.getLogger(__name__)


class CensusClient(BaseAPIClient):
    """
    HTTP client for the Census data API.

    Responsibilities:
    - Build Census API URLs
    - Make HTTP requests with retry/backoff (inherited)
    - Turn header-row responses into dictionaries
    """

    SOURCE_NAME = "census"
    BASE_URL = "https://api.census.gov/data"

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        max_backoff: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Census API client.

        Args:
            api_key: Census API key
            max_retries: Maximum attempts per request
            retry_delay: Base delay between attempts
            max_backoff: Upper bound on a single retry wait
            transport: Optional httpx transport
        """
        config = get_api_config("census")
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
        if self.api_key:
            params["key"] = self.api_key
        return params

    def _check_api_error(self, data: Any, resource_id: str) -> Optional[APIError]:
        if not isinstance(data, list):
            return PayloadError(
                message=f"Census response for {resource_id} is not a table",
                source=self.SOURCE_NAME,
                response_data=data,
            )
        return None

    def dataset_url(self, survey: str, year: int) -> str:
        """
        Example:
            https://api.census.gov/data/2023/acs/acs5
            https://api.census.gov/data/2023/acs/acs5/subject
        """
        return f"{self.BASE_URL}/{year}/acs/{survey}"

    @staticmethod
    def build_data_params(
        variables: List[str],
        geo_level: str,
        geo_filter: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        """
        Build query parameters for a data request (key excluded).

        Args:
            variables: List of variable names to fetch
            geo_level: Geographic level (state, county, ...)
            geo_filter: Optional parent geography (e.g., {"state": "*"})
        """
        params = {
            "get": ",".join(["NAME"] + [v for v in variables if v != "NAME"]),
            "for": f"{geo_level}:*",
        }
        if geo_filter:
            params["in"] = " ".join(f"{key}:{value}" for key, value in geo_filter.items())
        return params

    def build_data_url(
        self,
        survey: str,
        year: int,
        variables: List[str],
        geo_level: str,
        geo_filter: Optional[Dict[str, str]] = None,
        redact: bool = False,
    ) -> str:
        """
        Build the full data URL.

        Example:
            https://api.census.gov/data/2023/acs/acs5?get=NAME,B01003_001E&for=county:*&in=state:*&key=...
        """
        params = self.build_data_params(variables, geo_level, geo_filter)
        if self.api_key:
            params["key"] = "***" if redact else self.api_key
        return f"{self.dataset_url(survey, year)}?{urlencode(params)}"

    @staticmethod
    def rows_to_records(data: List[List[Any]]) -> List[Dict[str, Any]]:
        """Convert a header-row table into dictionaries."""
        if not data or len(data) < 2:
            return []

        headers = data[0]
        result = []
        for row in data[1:]:
            record = {}
            for i, header in enumerate(headers):
                record[header] = row[i] if i < len(row) else None
            result.append(record)
        return result

    async def fetch_acs_data(
        self,
        survey: str,
        year: int,
        variables: List[str],
        geo_level: str,
        geo_filter: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch ACS data for specified variables and geography.

        Returns:
            List of data records as dictionaries
        """
        logger.info(
            f"Fetching {self.build_data_url(survey, year, variables, geo_level, geo_filter, redact=True)}"
        )
        data = await self.get(
            self.dataset_url(survey, year),
            params=self.build_data_params(variables, geo_level, geo_filter),
            resource_id=f"{year}/{survey}:{geo_level}",
        )
        return self.rows_to_records(data)
