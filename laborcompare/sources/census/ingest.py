"""
Census ACS 5-year county ingestion.

One request for the detail tables and one for the subject table, both
for every county in every state. The subject table is optional: if it
fails, median earnings are simply absent.
"""
import logging
from typing import Any, Dict, List, Optional

from laborcompare.core.api_errors import APIError, RateLimitError
from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact
from laborcompare.sources.census.client import CensusClient
from laborcompare.sources.census.metadata import DETAIL_VARIABLES, SUBJECT_VARIABLES, build_counties

logger = logging.getLogger(__name__)

CENSUS_ARTIFACT = "census-acs.json"
ALL_STATES = {"state": "*"}


class CensusACSFetcher(BaseSourceFetcher):
    SOURCE_NAME = "census_acs"
    ARTIFACTS = (CENSUS_ARTIFACT,)
    REQUIRED = True

    def check_credentials(self) -> Optional[str]:
        self.settings.require_census_api_key()
        return None

    async def fetch_subject(self, client: CensusClient, year: int) -> List[Dict[str, Any]]:
        try:
            rows = await client.fetch_acs_data(
                "acs5/subject", year, list(SUBJECT_VARIABLES), "county", ALL_STATES
            )
        except RateLimitError:
            raise
        except APIError as e:
            logger.warning(f"ACS subject table unavailable, median earnings will be absent: {e}")
            return []
        logger.info(f"Received {len(rows)} county rows from ACS subject tables")
        return rows

    async def fetch(self) -> FetchPayload:
        year = self.settings.acs_year
        async with CensusClient(
            api_key=self.settings.require_census_api_key(),
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            max_backoff=self.settings.max_backoff,
            transport=self.transport,
        ) as client:
            detail_rows = await client.fetch_acs_data(
                "acs5", year, list(DETAIL_VARIABLES), "county", ALL_STATES
            )
            logger.info(f"Received {len(detail_rows)} county rows from ACS detail tables")
            subject_rows = await self.fetch_subject(client, year)

        counties = build_counties(detail_rows, subject_rows)
        meta = {"acs_year": year, "survey": "acs5", "subject_rows": len(subject_rows)}
        return FetchPayload([RawArtifact(CENSUS_ARTIFACT, counties, len(counties), meta)])
