"""
CPI (Consumer Price Index) fetcher.

Optional source: without a BLS key the stage is skipped and the price
pages fall back to whatever was published last.
"""
import logging
from typing import Optional

from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact
from laborcompare.sources.bls.client import BLSClient
from laborcompare.sources.bls.series import CPI_SERIES, monthly_history

logger = logging.getLogger(__name__)

CPI_ARTIFACT = "bls-cpi.json"
HISTORY_YEARS = 5


class CPIFetcher(BaseSourceFetcher):
    SOURCE_NAME = "bls_cpi"
    ARTIFACTS = (CPI_ARTIFACT,)
    REQUIRED = False

    def check_credentials(self) -> Optional[str]:
        if not self.settings.get_bls_api_key():
            return "BLS_API_KEY not set"
        return None

    async def fetch(self) -> FetchPayload:
        end_year = self.reference_year
        start_year = end_year - (HISTORY_YEARS - 1)

        async with BLSClient.from_settings(
            self.settings, self.settings.bls_api_key, transport=self.transport
        ) as client:
            result = await client.fetch_series(
                list(CPI_SERIES), start_year, end_year, annual_average=False
            )

        series = {}
        for series_id, name in CPI_SERIES.items():
            points = monthly_history(result.series(series_id))
            if points:
                series[series_id] = {"name": name, "data": points}
            else:
                logger.warning(f"CPI series {series_id} ({name}) returned no data")

        meta = {"start_year": start_year, "end_year": end_year}
        return FetchPayload(
            [RawArtifact(CPI_ARTIFACT, series, len(series), meta, complete=result.complete)],
            error=result.error,
        )
