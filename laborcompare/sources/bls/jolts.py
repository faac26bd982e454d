"""
JOLTS (Job Openings and Labor Turnover Survey) fetcher.

National levels, in thousands: job openings, hires, quits and total
separations. Optional source.
"""
import logging
from typing import Optional

from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact
from laborcompare.sources.bls.client import BLSClient
from laborcompare.sources.bls.series import JOLTS_SERIES, monthly_history

logger = logging.getLogger(__name__)

JOLTS_ARTIFACT = "bls-jolts.json"
HISTORY_YEARS = 5


class JOLTSFetcher(BaseSourceFetcher):
    SOURCE_NAME = "bls_jolts"
    ARTIFACTS = (JOLTS_ARTIFACT,)
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
                list(JOLTS_SERIES), start_year, end_year, annual_average=False
            )

        measures = {}
        for series_id, measure in JOLTS_SERIES.items():
            points = monthly_history(result.series(series_id))
            if points:
                measures[measure] = {"series_id": series_id, "data": points}

        meta = {"start_year": start_year, "end_year": end_year}
        return FetchPayload(
            [RawArtifact(JOLTS_ARTIFACT, measures, len(measures), meta, complete=result.complete)],
            error=result.error,
        )
