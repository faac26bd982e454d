"""
CES (Current Employment Statistics) fetcher for states and curated metros.

Measures: total nonfarm employment (thousands), average hourly and
weekly earnings and average weekly hours for all private employees.
"""
import logging
from typing import Dict, Optional, Tuple

from laborcompare.geo.fips import STATE_FIPS
from laborcompare.geo.metros import curated_metros
from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact
from laborcompare.sources.bls.client import BLSClient
from laborcompare.sources.bls.series import (
    CES_MEASURES,
    ces_metro_series_id,
    ces_state_series_id,
    collect_latest,
)

logger = logging.getLogger(__name__)

STATES_ARTIFACT = "bls-ces-states.json"
METROS_ARTIFACT = "bls-ces-metros.json"


def build_state_series() -> Dict[str, Tuple[str, str]]:
    return {
        ces_state_series_id(fips, measure): (fips, field_name)
        for fips in STATE_FIPS
        for measure, field_name in CES_MEASURES.items()
    }


def build_metro_series() -> Dict[str, Tuple[str, str]]:
    return {
        ces_metro_series_id(metro.state_fips, metro.cbsa, measure): (metro.cbsa, field_name)
        for metro in curated_metros()
        for measure, field_name in CES_MEASURES.items()
    }


class CESFetcher(BaseSourceFetcher):
    SOURCE_NAME = "bls_ces"
    ARTIFACTS = (STATES_ARTIFACT, METROS_ARTIFACT)
    REQUIRED = True

    def check_credentials(self) -> Optional[str]:
        self.settings.require_bls_api_key()
        return None

    async def fetch(self) -> FetchPayload:
        end_year = self.reference_year
        start_year = end_year - 1
        meta = {"start_year": start_year, "end_year": end_year}

        async with BLSClient.from_settings(
            self.settings, self.settings.bls_api_key, transport=self.transport
        ) as client:
            state_series = build_state_series()
            result = await client.fetch_series(list(state_series), start_year, end_year)
            states = collect_latest(result.observations, state_series)
            artifacts = [
                RawArtifact(STATES_ARTIFACT, states, len(states), dict(meta), complete=result.complete)
            ]
            if result.aborted:
                return FetchPayload(artifacts, error=result.error)

            metro_series = build_metro_series()
            result = await client.fetch_series(list(metro_series), start_year, end_year)
            metros = collect_latest(result.observations, metro_series)

        logger.info(f"CES: {len(states)} states, {len(metros)} metros with data")
        artifacts.append(
            RawArtifact(METROS_ARTIFACT, metros, len(metros), dict(meta), complete=result.complete)
        )
        return FetchPayload(artifacts, error=result.error)
