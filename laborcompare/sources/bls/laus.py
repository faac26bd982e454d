"""
LAUS (Local Area Unemployment Statistics) fetcher.

Pulls unemployment rate, employment, labor force (and, for states,
unemployment count) for all 51 states and every county.

County codes are not enumerated by the API, so the fetcher sends
candidate FIPS codes. When the Census ACS artifact is already on disk
its county list is used instead of the generated candidates, which
keeps the request count near the real ~3,200 counties.
"""
import logging
from typing import Dict, List, Optional, Tuple

from laborcompare.geo.fips import STATE_FIPS, county_candidates
from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact
from laborcompare.sources.bls.client import BLSClient
from laborcompare.sources.bls.series import (
    LAUS_COUNTY_MEASURES,
    LAUS_STATE_MEASURES,
    collect_latest,
    laus_county_series_id,
    laus_state_series_id,
)

logger = logging.getLogger(__name__)

STATES_ARTIFACT = "bls-laus-states.json"
COUNTIES_ARTIFACT = "bls-laus-counties.json"


def build_state_series() -> Dict[str, Tuple[str, str]]:
    return {
        laus_state_series_id(fips, measure): (fips, field_name)
        for fips in STATE_FIPS
        for measure, field_name in LAUS_STATE_MEASURES.items()
    }


def build_county_series(counties: List[str]) -> Dict[str, Tuple[str, str]]:
    return {
        laus_county_series_id(fips, measure): (fips, field_name)
        for fips in counties
        for measure, field_name in LAUS_COUNTY_MEASURES.items()
    }


class LAUSFetcher(BaseSourceFetcher):
    SOURCE_NAME = "bls_laus"
    ARTIFACTS = (STATES_ARTIFACT, COUNTIES_ARTIFACT)
    REQUIRED = True

    def check_credentials(self) -> Optional[str]:
        self.settings.require_bls_api_key()
        return None

    def county_list(self) -> List[str]:
        known = None
        if self.store.has_raw("census-acs.json"):
            census = self.store.read_raw("census-acs.json") or {}
            known = list((census.get("data") or {}).keys())
            logger.info(f"Using {len(known)} ACS counties as LAUS candidates")
        return county_candidates(known)

    async def fetch(self) -> FetchPayload:
        end_year = self.reference_year
        start_year = end_year - 1
        meta = {"start_year": start_year, "end_year": end_year}

        async with BLSClient.from_settings(
            self.settings, self.settings.bls_api_key, transport=self.transport
        ) as client:
            state_series = build_state_series()
            logger.info(f"LAUS states: {len(state_series)} series")
            result = await client.fetch_series(list(state_series), start_year, end_year)
            states = collect_latest(result.observations, state_series)
            artifacts = [
                RawArtifact(STATES_ARTIFACT, states, len(states), dict(meta), complete=result.complete)
            ]
            if result.aborted:
                return FetchPayload(artifacts, error=result.error)

            counties_requested = self.county_list()
            county_series = build_county_series(counties_requested)
            logger.info(
                f"LAUS counties: {len(counties_requested)} candidates, {len(county_series)} series"
            )
            result = await client.fetch_series(list(county_series), start_year, end_year)
            counties = collect_latest(result.observations, county_series)

        logger.info(
            f"LAUS: {len(states)} states, {len(counties)} of "
            f"{len(counties_requested)} candidate counties returned data"
        )
        county_meta = {**meta, "candidates": len(counties_requested)}
        artifacts.append(
            RawArtifact(COUNTIES_ARTIFACT, counties, len(counties), county_meta, complete=result.complete)
        )
        return FetchPayload(artifacts, error=result.error)
