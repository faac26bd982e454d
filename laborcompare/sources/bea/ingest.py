"""
BEA per-capita personal income ingestion.

Table CAINC1, line 3, for every county and state. BEA lags one to two
years, so the last four years are requested and, per geography, the
most recent year with a real value wins.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from laborcompare.core.numeric import is_sentinel, parse_number
from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact
from laborcompare.sources.bea.client import BEAClient

logger = logging.getLogger(__name__)

BEA_ARTIFACT = "bea-income.json"
INCOME_TABLE = "CAINC1"
PER_CAPITA_LINE = "3"
YEARS_BACK = 3


def latest_by_geo(rows: Iterable[Dict[str, Any]], states: bool = False) -> Dict[str, Dict[str, Any]]:
    """
    Reduce BEA rows to the most recent valid value per geography.

    County rows are keyed by their 5-digit GeoFips; state rows (``SS000``)
    by the 2-digit state code. The national ``00000`` row is dropped.
    """
    def year_of(row: Dict[str, Any]) -> int:
        try:
            return int(str(row.get("TimePeriod", ""))[:4])
        except ValueError:
            return 0

    result: Dict[str, Dict[str, Any]] = {}
    for row in sorted(rows, key=year_of, reverse=True):
        geo = str(row.get("GeoFips", "")).strip()
        if len(geo) != 5 or not geo.isdigit() or geo == "00000":
            continue
        if states:
            if not geo.endswith("000"):
                continue
            key = geo[:2]
        else:
            if geo.endswith("000"):
                continue
            key = geo
        if key in result:
            continue

        raw = row.get("DataValue")
        if is_sentinel(raw):
            continue
        value = parse_number(raw)
        if value is None:
            continue

        result[key] = {
            "per_capita_income": value,
            "geo_name": str(row.get("GeoName", "")).strip(),
            "year": year_of(row),
        }

    return dict(sorted(result.items()))


class BEAFetcher(BaseSourceFetcher):
    SOURCE_NAME = "bea"
    ARTIFACTS = (BEA_ARTIFACT,)
    REQUIRED = True

    def check_credentials(self) -> Optional[str]:
        self.settings.require_bea_api_key()
        return None

    def years(self) -> List[int]:
        end = self.reference_year
        return list(range(end - YEARS_BACK, end + 1))

    async def fetch(self) -> FetchPayload:
        years = self.years()
        async with BEAClient(
            api_key=self.settings.require_bea_api_key(),
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            max_backoff=self.settings.max_backoff,
            transport=self.transport,
        ) as client:
            county_rows = await client.get_regional_data(
                INCOME_TABLE, PER_CAPITA_LINE, "COUNTY", years
            )
            logger.info(f"Received {len(county_rows)} BEA county rows")
            state_rows = await client.get_regional_data(
                INCOME_TABLE, PER_CAPITA_LINE, "STATE", years
            )
            logger.info(f"Received {len(state_rows)} BEA state rows")

        counties = latest_by_geo(county_rows)
        states = latest_by_geo(state_rows, states=True)
        logger.info(f"BEA income: {len(counties)} counties, {len(states)} states with values")

        data = {"counties": counties, "states": states}
        meta = {"table": INCOME_TABLE, "line_code": PER_CAPITA_LINE, "years": years}
        return FetchPayload(
            [RawArtifact(BEA_ARTIFACT, data, len(counties) + len(states), meta)]
        )
