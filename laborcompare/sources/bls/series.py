"""
BLS series identifiers and observation helpers.

Series ID layouts used here:

- LAUS state:   LASST + state(2) + 00000000000 + measure(2)
- LAUS county:  LAUCN + county(5) + 00000000 + measure(2)
- CES state:    SMS/SMU + state(2) + 00000 + industry(8) + datatype(2)
- CES metro:    SMU + state(2) + cbsa(5) + industry(8) + datatype(2)
- CPI:          fixed national series (CUSR/CUUR)
- JOLTS:        fixed national series (JTS...)
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from laborcompare.core.api_errors import PayloadError
from laborcompare.core.models import SeriesObservation
from laborcompare.core.numeric import is_sentinel, parse_number

logger = logging.getLogger(__name__)

# LAUS measure code -> field name
LAUS_STATE_MEASURES: Dict[str, str] = {
    "03": "unemployment_rate",
    "04": "unemployment_count",
    "05": "employment",
    "06": "labor_force",
}

LAUS_COUNTY_MEASURES: Dict[str, str] = {
    "03": "unemployment_rate",
    "05": "employment",
    "06": "labor_force",
}

# CES industry(8) + datatype(2) -> field name
CES_MEASURES: Dict[str, str] = {
    "0000000001": "total_nonfarm_employment",
    "0500000003": "avg_hourly_earnings",
    "0500000011": "avg_weekly_earnings",
    "0500000002": "avg_weekly_hours",
}

# Total nonfarm is published seasonally adjusted; private earnings and
# hours at state level only come not seasonally adjusted.
CES_SEASONAL_PREFIX: Dict[str, str] = {
    "0000000001": "SMS",
}

CPI_SERIES: Dict[str, str] = {
    "CUSR0000SA0": "All Items",
    "CUSR0000SAF1": "Food",
    "CUSR0000SAH1": "Shelter",
    "CUSR0000SEHF01": "Energy",
    "CUSR0000SAM": "Medical Care",
    "CUSR0000SAT1": "Transportation",
    "CUSR0000SAA": "Apparel",
    "CUSR0000SAE": "Education & Communication",
    "CUSR0000SAR": "Recreation",
    "CUUR0000SA0": "All Items (NSA)",
}

CPI_HEADLINE_SERIES = "CUSR0000SA0"

JOLTS_SERIES: Dict[str, str] = {
    "JTS000000000000000JOL": "openings",
    "JTS000000000000000HIL": "hires",
    "JTS000000000000000QUL": "quits",
    "JTS000000000000000TSL": "separations",
}


def laus_state_series_id(state_fips: str, measure: str) -> str:
    return f"LASST{state_fips}00000000000{measure}"


def laus_county_series_id(county_fips: str, measure: str) -> str:
    return f"LAUCN{county_fips}00000000{measure}"


def ces_state_series_id(state_fips: str, measure: str) -> str:
    prefix = CES_SEASONAL_PREFIX.get(measure, "SMU")
    return f"{prefix}{state_fips}00000{measure}"


def ces_metro_series_id(state_fips: str, cbsa: str, measure: str) -> str:
    return f"SMU{state_fips}{cbsa}{measure}"


def parse_observation(series_id: str, record: Dict[str, Any]) -> SeriesObservation:
    """
    Convert one BLS data point into a SeriesObservation.

    Raises:
        PayloadError: If year or period is missing or malformed
    """
    try:
        year = int(record["year"])
        period = str(record["period"])
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadError(
            message=f"Malformed observation for {series_id}: {e}",
            source="bls",
            response_data=record,
        )
    raw_value = record.get("value")
    return SeriesObservation(
        series_id=series_id,
        year=year,
        period=period,
        value=parse_number(raw_value),
        sentinel=is_sentinel(raw_value),
    )


def parse_series_payload(series_data: Dict[str, Any]) -> Tuple[Optional[str], List[SeriesObservation]]:
    """
    Parse one entry of ``Results.series``.

    Malformed observations are skipped and logged; the rest of the
    series is kept.
    """
    series_id = series_data.get("seriesID")
    observations: List[SeriesObservation] = []
    if not series_id:
        logger.warning("BLS series entry without seriesID skipped")
        return None, observations

    for record in series_data.get("data") or []:
        try:
            observations.append(parse_observation(series_id, record))
        except PayloadError as e:
            logger.warning(f"Skipping observation: {e}")
    return series_id, observations


def extract_latest_value(observations: Iterable[SeriesObservation]) -> Optional[float]:
    """
    One value per series.

    Prefers the annual average (M13) of the latest year that has one,
    otherwise the most recent monthly observation with a real value.
    Returns None, never 0, when nothing usable exists.
    """
    valid = [obs for obs in observations if obs.value is not None]

    annual = [obs for obs in valid if obs.is_annual_average]
    if annual:
        return max(annual, key=lambda obs: obs.year).value

    monthly = [obs for obs in valid if obs.month is not None]
    if not monthly:
        return None
    return max(monthly, key=lambda obs: (obs.year, obs.month)).value


def monthly_history(observations: Iterable[SeriesObservation]) -> List[Dict[str, Any]]:
    """Chronological monthly points, annual averages and gaps dropped."""
    points = [
        {"year": obs.year, "month": obs.month, "value": obs.value}
        for obs in observations
        if obs.month is not None and obs.value is not None
    ]
    points.sort(key=lambda p: (p["year"], p["month"]))
    return points


def collect_latest(
    observations: Dict[str, List[SeriesObservation]],
    id_map: Dict[str, Tuple[str, str]],
) -> Dict[str, Dict[str, float]]:
    """
    Fold series values into per-geography records.

    Args:
        observations: series_id -> observations, as fetched
        id_map: series_id -> (geo key, field name)

    Returns:
        geo key -> {field: value}, only geographies with at least one value
    """
    records: Dict[str, Dict[str, float]] = {}
    for series_id, (geo_key, field_name) in id_map.items():
        value = extract_latest_value(observations.get(series_id, []))
        if value is None:
            continue
        records.setdefault(geo_key, {})[field_name] = value
    return {key: dict(sorted(fields.items())) for key, fields in sorted(records.items())}
