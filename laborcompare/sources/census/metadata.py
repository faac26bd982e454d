"""
ACS variable definitions and county record derivation.

Detail-table variables come from ``acs/acs5``; the median earnings
subject variable comes from ``acs/acs5/subject``, which is not always
published at county level.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from laborcompare.core.numeric import parse_census_number, pct, round_or_none

logger = logging.getLogger(__name__)

DETAIL_VARIABLES: Dict[str, str] = {
    "B19013_001E": "Median household income",
    "B19301_001E": "Per capita income",
    "B25077_001E": "Median home value",
    "B25064_001E": "Median gross rent",
    "B01003_001E": "Total population",
    "B17001_002E": "Income below poverty level",
    "B17001_001E": "Poverty status universe",
    "B23025_003E": "Civilian labor force",
    "B23025_005E": "Civilian unemployed",
    "B01002_001E": "Median age",
    "B15003_001E": "Education universe (25+)",
    "B15003_017E": "Regular high school diploma",
    "B15003_018E": "GED or alternative credential",
    "B15003_019E": "Some college, less than 1 year",
    "B15003_020E": "Some college, 1 or more years",
    "B15003_021E": "Associate's degree",
    "B15003_022E": "Bachelor's degree",
    "B15003_023E": "Master's degree",
    "B15003_024E": "Professional school degree",
    "B15003_025E": "Doctorate degree",
    "B19083_001E": "Gini index",
    "B25003_001E": "Occupied housing units",
    "B25003_002E": "Owner-occupied housing units",
    "B25002_001E": "Total housing units",
    "B25002_003E": "Vacant housing units",
}

SUBJECT_VARIABLES: Dict[str, str] = {
    "S2401_C01_001E": "Median earnings, civilian employed 16+",
}

BACHELORS_PLUS = ("B15003_022E", "B15003_023E", "B15003_024E", "B15003_025E")
HIGH_SCHOOL_PLUS = (
    "B15003_017E",
    "B15003_018E",
    "B15003_019E",
    "B15003_020E",
    "B15003_021E",
) + BACHELORS_PLUS

# output field -> detail variable, copied through unchanged
DIRECT_FIELDS = {
    "median_household_income": "B19013_001E",
    "per_capita_income": "B19301_001E",
    "median_home_value": "B25077_001E",
    "median_rent": "B25064_001E",
    "population": "B01003_001E",
    "labor_force": "B23025_003E",
    "unemployed": "B23025_005E",
    "median_age": "B01002_001E",
}


def county_fips(row: Mapping[str, Any]) -> str:
    return f"{str(row.get('state', '')).zfill(2)}{str(row.get('county', '')).zfill(3)}"


def _share(row: Mapping[str, Any], parts: Iterable[str], universe: str) -> Optional[float]:
    total = parse_census_number(row.get(universe))
    if not total:
        return None
    count = sum(parse_census_number(row.get(v)) or 0 for v in parts)
    return pct(count, total)


def build_county(row: Mapping[str, Any], subject: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Derive one county's ACS metrics from a detail row and optional subject row.

    Rates are percentages rounded to one decimal; Gini to three.
    """
    subject = subject or {}
    record: Dict[str, Any] = {
        "name": str(row.get("NAME") or "").strip(),
        "state_fips": str(row.get("state", "")).zfill(2),
        "county_fips": str(row.get("county", "")).zfill(3),
    }
    for field_name, variable in DIRECT_FIELDS.items():
        record[field_name] = parse_census_number(row.get(variable))

    record["median_earnings"] = parse_census_number(subject.get("S2401_C01_001E"))
    record["poverty_rate"] = pct(
        parse_census_number(row.get("B17001_002E")),
        parse_census_number(row.get("B17001_001E")),
    )
    record["bachelors_or_higher_pct"] = _share(row, BACHELORS_PLUS, "B15003_001E")
    record["hs_diploma_or_higher_pct"] = _share(row, HIGH_SCHOOL_PLUS, "B15003_001E")
    record["gini_index"] = round_or_none(parse_census_number(row.get("B19083_001E")), 3)
    record["homeownership_rate"] = pct(
        parse_census_number(row.get("B25003_002E")),
        parse_census_number(row.get("B25003_001E")),
    )
    record["vacancy_rate"] = pct(
        parse_census_number(row.get("B25002_003E")),
        parse_census_number(row.get("B25002_001E")),
    )
    return record


def build_counties(
    detail_rows: List[Mapping[str, Any]],
    subject_rows: List[Mapping[str, Any]],
) -> Dict[str, Dict[str, Any]]:
    """Join detail and subject rows by county FIPS; keyed and sorted by FIPS."""
    subject_by_fips = {county_fips(row): row for row in subject_rows}
    counties = {}
    for row in detail_rows:
        fips = county_fips(row)
        if len(fips) != 5 or not fips.isdigit():
            logger.warning(f"Skipping ACS row with malformed geography: {fips!r}")
            continue
        counties[fips] = build_county(row, subject_by_fips.get(fips))
    return dict(sorted(counties.items()))
