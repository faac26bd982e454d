"""
State and county FIPS reference data.

Covers the 50 states plus the District of Columbia. County discovery
uses generated candidate codes: county FIPS codes are mostly odd
numbers, with even-numbered ranges for Virginia's independent cities,
Alaska's boroughs and census areas, and a handful of other states.
"""
from typing import Dict, Iterable, List, Optional, Tuple

# state FIPS -> (name, postal abbreviation)
STATES: Dict[str, Tuple[str, str]] = {
    "01": ("Alabama", "AL"),
    "02": ("Alaska", "AK"),
    "04": ("Arizona", "AZ"),
    "05": ("Arkansas", "AR"),
    "06": ("California", "CA"),
    "08": ("Colorado", "CO"),
    "09": ("Connecticut", "CT"),
    "10": ("Delaware", "DE"),
    "11": ("District of Columbia", "DC"),
    "12": ("Florida", "FL"),
    "13": ("Georgia", "GA"),
    "15": ("Hawaii", "HI"),
    "16": ("Idaho", "ID"),
    "17": ("Illinois", "IL"),
    "18": ("Indiana", "IN"),
    "19": ("Iowa", "IA"),
    "20": ("Kansas", "KS"),
    "21": ("Kentucky", "KY"),
    "22": ("Louisiana", "LA"),
    "23": ("Maine", "ME"),
    "24": ("Maryland", "MD"),
    "25": ("Massachusetts", "MA"),
    "26": ("Michigan", "MI"),
    "27": ("Minnesota", "MN"),
    "28": ("Mississippi", "MS"),
    "29": ("Missouri", "MO"),
    "30": ("Montana", "MT"),
    "31": ("Nebraska", "NE"),
    "32": ("Nevada", "NV"),
    "33": ("New Hampshire", "NH"),
    "34": ("New Jersey", "NJ"),
    "35": ("New Mexico", "NM"),
    "36": ("New York", "NY"),
    "37": ("North Carolina", "NC"),
    "38": ("North Dakota", "ND"),
    "39": ("Ohio", "OH"),
    "40": ("Oklahoma", "OK"),
    "41": ("Oregon", "OR"),
    "42": ("Pennsylvania", "PA"),
    "44": ("Rhode Island", "RI"),
    "45": ("South Carolina", "SC"),
    "46": ("South Dakota", "SD"),
    "47": ("Tennessee", "TN"),
    "48": ("Texas", "TX"),
    "49": ("Utah", "UT"),
    "50": ("Vermont", "VT"),
    "51": ("Virginia", "VA"),
    "53": ("Washington", "WA"),
    "54": ("West Virginia", "WV"),
    "55": ("Wisconsin", "WI"),
    "56": ("Wyoming", "WY"),
}

STATE_FIPS: List[str] = sorted(STATES)

VIRGINIA = "51"
CONNECTICUT = "09"

# States with even-numbered county equivalents below 510
EVEN_COUNTY_STATES = frozenset({"02", "15", "22", "25", "29"})

DEFAULT_MAX_COUNTY = 510
VIRGINIA_MAX_COUNTY = 840


def state_name(fips: str) -> Optional[str]:
    entry = STATES.get(fips)
    return entry[0] if entry else None


def state_abbr(fips: str) -> Optional[str]:
    entry = STATES.get(fips)
    return entry[1] if entry else None


def state_slug(fips: str) -> str:
    """File-name slug, e.g. '06' -> 'california', '11' -> 'district-of-columbia'."""
    return "-".join(STATES[fips][0].lower().split())


def county_candidates_for_state(state_fips: str) -> List[str]:
    """
    Plausible 5-digit county FIPS codes for one state.

    Over-generates on purpose: invalid codes cost one slot in a batch
    and come back empty, while a missing candidate silently drops a
    real county.
    """
    max_county = VIRGINIA_MAX_COUNTY if state_fips == VIRGINIA else DEFAULT_MAX_COUNTY
    codes = set()

    for county in range(1, max_county, 2):
        codes.add(f"{state_fips}{county:03d}")

    if state_fips == VIRGINIA:
        for county in range(510, VIRGINIA_MAX_COUNTY + 1, 2):
            codes.add(f"{state_fips}{county:03d}")

    if state_fips in EVEN_COUNTY_STATES:
        for county in range(2, DEFAULT_MAX_COUNTY + 1, 2):
            codes.add(f"{state_fips}{county:03d}")

    if state_fips == CONNECTICUT:
        for county in range(110, 200, 10):
            codes.add(f"{state_fips}{county:03d}")

    return sorted(codes)


def county_candidates(known_counties: Optional[Iterable[str]] = None) -> List[str]:
    """
    County FIPS codes to request from LAUS.

    When an authoritative county list is available (the ACS artifact),
    use it plus the Connecticut legacy codes; otherwise generate
    candidates for every state.
    """
    if known_counties:
        from laborcompare.geo.resolver import CT_LEGACY_TO_REGION

        codes = {c for c in known_counties if len(c) == 5 and c[:2] in STATES}
        codes.update(CT_LEGACY_TO_REGION)
        return sorted(codes)

    codes: List[str] = []
    for state_fips in STATE_FIPS:
        codes.extend(county_candidates_for_state(state_fips))
    return sorted(set(codes))
