"""
Geographic reference data and identifier resolution.
"""

from laborcompare.geo.fips import (
    STATES,
    STATE_FIPS,
    state_name,
    state_abbr,
    state_slug,
    county_candidates,
)
from laborcompare.geo.metros import CURATED_METROS, Metro, curated_metros
from laborcompare.geo.resolver import (
    CT_NO_LEGACY_COUNTERPART,
    CT_LEGACY_TO_REGION,
    CT_REGION_TO_LEGACY,
    GeoResolver,
    GeoResolutionError,
    GeoScheme,
    GeoKind,
    GeographicEntity,
    NATION,
)

__all__ = [
    "STATES",
    "STATE_FIPS",
    "state_name",
    "state_abbr",
    "state_slug",
    "county_candidates",
    "CURATED_METROS",
    "Metro",
    "curated_metros",
    "CT_NO_LEGACY_COUNTERPART",
    "CT_LEGACY_TO_REGION",
    "CT_REGION_TO_LEGACY",
    "GeoResolver",
    "GeoResolutionError",
    "GeoScheme",
    "GeoKind",
    "GeographicEntity",
    "NATION",
]
