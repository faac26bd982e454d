"""
BLS (Bureau of Labor Statistics) source module.

Provides:
- LAUS (Local Area Unemployment Statistics) - states and counties
- CES (Current Employment Statistics) - states and curated metros
- CPI (Consumer Price Index) - national headline and categories
- JOLTS (Job Openings and Labor Turnover Survey) - national
- Employment Projections - national, per occupation (HTML)

API Key: required for LAUS and CES, optional for CPI and JOLTS
- Without key: 25 queries/day, 10 years per query, 25 series per query
- With key: 500 queries/day, 20 years per query, 50 series per query

Get a free API key at: https://data.bls.gov/registrationEngine/
"""

from laborcompare.sources.bls.client import BLSClient
from laborcompare.sources.bls.ces import CESFetcher
from laborcompare.sources.bls.cpi import CPI_ARTIFACT, CPIFetcher
from laborcompare.sources.bls.jolts import JOLTS_ARTIFACT, JOLTSFetcher
from laborcompare.sources.bls.laus import LAUSFetcher
from laborcompare.sources.bls.projections import (
    PROJECTIONS_ARTIFACT,
    ProjectionsFetcher,
    parse_projections_html,
)
from laborcompare.sources.bls.series import (
    CES_MEASURES,
    CPI_HEADLINE_SERIES,
    CPI_SERIES,
    JOLTS_SERIES,
    LAUS_COUNTY_MEASURES,
    LAUS_STATE_MEASURES,
    collect_latest,
    extract_latest_value,
    monthly_history,
    parse_series_payload,
)

__all__ = [
    "BLSClient",
    "CESFetcher",
    "CPIFetcher",
    "JOLTSFetcher",
    "LAUSFetcher",
    "ProjectionsFetcher",
    "CPI_ARTIFACT",
    "JOLTS_ARTIFACT",
    "PROJECTIONS_ARTIFACT",
    "CES_MEASURES",
    "CPI_HEADLINE_SERIES",
    "CPI_SERIES",
    "JOLTS_SERIES",
    "LAUS_COUNTY_MEASURES",
    "LAUS_STATE_MEASURES",
    "collect_latest",
    "extract_latest_value",
    "monthly_history",
    "parse_projections_html",
    "parse_series_payload",
]
