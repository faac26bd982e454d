"""
U.S. Census Bureau American Community Survey (ACS) 5-year estimates.

County income, housing, population, poverty, education and labor force.

Data source: https://api.census.gov/data
API Key: REQUIRED (https://api.census.gov/data/key_signup.html)
"""
from laborcompare.sources.census.client import CensusClient
from laborcompare.sources.census.ingest import CENSUS_ARTIFACT, CensusACSFetcher
from laborcompare.sources.census.metadata import (
    DETAIL_VARIABLES,
    SUBJECT_VARIABLES,
    build_counties,
    build_county,
)

__all__ = [
    "CensusClient",
    "CensusACSFetcher",
    "CENSUS_ARTIFACT",
    "DETAIL_VARIABLES",
    "SUBJECT_VARIABLES",
    "build_counties",
    "build_county",
]
