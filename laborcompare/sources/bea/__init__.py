"""
Bureau of Economic Analysis (BEA) regional income.

Per-capita personal income (CAINC1 line 3) for counties and states.

Data source: https://apps.bea.gov/api/data
API Key: REQUIRED (free registration at https://apps.bea.gov/api/signup/)
"""
from laborcompare.sources.bea.client import BEAClient
from laborcompare.sources.bea.ingest import BEA_ARTIFACT, BEAFetcher, latest_by_geo

__all__ = [
    "BEAClient",
    "BEAFetcher",
    "BEA_ARTIFACT",
    "latest_by_geo",
]
