"""
Centralized upstream source registry.

Consolidates per-source settings in one place:
- Base URLs
- Per-call limits and pacing
- Where to get a key, for the sources that take one

Clients and the orchestrator read from here instead of hardcoding.
"""

from dataclasses import dataclass
from typing import Optional, Dict


@dataclass
class APIConfig:
    """Configuration for a single upstream source."""

    source_name: str
    base_url: str
    signup_url: str = ""

    # Pacing
    rate_limit_per_minute: Optional[int] = None
    rate_limit_interval: Optional[float] = None  # Seconds between requests

    # Request settings
    timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 15.0

    notes: Optional[str] = None

    def get_rate_limit_interval(self) -> Optional[float]:
        """Calculate rate limit interval from per-minute limit."""
        if self.rate_limit_interval is not None:
            return self.rate_limit_interval
        if self.rate_limit_per_minute is not None:
            return 60.0 / self.rate_limit_per_minute
        return None


API_REGISTRY: Dict[str, APIConfig] = {
    "bls": APIConfig(
        source_name="bls",
        base_url="https://api.bls.gov/publicAPI/v2/timeseries/data/",
        signup_url="https://data.bls.gov/registrationEngine/",
        notes="With key: 500 queries/day, 50 series, 20 years. Without: 25/day, 25 series.",
    ),
    "bea": APIConfig(
        source_name="bea",
        base_url="https://apps.bea.gov/api/data",
        signup_url="https://apps.bea.gov/api/signup/",
        rate_limit_per_minute=100,
        notes="100 req/min, 100 MB/min limit",
    ),
    "census": APIConfig(
        source_name="census",
        base_url="https://api.census.gov/data",
        signup_url="https://api.census.gov/data/key_signup.html",
        rate_limit_interval=0.2,
        timeout_seconds=120.0,
        notes="County-wide ACS pulls are large; allow a long timeout",
    ),
    "oews": APIConfig(
        source_name="oews",
        base_url="https://www.bls.gov/oes/special-requests",
        rate_limit_interval=2.0,
        timeout_seconds=180.0,
        notes="Bulk ZIP downloads. BLS blocks requests without a browser-like User-Agent.",
    ),
    "projections": APIConfig(
        source_name="projections",
        base_url="https://data.bls.gov/projections",
        rate_limit_interval=2.0,
        notes="HTML table scrape of the occupation projections page.",
    ),
}


def get_api_config(source: str) -> APIConfig:
    """
    Get configuration for a source.

    Args:
        source: Source name (e.g., 'bls', 'bea')

    Returns:
        APIConfig for the source

    Raises:
        KeyError: If source is not registered
    """
    if source not in API_REGISTRY:
        available = ", ".join(sorted(API_REGISTRY.keys()))
        raise KeyError(f"Unknown source: {source}. Available: {available}")
    return API_REGISTRY[source]
