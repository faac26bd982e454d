"""
Pytest configuration and shared fixtures.
"""
import pytest

from laborcompare.core.api_registry import API_REGISTRY
from laborcompare.core.cache import RunCache
from laborcompare.core.config import Settings, reset_settings
from laborcompare.core.storage import ArtifactStore

from helpers import write_raw


@pytest.fixture(scope="function")
def clean_env(monkeypatch):
    """
    Clean environment for testing.

    Removes all pipeline-related env vars to ensure clean state.
    """
    env_vars = [
        "BLS_API_KEY",
        "BEA_API_KEY",
        "CENSUS_API_KEY",
        "DATA_DIR",
        "TARGET_YEAR",
        "OEWS_YEAR",
        "OEWS_FORCE",
        "ACS_YEAR",
        "LOG_LEVEL",
        "RUN_INTEGRATION_TESTS",
        "MAX_RETRIES",
        "RETRY_DELAY",
        "MAX_BACKOFF",
        "BLS_BATCH_DELAY",
        "MAX_CONSECUTIVE_FAILURES",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)

    # Reset settings singleton
    reset_settings()

    yield

    # Reset again after test
    reset_settings()


@pytest.fixture
def data_dir(tmp_path):
    """Temporary data directory with an empty raw/ folder."""
    (tmp_path / "raw").mkdir()
    return tmp_path


@pytest.fixture
def store(data_dir):
    return ArtifactStore(data_dir, cache=RunCache("test"))


@pytest.fixture
def settings(clean_env, data_dir):
    """Settings with test keys and no sleeping between attempts or batches."""
    return Settings(
        _env_file=None,
        bls_api_key="test-bls-key",
        bea_api_key="test-bea-key",
        census_api_key="test-census-key",
        data_dir=data_dir,
        target_year=2025,
        retry_delay=0.0,
        bls_batch_delay=0.0,
        max_retries=3,
    )


@pytest.fixture
def no_pacing(monkeypatch):
    """Drop the per-source request spacing so fetcher tests do not sleep."""
    for config in API_REGISTRY.values():
        monkeypatch.setattr(config, "rate_limit_interval", None)
        monkeypatch.setattr(config, "rate_limit_per_minute", None)


@pytest.fixture
def raw_geography(store):
    """
    Raw artifacts for a small two-state world: Connecticut and Delaware.

    Connecticut counties arrive as planning regions from ACS and as legacy
    county codes from LAUS and BEA.
    One Connecticut region has no population, so its income stays out of
    the state's weighted median household income.
    """
    acs = {
        "09110": {
            "name": "Capitol Planning Region, Connecticut", "population": 100.0,
            "median_household_income": 50000.0, "labor_force": 60.0, "unemployed": 3.0,
            "per_capita_income": 30000.0,
        },
        "09130": {
            "name": "Lower Connecticut River Valley Planning Region, Connecticut", "population": None,
            "median_household_income": 70000.0, "labor_force": 40.0, "unemployed": 2.0,
            "per_capita_income": 41000.0,
        },
        "09190": {
            "name": "Western Connecticut Planning Region, Connecticut", "population": 200.0,
            "median_household_income": 60000.0, "labor_force": 120.0, "unemployed": 6.0,
            "per_capita_income": 45000.0,
        },
        "10001": {
            "name": "Kent County, Delaware", "population": 300.0,
            "median_household_income": None, "labor_force": 150.0, "unemployed": 9.0,
        },
    }
    write_raw(store, "census-acs.json", acs, fetched="2025-03-01T10:00:00+00:00")
    write_raw(store, "bls-laus-states.json", {
        "09": {"unemployment_rate": 4.2, "labor_force": 1900000.0, "employment": 1820000.0,
               "unemployment_count": 80000.0},
    }, fetched="2025-03-02T10:00:00+00:00")
    write_raw(store, "bls-laus-counties.json", {
        "09001": {"unemployment_rate": 4.5, "labor_force": 500000.0, "employment": 477500.0},
        "10001": {"unemployment_rate": 5.1, "labor_force": 88000.0, "employment": 83500.0},
    }, fetched="2025-03-02T10:00:00+00:00")
    write_raw(store, "bls-ces-states.json", {
        "10": {"total_nonfarm_employment": 480.2, "avg_hourly_earnings": 31.4567},
    })
    write_raw(store, "bls-ces-metros.json", {
        "35620": {"total_nonfarm_employment": 9900.5, "avg_weekly_hours": 34.26},
    })
    write_raw(store, "bea-income.json", {
        "counties": {"09001": {"per_capita_income": 72000.0, "geo_name": "Fairfield, CT", "year": 2023}},
        "states": {"09": {"per_capita_income": 93000.0, "geo_name": "Connecticut", "year": 2023}},
    })
    return store
