"""
Live API integration tests.

These tests require:
- RUN_INTEGRATION_TESTS=true environment variable
- BLS_API_KEY (the LAUS test is skipped without it)
- Network access to api.bls.gov and data.bls.gov

Run with: RUN_INTEGRATION_TESTS=true pytest tests/test_integration.py -v
"""
import os
from datetime import datetime

import pytest

from laborcompare.core.models import StageStatus
from laborcompare.sources.bls import ProjectionsFetcher
from laborcompare.sources.bls.client import BLSClient
from laborcompare.sources.bls.series import extract_latest_value, laus_state_series_id

# Skip all tests if integration tests not enabled
pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("RUN_INTEGRATION_TESTS", "").lower() == "true",
        reason="Integration tests disabled. Set RUN_INTEGRATION_TESTS=true to enable.",
    ),
]


@pytest.fixture
def current_year():
    return datetime.now().year


class TestLiveBLS:

    @pytest.mark.asyncio
    async def test_state_unemployment_rate(self, current_year):
        api_key = os.environ.get("BLS_API_KEY")
        if not api_key:
            pytest.skip("BLS_API_KEY not set")

        series_id = laus_state_series_id("06", "03")
        async with BLSClient(api_key=api_key) as client:
            result = await client.fetch_series([series_id], current_year - 1, current_year)

        assert result.complete
        rate = extract_latest_value(result.series(series_id))
        assert rate is not None
        assert 0 < rate < 30


class TestLiveProjections:

    @pytest.mark.asyncio
    async def test_projections_page_parses(self, settings, store):
        outcome = await ProjectionsFetcher(settings, store).run()

        assert outcome.status == StageStatus.SUCCESS
        assert outcome.records > 500
