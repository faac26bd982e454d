"""
Tests for the pipeline orchestrator and the command-line entry point.
"""
import httpx
import pytest

from laborcompare.cli import build_parser, main
from laborcompare.core.api_errors import PayloadError
from laborcompare.core.config import Settings
from laborcompare.core.models import StageStatus
from laborcompare.pipeline.orchestrator import BUILD_STAGES, FETCH_STAGES, Pipeline
from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact

from helpers import bls_threshold, write_raw


def oews_rows():
    base = {"o_group": "detailed", "occ_code": "29-1141", "occ_title": "Registered Nurses"}
    return [
        {**base, "area_type": 1, "area": "99", "area_title": "U.S.", "tot_emp": 3300000.0, "a_median": 93600.0},
        {**base, "area_type": 2, "area": "09", "area_title": "Connecticut", "tot_emp": 36000.0, "a_median": 104000.0},
        {**base, "area_type": 4, "area": "35620", "area_title": "New York-Newark-Jersey City, NY-NJ",
         "tot_emp": 190000.0},
        {"o_group": "major", "occ_code": "29-0000", "occ_title": "Healthcare Practitioners",
         "area_type": 1, "area": "99", "area_title": "U.S.", "tot_emp": 9000000.0},
    ]


@pytest.fixture
def raw_everything(raw_geography):
    write_raw(raw_geography, "oews-raw.json", {"year": 2024, "rows": oews_rows()})
    return raw_geography


class TestStageDefinitions:

    @pytest.mark.unit
    def test_fetch_order_puts_census_before_laus(self):
        keys = [s.key for s in FETCH_STAGES]
        assert keys.index("census_acs") < keys.index("bls_laus")

    @pytest.mark.unit
    def test_required_flags(self):
        required = {s.key for s in FETCH_STAGES if s.required}
        assert required == {"census_acs", "bea", "bls_laus", "bls_ces", "oews"}
        assert [s.key for s in BUILD_STAGES if not s.required] == ["indicators", "search"]

    @pytest.mark.unit
    def test_unknown_stage_rejected(self, settings):
        with pytest.raises(ValueError, match="Unknown build stage"):
            Pipeline(settings).run_build(["geography", "maps"])


# =============================================================================
# Build
# =============================================================================


class TestBuild:

    @pytest.mark.unit
    def test_build_everything_from_raw(self, settings, raw_everything):
        pipeline = Pipeline(settings, store=raw_everything)
        results = pipeline.run_build()

        assert [r.name for r in results] == ["geography", "oews", "indicators", "search"]
        assert all(r.status == StageStatus.SUCCESS for r in results)
        assert pipeline.exit_code() == 0

        store = raw_everything
        assert store.read_json("counties/09-connecticut.json")["counties"]["09110"]["unemployment_rate"] == 4.5
        assert store.read_json("oews/areas/states/09.json")["occupations"]["29-1141"]["med"] == 104000.0
        assert store.read_json("oews/occupations/by-metro/29-1141.json")["metros"]["35620"]["emp"] == 190000.0

        index = store.read_json("search-index.json")
        assert index["occupations"][0]["c"] == "29-1141"
        assert any(a["id"] == "35620" for a in index["areas"])
        assert index["groups"][0]["t"] == "Healthcare Practitioners"

    @pytest.mark.unit
    def test_missing_required_raw_fails_build(self, settings, raw_geography):
        pipeline = Pipeline(settings, store=raw_geography)
        results = {r.name: r for r in pipeline.run_build(["geography", "oews"])}

        assert results["geography"].status == StageStatus.SUCCESS
        assert results["oews"].status == StageStatus.FAILED
        assert "oews-raw.json" in results["oews"].message
        assert pipeline.exit_code() == 1

    @pytest.mark.unit
    def test_malformed_raw_rows_fail_the_stage(self, settings, raw_geography):
        write_raw(raw_geography, "oews-raw.json", {"year": 2024, "rows": [{"area_type": 1, "area": "99"}]})
        pipeline = Pipeline(settings, store=raw_geography)

        results = {r.name: r for r in pipeline.run_build(["geography", "oews"])}

        assert results["geography"].status == StageStatus.SUCCESS
        assert results["oews"].status == StageStatus.FAILED
        assert "Malformed input for build stage oews" in results["oews"].message
        assert pipeline.exit_code() == 1

    @pytest.mark.unit
    def test_rebuild_is_byte_identical(self, settings, raw_everything):
        Pipeline(settings, store=raw_everything).run_build()
        first = raw_everything.path("counties/all-counties.json").read_bytes()
        second_search = raw_everything.path("search-index.json").read_bytes()

        Pipeline(settings, store=raw_everything).run_build()

        assert raw_everything.path("counties/all-counties.json").read_bytes() == first
        assert raw_everything.path("search-index.json").read_bytes() == second_search


# =============================================================================
# Fetch
# =============================================================================


class TestFetch:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_optional_skip_without_key_exits_zero(self, settings, store):
        no_key = settings.model_copy(update={"bls_api_key": None})
        pipeline = Pipeline(no_key, store=store)

        results = await pipeline.run_fetch(["bls_cpi", "bls_jolts"])

        assert [r.status for r in results] == [StageStatus.SKIPPED, StageStatus.SKIPPED]
        assert pipeline.exit_code() == 0
        assert pipeline.summary() == {"skipped": 2}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rate_limited_required_fetch_exits_one(self, settings, store):
        def handler(request):
            return httpx.Response(200, json=bls_threshold())

        pipeline = Pipeline(settings, store=store, transport=httpx.MockTransport(handler))
        results = await pipeline.run_fetch(["bls_ces"])

        assert results[0].status == StageStatus.FAILED
        assert results[0].required
        assert pipeline.exit_code() == 1
        assert not store.has_raw("bls-ces-states.json")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_run_stops_before_build_when_required_fetch_fails(self, clean_env, data_dir, store, no_pacing):
        settings = Settings(_env_file=None, data_dir=data_dir, retry_delay=0.0, bls_batch_delay=0.0)
        store.write_json("counties/index.json", ["previous"])
        pipeline = Pipeline(settings, store=store, transport=httpx.MockTransport(lambda r: httpx.Response(500)))

        exit_code = await pipeline.run()

        assert exit_code == 1
        assert not any(r.name == "geography" for r in pipeline.results)
        assert store.read_json("counties/index.json") == ["previous"]


# =============================================================================
# CLI
# =============================================================================


class TestCli:

    @pytest.mark.unit
    def test_parser_defaults(self):
        args = build_parser().parse_args(["fetch"])
        assert args.command == "fetch"
        assert args.sources == []

    @pytest.mark.unit
    def test_unknown_source_is_usage_error(self, clean_env):
        with pytest.raises(SystemExit) as exc_info:
            main(["fetch", "bls_nope"])
        assert exc_info.value.code == 2

    @pytest.mark.unit
    def test_command_required(self, clean_env):
        with pytest.raises(SystemExit):
            main([])

    @pytest.mark.unit
    def test_build_from_cli(self, clean_env, raw_everything):
        exit_code = main(["--data-dir", str(raw_everything.data_dir), "build", "geography", "oews"])

        assert exit_code == 0
        assert raw_everything.path("oews/national.json").exists()
        assert raw_everything.path("states/economic-data.json").exists()


# =============================================================================
# Fetcher guard
# =============================================================================


class ShapeChangedFetcher(BaseSourceFetcher):
    SOURCE_NAME = "shape_changed"
    ARTIFACTS = ("shape-changed.json",)

    async def fetch(self) -> FetchPayload:
        row = {"Year": "2024"}
        return FetchPayload([RawArtifact("shape-changed.json", {"value": row["DataValue"]}, 1)])


class TestFetcherGuard:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_payload_shape_is_a_failed_outcome(self, settings, store):
        outcome = await ShapeChangedFetcher(settings, store).run()

        assert outcome.status == StageStatus.FAILED
        assert isinstance(outcome.error, PayloadError)
        assert "DataValue" in str(outcome.error)
        assert not store.has_raw("shape-changed.json")
