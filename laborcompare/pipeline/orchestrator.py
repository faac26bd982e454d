"""
Pipeline orchestrator.

Runs fetch stages, then build stages, in a fixed order. Each stage is
declared once with whether it is required:

- a failed required stage makes the run exit non-zero, and ``run``
  stops before building so the previous published files stay in place
- a failed or skipped optional stage only logs a warning and the
  metric family it feeds is left out of the output

Usage:
    pipeline = Pipeline(get_settings())
    exit_code = asyncio.run(pipeline.run())
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Type

import httpx

from laborcompare.core.api_errors import APIError, PayloadError
from laborcompare.core.cache import RunCache
from laborcompare.core.config import Settings
from laborcompare.core.models import StageStatus
from laborcompare.core.storage import ArtifactStore
from laborcompare.geo.resolver import GeoResolver
from laborcompare.pipeline.indicators import publish_indicators
from laborcompare.pipeline.joiner import (
    join_counties,
    join_metros,
    join_states,
    load_occupation_dataset,
    load_source_tables,
)
from laborcompare.pipeline.publisher import publish_geography, publish_oews
from laborcompare.pipeline.search_index import publish_search_index
from laborcompare.sources.base import BaseSourceFetcher
from laborcompare.sources.bea import BEAFetcher
from laborcompare.sources.bls import (
    CESFetcher,
    CPIFetcher,
    JOLTSFetcher,
    LAUSFetcher,
    ProjectionsFetcher,
)
from laborcompare.sources.census import CensusACSFetcher
from laborcompare.sources.oews import OEWSFetcher

logger = logging.getLogger(__name__)


# =============================================================================
# Stage definitions
# =============================================================================


@dataclass
class FetchStage:
    """A source fetcher the pipeline can run."""

    key: str
    fetcher: Type[BaseSourceFetcher]

    @property
    def required(self) -> bool:
        return self.fetcher.REQUIRED


@dataclass
class BuildStage:
    """A build step; ``run`` returns the number of files written."""

    key: str
    run: Callable[["Pipeline"], int]
    required: bool = True


@dataclass
class StageResult:
    name: str
    status: StageStatus
    required: bool
    records: int = 0
    message: Optional[str] = None

    @property
    def failed_required(self) -> bool:
        return self.required and self.status == StageStatus.FAILED


def _build_geography(pipeline: "Pipeline") -> int:
    tables = load_source_tables(pipeline.store)
    counties = join_counties(tables, pipeline.resolver)
    states = join_states(tables, counties, pipeline.resolver)
    metros = join_metros(tables, pipeline.resolver)
    return publish_geography(pipeline.store, counties, states, metros, tables.updated)


def _build_oews(pipeline: "Pipeline") -> int:
    dataset = load_occupation_dataset(pipeline.store, pipeline.resolver)
    return publish_oews(pipeline.store, dataset)


def _build_indicators(pipeline: "Pipeline") -> int:
    return publish_indicators(pipeline.store)


def _build_search(pipeline: "Pipeline") -> int:
    return publish_search_index(pipeline.store)


# Census first: LAUS reads its county list from census-acs.json
FETCH_STAGES: List[FetchStage] = [
    FetchStage("census_acs", CensusACSFetcher),
    FetchStage("bea", BEAFetcher),
    FetchStage("bls_laus", LAUSFetcher),
    FetchStage("bls_ces", CESFetcher),
    FetchStage("oews", OEWSFetcher),
    FetchStage("bls_cpi", CPIFetcher),
    FetchStage("bls_jolts", JOLTSFetcher),
    FetchStage("bls_projections", ProjectionsFetcher),
]

# Search reads what geography and oews publish, so it runs last
BUILD_STAGES: List[BuildStage] = [
    BuildStage("geography", _build_geography),
    BuildStage("oews", _build_oews),
    BuildStage("indicators", _build_indicators, required=False),
    BuildStage("search", _build_search, required=False),
]

FETCH_BY_KEY: Dict[str, FetchStage] = {s.key: s for s in FETCH_STAGES}
BUILD_BY_KEY: Dict[str, BuildStage] = {s.key: s for s in BUILD_STAGES}


def _select(available: Dict[str, object], names: Optional[Sequence[str]], kind: str) -> List[str]:
    """Requested stage keys in pipeline order; all stages when none are named."""
    if not names:
        return list(available)
    unknown = [n for n in names if n not in available]
    if unknown:
        raise ValueError(f"Unknown {kind} stage(s): {', '.join(unknown)}. Choose from: {', '.join(available)}")
    return [key for key in available if key in names]


# =============================================================================
# Pipeline
# =============================================================================


class Pipeline:
    """One pipeline run: settings, a run-scoped store and a shared resolver."""

    def __init__(
        self,
        settings: Settings,
        store: Optional[ArtifactStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.cache = RunCache("run")
        self.store = store if store is not None else ArtifactStore(settings.data_dir, cache=self.cache)
        self.transport = transport
        self.resolver = GeoResolver()
        self.results: List[StageResult] = []

    async def run_fetch(self, names: Optional[Sequence[str]] = None) -> List[StageResult]:
        results = []
        for key in _select(FETCH_BY_KEY, names, "fetch"):
            stage = FETCH_BY_KEY[key]
            fetcher = stage.fetcher(self.settings, self.store, transport=self.transport)
            outcome = await fetcher.run()

            message = outcome.message or (str(outcome.error) if outcome.error else None)
            result = StageResult(key, outcome.status, stage.required, outcome.records, message)
            self._report(result)
            results.append(result)
        self.results.extend(results)
        return results

    def run_build(self, names: Optional[Sequence[str]] = None) -> List[StageResult]:
        results = []
        for key in _select(BUILD_BY_KEY, names, "build"):
            stage = BUILD_BY_KEY[key]
            logger.info(f"[build:{key}] Started")
            try:
                written = stage.run(self)
            except APIError as e:
                result = StageResult(key, StageStatus.FAILED, stage.required, message=str(e))
            except (KeyError, TypeError, ValueError) as e:
                error = PayloadError(f"Malformed input for build stage {key}: {e!r}")
                logger.error(f"[build:{key}] {error}", exc_info=True)
                result = StageResult(key, StageStatus.FAILED, stage.required, message=str(error))
            else:
                result = StageResult(key, StageStatus.SUCCESS, stage.required, records=written)
            self._report(result)
            results.append(result)
        self.results.extend(results)
        return results

    async def run(self) -> int:
        """Fetch every source, then build every output; returns the exit code."""
        fetched = await self.run_fetch()
        failed = [r.name for r in fetched if r.failed_required]
        if failed:
            logger.error(f"Required fetch failed ({', '.join(failed)}); skipping build")
            return self.exit_code()

        self.run_build()
        return self.exit_code()

    def exit_code(self) -> int:
        return 1 if any(r.failed_required for r in self.results) else 0

    def summary(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for result in self.results:
            counts[result.status.value] = counts.get(result.status.value, 0) + 1
        return counts

    @staticmethod
    def _report(result: StageResult) -> None:
        detail = f" ({result.message})" if result.message else ""
        if result.status == StageStatus.FAILED and result.required:
            logger.error(f"Stage {result.name} failed{detail}")
        elif result.status == StageStatus.FAILED:
            logger.warning(f"Optional stage {result.name} failed{detail}; continuing")
        elif result.status == StageStatus.SKIPPED:
            logger.warning(f"Stage {result.name} skipped{detail}")
        else:
            logger.info(f"Stage {result.name} done: {result.records} records/files")
