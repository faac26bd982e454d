"""
Base class for source fetchers.

A fetcher turns one upstream dataset into one or more raw artifacts
under ``data/raw``. Fetchers share no state with each other, so they can
run in any order or in separate processes; the joiner is the first code
that combines them.

Raw artifacts share one envelope::

    {"source": ..., "fetched": ISO-8601, "complete": bool, "meta": {...}, "data": {...}}
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from laborcompare.core.api_errors import APIError, MissingCredentialError, PayloadError
from laborcompare.core.config import Settings
from laborcompare.core.models import FetchOutcome, StageStatus
from laborcompare.core.storage import ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class RawArtifact:
    """One file a fetcher wants written."""
    name: str
    data: Any
    records: int
    meta: Dict[str, Any] = field(default_factory=dict)
    complete: bool = True


@dataclass
class FetchPayload:
    artifacts: List[RawArtifact] = field(default_factory=list)
    error: Optional[APIError] = None
    skip_reason: Optional[str] = None

    @property
    def records(self) -> int:
        return sum(a.records for a in self.artifacts)


class BaseSourceFetcher(ABC):
    """
    Base class for all source fetchers.

    Subclasses should:
    - Set SOURCE_NAME and REQUIRED class attributes
    - Override check_credentials() when the source needs a key
    - Implement fetch()
    """

    SOURCE_NAME: str = "unknown"
    ARTIFACTS: Tuple[str, ...] = ()
    REQUIRED: bool = True

    def __init__(
        self,
        settings: Settings,
        store: ArtifactStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.store = store
        self.transport = transport

    @property
    def reference_year(self) -> int:
        """Current year, or the configured target-period override."""
        return self.settings.target_year or date.today().year

    def check_credentials(self) -> Optional[str]:
        """
        Verify credentials before any network call.

        Returns a skip reason for optional sources that cannot run, None
        when the fetch can proceed.

        Raises:
            MissingCredentialError: When a required source lacks its key
        """
        return None

    @abstractmethod
    async def fetch(self) -> FetchPayload:
        """Download and normalize the upstream data."""

    def envelope(self, artifact: RawArtifact, complete: bool) -> Dict[str, Any]:
        return {
            "source": self.SOURCE_NAME,
            "fetched": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "complete": complete,
            "meta": artifact.meta,
            "data": artifact.data,
        }

    async def run(self) -> FetchOutcome:
        """
        Run the fetcher and persist its artifacts.

        A fetch that ends with an error keeps the previous raw artifacts
        and writes what it collected to ``<artifact>.partial.json``.
        """
        artifact_names = ", ".join(self.ARTIFACTS)

        try:
            skip_reason = self.check_credentials()
        except MissingCredentialError as e:
            logger.error(f"[{self.SOURCE_NAME}] {e.message}")
            return FetchOutcome(self.SOURCE_NAME, artifact_names, StageStatus.FAILED, error=e)

        if skip_reason:
            logger.warning(f"[{self.SOURCE_NAME}] Skipping: {skip_reason}")
            return FetchOutcome(
                self.SOURCE_NAME, artifact_names, StageStatus.SKIPPED, message=skip_reason
            )

        logger.info(f"[{self.SOURCE_NAME}] Fetch started")
        try:
            payload = await self.fetch()
        except APIError as e:
            logger.error(f"[{self.SOURCE_NAME}] Fetch failed: {e}")
            return FetchOutcome(self.SOURCE_NAME, artifact_names, StageStatus.FAILED, error=e)
        except (KeyError, TypeError, ValueError) as e:
            error = PayloadError(f"Malformed {self.SOURCE_NAME} data: {e!r}", source=self.SOURCE_NAME)
            logger.error(f"[{self.SOURCE_NAME}] Fetch failed: {error}", exc_info=True)
            return FetchOutcome(self.SOURCE_NAME, artifact_names, StageStatus.FAILED, error=error)

        if payload.skip_reason:
            logger.info(f"[{self.SOURCE_NAME}] Nothing to do: {payload.skip_reason}")
            return FetchOutcome(
                self.SOURCE_NAME, artifact_names, StageStatus.SKIPPED, message=payload.skip_reason
            )

        if payload.error is not None:
            for artifact in payload.artifacts:
                if artifact.records:
                    self.store.write_partial(artifact.name, self.envelope(artifact, complete=False))
            logger.error(
                f"[{self.SOURCE_NAME}] Fetch aborted after {payload.records} records: "
                f"{payload.error}"
            )
            return FetchOutcome(
                self.SOURCE_NAME,
                artifact_names,
                StageStatus.FAILED,
                records=payload.records,
                error=payload.error,
            )

        if payload.records == 0:
            logger.error(f"[{self.SOURCE_NAME}] Fetch returned no records; keeping previous artifacts")
            return FetchOutcome(
                self.SOURCE_NAME,
                artifact_names,
                StageStatus.FAILED,
                message="no records returned",
            )

        for artifact in payload.artifacts:
            self.store.write_raw(artifact.name, self.envelope(artifact, complete=artifact.complete))

        logger.info(f"[{self.SOURCE_NAME}] Fetch complete: {payload.records} records")
        return FetchOutcome(
            self.SOURCE_NAME, artifact_names, StageStatus.SUCCESS, records=payload.records
        )

