"""
Plain data types shared across fetchers, the joiner and the orchestrator.
"""
import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from laborcompare.core.api_errors import APIError


class StageStatus(str, enum.Enum):
    """Stage status enumeration - ONLY these values allowed."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SeriesObservation:
    """One (series, period) value as delivered by a time-series API."""
    series_id: str
    year: int
    period: str
    value: Optional[float]
    sentinel: bool = False

    @property
    def is_annual_average(self) -> bool:
        return self.period == "M13"

    @property
    def month(self) -> Optional[int]:
        if self.period.startswith("M") and self.period[1:].isdigit():
            number = int(self.period[1:])
            if 1 <= number <= 12:
                return number
        return None


@dataclass
class SeriesFetchResult:
    """
    Everything a batched series fetch collected.

    ``error`` is set when the fetch stopped early (rate limit or too many
    consecutive batch failures); ``observations`` still holds every
    series that arrived before that point.
    """
    observations: Dict[str, List[SeriesObservation]] = field(default_factory=dict)
    error: Optional[APIError] = None
    batches_total: int = 0
    batches_ok: int = 0
    batches_failed: int = 0

    @property
    def aborted(self) -> bool:
        return self.error is not None

    @property
    def complete(self) -> bool:
        return self.error is None and self.batches_failed == 0

    def series(self, series_id: str) -> List[SeriesObservation]:
        return self.observations.get(series_id, [])


@dataclass
class FetchOutcome:
    """What a fetcher reports back to the orchestrator."""
    source: str
    artifact: str
    status: StageStatus
    records: int = 0
    error: Optional[APIError] = None
    message: Optional[str] = None
