"""
OEWS (Occupational Employment and Wage Statistics) fetcher.

Downloads the national, state and metro workbooks for the newest
available release and writes every detailed/major/broad row to
``raw/oews-raw.json``. Releases lag about a year, so last year is tried
first and the year before that second.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from laborcompare.core.api_errors import NotFoundError, PayloadError, RateLimitError, RetryableError
from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact
from laborcompare.sources.oews.client import OEWSClient, extract_workbook, read_workbook
from laborcompare.sources.oews.metadata import (
    FILE_TYPES,
    count_national_detailed,
    describe,
    normalize_frame,
)

logger = logging.getLogger(__name__)

OEWS_ARTIFACT = "oews-raw.json"
PUBLISHED_NATIONAL = "oews/national.json"
MIN_NATIONAL_DETAILED = 100


class OEWSFetcher(BaseSourceFetcher):
    SOURCE_NAME = "oews"
    ARTIFACTS = (OEWS_ARTIFACT,)
    REQUIRED = True

    def candidate_years(self) -> List[int]:
        if self.settings.oews_year:
            return [self.settings.oews_year]
        return [self.reference_year - 1, self.reference_year - 2]

    def published_year(self) -> Optional[int]:
        national = self.store.read_json(PUBLISHED_NATIONAL)
        if isinstance(national, dict):
            return national.get("year")
        return None

    async def fetch_file(self, client: OEWSClient, year: int, suffix: str) -> List[Dict[str, Any]]:
        label, default_area_type = FILE_TYPES[suffix]
        content = await client.download_archive(year, suffix)
        member, workbook = extract_workbook(content)
        df = read_workbook(member, workbook)
        rows = normalize_frame(
            df,
            default_area_type,
            annual_cap=self.settings.oews_annual_wage_cap,
            hourly_cap=self.settings.oews_hourly_wage_cap,
        )
        logger.info(f"OEWS {year} {label}: {describe(rows) or 'no rows'}")
        return rows

    async def fetch_year(self, client: OEWSClient, year: int) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Fetch all three files for one release.

        A file that is missing or unreadable is skipped; the release
        counts as available if any file succeeds. Returns the rows and
        the file types that loaded.
        """
        rows: List[Dict[str, Any]] = []
        loaded: List[str] = []
        for suffix, (label, _) in FILE_TYPES.items():
            try:
                rows.extend(await self.fetch_file(client, year, suffix))
            except RateLimitError:
                raise
            except (NotFoundError, PayloadError, RetryableError) as e:
                logger.warning(f"OEWS {year} {label} file unavailable: {e}")
            else:
                loaded.append(suffix)
        return rows, loaded

    async def fetch(self) -> FetchPayload:
        years = self.candidate_years()
        published = self.published_year()

        async with OEWSClient(
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            max_backoff=self.settings.max_backoff,
            transport=self.transport,
        ) as client:
            for year in years:
                if published == year and not self.settings.oews_force:
                    return FetchPayload(
                        skip_reason=f"OEWS {year} already published (set OEWS_FORCE=1 to refetch)"
                    )

                logger.info(f"Trying OEWS release {year}")
                rows, loaded = await self.fetch_year(client, year)
                if not rows:
                    logger.warning(f"No OEWS data for {year}")
                    continue

                national_detailed = count_national_detailed(rows)
                if national_detailed < MIN_NATIONAL_DETAILED:
                    logger.warning(
                        f"OEWS {year} has only {national_detailed} national detailed "
                        "occupations; the national file may be incomplete"
                    )

                missing = [suffix for suffix in FILE_TYPES if suffix not in loaded]
                if missing:
                    logger.warning(f"OEWS {year} is missing file types {missing}; their published files are kept")

                meta = {"year": year, "files": loaded, "missing": missing}
                data = {"year": year, "rows": rows}
                return FetchPayload([
                    RawArtifact(OEWS_ARTIFACT, data, len(rows), meta, complete=not missing)
                ])

        raise NotFoundError(
            message="No OEWS release could be downloaded",
            source=self.SOURCE_NAME,
            resource_id=", ".join(str(y) for y in years),
        )
