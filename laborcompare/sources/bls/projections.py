"""
BLS Employment Projections fetcher.

Source: https://data.bls.gov/projections/occupationProj

The page renders the full national projections table server-side, so a
single HTML download covers every detailed occupation. Columns, in
order: title, SOC code, base-year employment, projected employment,
numeric change, percent change, annual openings, median annual wage.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from laborcompare.core.api_registry import get_api_config
from laborcompare.core.http_client import BaseAPIClient
from laborcompare.core.numeric import parse_number
from laborcompare.sources.base import BaseSourceFetcher, FetchPayload, RawArtifact

logger = logging.getLogger(__name__)

PROJECTIONS_ARTIFACT = "bls-projections.json"
PROJECTIONS_URL = "https://data.bls.gov/projections/occupationProj"

DETAILED_SOC = re.compile(r"^\d{2}-\d{4}$")
EXAMPLE_TITLES_LABEL = "Show/hide Example Job Titles"

CELL_FIELDS = (
    "title",
    "code",
    "emp_base",
    "emp_projected",
    "change_num",
    "change_pct",
    "openings",
    "median",
)


class ProjectionsClient(BaseAPIClient):
    """Downloads the projections page; BLS rejects non-browser user agents."""

    SOURCE_NAME = "projections"
    BASE_URL = "https://data.bls.gov/projections"

    def _build_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/132.0.0.0 Safari/537.36"
            ),
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": "en-US,en;q=0.9",
        }


def _clean_title(cell) -> str:
    text = cell.get_text("\n", strip=True).replace(EXAMPLE_TITLES_LABEL, "")
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    title = lines[0] if lines else ""
    return re.sub(r"\s*\*.*$", "", title).strip()


def parse_projections_html(html: str) -> List[Dict[str, Any]]:
    """
    Extract detailed-occupation rows from the projections table.

    Rows with fewer than eight cells or a non-detailed SOC code (summary
    and group rows) are skipped.
    """
    soup = BeautifulSoup(html, "lxml")
    tbody = soup.find("tbody")
    if tbody is None:
        logger.warning("Projections page has no <tbody>")
        return []

    occupations = []
    for row in tbody.find_all("tr"):
        cells = row.find_all("td")
        if len(cells) < len(CELL_FIELDS):
            continue

        code = cells[1].get_text(strip=True)
        if not DETAILED_SOC.match(code) or code.endswith("-0000"):
            continue

        record: Dict[str, Any] = {"code": code, "title": _clean_title(cells[0])}
        for field_name, cell in zip(CELL_FIELDS[2:], cells[2:]):
            record[field_name] = parse_number(cell.get_text(strip=True))
        occupations.append(record)

    return occupations


class ProjectionsFetcher(BaseSourceFetcher):
    SOURCE_NAME = "bls_projections"
    ARTIFACTS = (PROJECTIONS_ARTIFACT,)
    REQUIRED = False

    def check_credentials(self) -> Optional[str]:
        return None

    async def fetch(self) -> FetchPayload:
        config = get_api_config("projections")
        async with ProjectionsClient(
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            max_backoff=self.settings.max_backoff,
            timeout=config.timeout_seconds,
            transport=self.transport,
        ) as client:
            html = await client.get_text(PROJECTIONS_URL, resource_id="occupationProj")

        logger.info(f"Downloaded {len(html) // 1024} KB of projections HTML")
        occupations = parse_projections_html(html)
        logger.info(f"Parsed {len(occupations)} occupation projections")

        occupations.sort(key=lambda occ: occ["code"])
        meta = {"url": PROJECTIONS_URL}
        return FetchPayload(
            [RawArtifact(PROJECTIONS_ARTIFACT, occupations, len(occupations), meta)]
        )
