"""
OEWS bulk download client.

BLS publishes each OEWS release as three ZIP archives (national, state,
metro), each holding one Excel workbook. There is no API; the files are
fetched directly and parsed with pandas.
"""
import io
import logging
import zipfile
from typing import Dict, Optional, Tuple

import httpx
import pandas as pd

from laborcompare.core.api_errors import NotFoundError, PayloadError
from laborcompare.core.api_registry import get_api_config
from laborcompare.core.http_client import BaseAPIClient
from laborcompare.sources.oews.metadata import build_url, select_sheet

logger = logging.getLogger(__name__)

# Smaller bodies are BLS error pages served with a 200 status
MIN_ARCHIVE_BYTES = 10_000


class OEWSClient(BaseAPIClient):
    """
    Client for the OEWS special-requests ZIP archives.

    BLS rejects requests without a browser-like User-Agent.
    """

    SOURCE_NAME = "oews"
    BASE_URL = "https://www.bls.gov/oes/special-requests"

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        max_backoff: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = get_api_config("oews")
        super().__init__(
            api_key=None,
            max_retries=max_retries,
            retry_delay=retry_delay,
            max_backoff=max_backoff,
            timeout=config.timeout_seconds,
            connect_timeout=config.connect_timeout_seconds,
            rate_limit_interval=config.get_rate_limit_interval(),
            transport=transport,
        )

    def _build_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/132.0.0.0 Safari/537.36"
            ),
            "Accept": "application/zip,application/octet-stream,*/*",
            "Referer": "https://www.bls.gov/oes/tables.htm",
        }

    async def download_archive(self, year: int, suffix: str) -> bytes:
        """
        Download one OEWS archive.

        Raises:
            NotFoundError: If the body is too small to be a real archive
        """
        url = build_url(year, suffix)
        content = await self.download(url, resource_id=f"oesm{str(year)[-2:]}{suffix}")
        if len(content) < MIN_ARCHIVE_BYTES:
            raise NotFoundError(
                message=(
                    f"OEWS archive {url} is only {len(content)} bytes; "
                    "release probably not published yet"
                ),
                source=self.SOURCE_NAME,
                resource_id=url,
            )
        logger.info(f"Downloaded {url} ({len(content) / 1024 / 1024:.1f} MB)")
        return content


def extract_workbook(content: bytes) -> Tuple[str, bytes]:
    """
    Return ``(member_name, workbook_bytes)`` for the first Excel file in the archive.

    Raises:
        PayloadError: If the archive is corrupt or holds no workbook
    """
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            for member in archive.namelist():
                if member.lower().endswith((".xlsx", ".xls")):
                    return member, archive.read(member)
    except zipfile.BadZipFile as e:
        raise PayloadError(f"Corrupt OEWS archive: {e}", source="oews")
    raise PayloadError("No Excel workbook found in OEWS archive", source="oews")


def read_workbook(member: str, workbook: bytes) -> pd.DataFrame:
    """
    Parse the data sheet of an OEWS workbook.

    Every cell is read as text so codes like ``00-0000`` and ``0100``
    keep their leading zeros; numbers are parsed later.
    """
    engine = "openpyxl" if member.lower().endswith(".xlsx") else "xlrd"
    try:
        with pd.ExcelFile(io.BytesIO(workbook), engine=engine) as excel:
            sheet = select_sheet(excel.sheet_names)
            df = excel.parse(sheet_name=sheet, dtype=str, keep_default_na=False)
    except (ValueError, zipfile.BadZipFile) as e:
        raise PayloadError(f"Unreadable OEWS workbook {member}: {e}", source="oews")
    logger.info(f"Parsed {member} sheet '{sheet}': {len(df)} rows, {len(df.columns)} columns")
    return df
