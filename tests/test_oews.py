"""
Unit tests for OEWS schema handling, workbook parsing and the fetcher.

Workbooks are built in memory with pandas; HTTP is an httpx.MockTransport.
"""
import io
import os
import zipfile

import httpx
import pandas as pd
import pytest

from laborcompare.core.api_errors import PayloadError
from laborcompare.core.models import StageStatus
from laborcompare.sources.oews import (
    OEWSFetcher,
    extract_workbook,
    normalize_frame,
    read_workbook,
    resolve_columns,
    select_sheet,
)

ANNUAL_CAP = 239200.0
HOURLY_CAP = 115.0

HEADERS = [
    "AREA", "AREA_TITLE", "AREA_TYPE", "OCC_CODE", "OCC_TITLE", "O_GROUP",
    "TOT_EMP", "JOBS_1000", "LOC_QUOTIENT", "H_MEAN", "A_MEAN", "H_MEDIAN", "A_MEDIAN",
    "H_PCT90", "A_PCT90",
]

NATIONAL_ROWS = [
    ["99", "U.S.", "1", "00-0000", "All Occupations", "total",
     "151,853,870", "", "", "31.48", "65,470", "23.11", "48,060", "", ""],
    ["99", "U.S.", "1", "29-0000", "Healthcare Practitioners and Technical Occupations", "major",
     "9,241,450", "", "", "48.65", "101,190", "", "", "", ""],
    ["99", "U.S.", "1", "29-1228", "Physicians, All Other", "detailed",
     "80,000", "", "", "*", "#", "#", "#", "#", "#"],
    ["99", "U.S.", "1", "29-1141", "Registered Nurses", "detailed",
     "3,282,010", "", "", "45.42", "94,480", "44.07", "91,660", "63.48", "132,680"],
]


def make_frame(rows=NATIONAL_ROWS, headers=HEADERS):
    return pd.DataFrame(rows, columns=headers)


def make_archive(df, member="oesm24nat/national_M2024_dl.xlsx", sheet="national_M2024_dl"):
    workbook = io.BytesIO()
    df.to_excel(workbook, index=False, sheet_name=sheet, engine="openpyxl")

    archive = io.BytesIO()
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr(member, workbook.getvalue())
        # keep the archive above the error-page size floor
        zf.writestr("padding.bin", os.urandom(12_000), compress_type=zipfile.ZIP_STORED)
    return archive.getvalue()


# =============================================================================
# Schema
# =============================================================================


class TestSchema:

    @pytest.mark.unit
    def test_resolve_columns_accepts_old_headers(self):
        columns = resolve_columns(["area", "Area_Name", "OCC_CODE", "occ_title", "OCC_GROUP", "tot_emp"])
        assert columns["area_title"] == "Area_Name"
        assert columns["o_group"] == "OCC_GROUP"
        assert columns["tot_emp"] == "tot_emp"

    @pytest.mark.unit
    def test_missing_required_column_rejects_sheet(self):
        with pytest.raises(PayloadError) as exc_info:
            resolve_columns(["AREA", "AREA_TITLE", "OCC_CODE", "OCC_TITLE", "O_GROUP"])
        assert "tot_emp" in str(exc_info.value)

    @pytest.mark.unit
    def test_select_sheet(self):
        assert select_sheet(["Field Descriptions", "All May 2024 data"]) == "All May 2024 data"
        assert select_sheet(["Sheet1", "Notes"]) == "Sheet1"
        with pytest.raises(PayloadError):
            select_sheet([])


class TestNormalizeFrame:

    @pytest.mark.unit
    def test_keeps_published_groups_only(self):
        rows = normalize_frame(make_frame(), 1, ANNUAL_CAP, HOURLY_CAP)
        assert [r["occ_code"] for r in rows] == ["29-0000", "29-1228", "29-1141"]

    @pytest.mark.unit
    def test_numbers_parsed_and_blanks_null(self):
        nurses = normalize_frame(make_frame(), 1, ANNUAL_CAP, HOURLY_CAP)[2]
        assert nurses["tot_emp"] == 3282010.0
        assert nurses["a_median"] == 91660.0
        assert nurses["jobs_1000"] is None
        assert nurses["area_type"] == 1
        assert "capped" not in nurses

    @pytest.mark.unit
    def test_cap_marker_becomes_cap_value(self):
        physicians = normalize_frame(make_frame(), 1, ANNUAL_CAP, HOURLY_CAP)[1]
        assert physicians["a_median"] == ANNUAL_CAP
        assert physicians["h_median"] == HOURLY_CAP
        assert physicians["h_mean"] is None
        assert physicians["capped"] == ["h_median", "h_pct90", "a_mean", "a_median", "a_pct90"]

    @pytest.mark.unit
    def test_default_area_type_without_column(self):
        headers = [h for h in HEADERS if h != "AREA_TYPE"]
        rows = [[cell for h, cell in zip(HEADERS, row) if h != "AREA_TYPE"] for row in NATIONAL_ROWS]
        normalized = normalize_frame(make_frame(rows, headers), 4, ANNUAL_CAP, HOURLY_CAP)
        assert {r["area_type"] for r in normalized} == {4}


# =============================================================================
# Workbooks
# =============================================================================


class TestWorkbooks:

    @pytest.mark.unit
    def test_extract_and_read_keeps_leading_zeros(self):
        member, workbook = extract_workbook(make_archive(make_frame()))
        assert member.endswith(".xlsx")

        df = read_workbook(member, workbook)
        assert list(df.columns) == HEADERS
        assert df.iloc[0]["OCC_CODE"] == "00-0000"

    @pytest.mark.unit
    def test_corrupt_archive(self):
        with pytest.raises(PayloadError, match="Corrupt"):
            extract_workbook(b"not a zip file")

    @pytest.mark.unit
    def test_archive_without_workbook(self):
        archive = io.BytesIO()
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("readme.txt", "nothing here")
        with pytest.raises(PayloadError, match="No Excel workbook"):
            extract_workbook(archive.getvalue())


# =============================================================================
# Fetcher
# =============================================================================


def archive_handler(archives, calls=None):
    """Serve archives by file name; everything else is a 404."""
    def handler(request):
        name = request.url.path.rsplit("/", 1)[-1]
        if calls is not None:
            calls.append(name)
        if name in archives:
            return httpx.Response(200, content=archives[name])
        return httpx.Response(404, text="Not Found")
    return handler


class TestOEWSFetcher:

    @pytest.mark.unit
    def test_candidate_years(self, settings, store):
        assert OEWSFetcher(settings, store).candidate_years() == [2024, 2023]

        pinned = settings.model_copy(update={"oews_year": 2022})
        assert OEWSFetcher(pinned, store).candidate_years() == [2022]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fetch_newest_release(self, settings, store, no_pacing):
        archives = {"oesm24nat.zip": make_archive(make_frame())}
        fetcher = OEWSFetcher(settings, store, transport=httpx.MockTransport(archive_handler(archives)))

        outcome = await fetcher.run()

        assert outcome.status == StageStatus.SUCCESS
        assert outcome.records == 3
        raw = store.read_raw("oews-raw.json")
        assert raw["data"]["year"] == 2024
        assert raw["meta"]["files"] == ["nat"]
        assert raw["meta"]["missing"] == ["st", "ma"]
        assert raw["complete"] is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_all_file_types_mark_release_complete(self, settings, store, no_pacing):
        archive = make_archive(make_frame())
        archives = {f"oesm24{suffix}.zip": archive for suffix in ("nat", "st", "ma")}
        fetcher = OEWSFetcher(settings, store, transport=httpx.MockTransport(archive_handler(archives)))

        outcome = await fetcher.run()

        assert outcome.status == StageStatus.SUCCESS
        raw = store.read_raw("oews-raw.json")
        assert raw["meta"]["files"] == ["nat", "st", "ma"]
        assert raw["meta"]["missing"] == []
        assert raw["complete"] is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_falls_back_to_previous_year(self, settings, store, no_pacing):
        calls = []
        archives = {"oesm23nat.zip": make_archive(make_frame())}
        fetcher = OEWSFetcher(settings, store, transport=httpx.MockTransport(archive_handler(archives, calls)))

        outcome = await fetcher.run()

        assert outcome.status == StageStatus.SUCCESS
        assert calls[:3] == ["oesm24nat.zip", "oesm24st.zip", "oesm24ma.zip"]
        assert store.read_raw("oews-raw.json")["data"]["year"] == 2023

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_small_error_page_is_not_an_archive(self, settings, store, no_pacing):
        archives = {"oesm24nat.zip": b"<html>Access Denied</html>", "oesm23nat.zip": b"tiny"}
        fetcher = OEWSFetcher(settings, store, transport=httpx.MockTransport(archive_handler(archives)))

        outcome = await fetcher.run()

        assert outcome.status == StageStatus.FAILED
        assert not store.has_raw("oews-raw.json")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_already_published_year_is_skipped(self, settings, store, no_pacing):
        store.write_json("oews/national.json", {"year": 2024, "occupations": {}})
        calls = []
        fetcher = OEWSFetcher(settings, store, transport=httpx.MockTransport(archive_handler({}, calls)))

        outcome = await fetcher.run()

        assert outcome.status == StageStatus.SKIPPED
        assert "OEWS_FORCE" in outcome.message
        assert calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_force_refetches_published_year(self, settings, store, no_pacing):
        store.write_json("oews/national.json", {"year": 2024, "occupations": {}})
        forced = settings.model_copy(update={"oews_force": True})
        archives = {"oesm24nat.zip": make_archive(make_frame())}
        fetcher = OEWSFetcher(forced, store, transport=httpx.MockTransport(archive_handler(archives)))

        outcome = await fetcher.run()

        assert outcome.status == StageStatus.SUCCESS
