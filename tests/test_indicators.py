"""
Unit tests for CPI, JOLTS, projections and ticker files.
"""
import pytest

from laborcompare.pipeline.indicators import (
    build_cpi_categories,
    build_cpi_national,
    build_jolts_national,
    build_projection_files,
    build_ticker,
    clean_projection,
    direction,
    percent_change,
    publish_indicators,
)

from helpers import monthly, write_raw

UPDATED = "2025-03-12T08:30:00+00:00"


def cpi_headline(values, year=2024, month=1):
    return {"CUSR0000SA0": {"name": "All Items", "data": monthly(year, month, values)}}


def projection(code, change_pct, change_num=None, title=None):
    return {
        "code": code,
        "title": title or f"Occupation {code}",
        "emp_base": 100.0,
        "emp_projected": 100.0 + (change_num or 0),
        "change_num": change_num,
        "change_pct": change_pct,
        "openings": 10.0,
        "median": 50000.0,
    }


class TestChangeHelpers:

    @pytest.mark.unit
    def test_percent_change(self):
        assert percent_change(102.0, 100.0) == 2.0
        assert percent_change(None, 100.0) is None
        assert percent_change(1.0, 0) is None

    @pytest.mark.unit
    def test_direction(self):
        assert direction(2.0, 1.0) == "up"
        assert direction(1.0, 2.0) == "down"
        assert direction(1.0, 1.0) == "flat"
        assert direction(1.0, None) == "flat"


# =============================================================================
# CPI
# =============================================================================


class TestCpi:

    @pytest.mark.unit
    def test_national_newest_first_with_changes(self):
        values = [300.0 + i for i in range(13)]
        national = build_cpi_national(cpi_headline(values), UPDATED)

        latest = national["data"][0]
        assert (latest["year"], latest["month"], latest["value"]) == (2025, 1, 312.0)
        assert latest["momChange"] == percent_change(312.0, 311.0)
        assert latest["yoyChange"] == 4.0
        assert "yoyChange" not in national["data"][1]
        assert "momChange" not in national["data"][-1]
        assert national["updated"] == UPDATED

    @pytest.mark.unit
    def test_national_without_headline(self):
        assert build_cpi_national({}, UPDATED) is None

    @pytest.mark.unit
    def test_categories(self):
        series = {"CUSR0000SAF1": {"name": "Food", "data": monthly(2024, 1, [100.0 + i for i in range(14)])}}
        categories = build_cpi_categories(series, UPDATED)["categories"]

        assert len(categories) == 1
        food = categories[0]
        assert food["latestValue"] == 113.0
        assert (food["latestYear"], food["latestMonth"]) == (2025, 2)
        assert food["yoyChange"] == percent_change(113.0, 101.0)
        assert len(food["history"]) == 12


# =============================================================================
# JOLTS
# =============================================================================


class TestJolts:

    @pytest.mark.unit
    def test_latest_and_history(self):
        measures = {
            "openings": {"data": monthly(2023, 1, [8000.0 + i for i in range(26)])},
            "quits": {"data": []},
        }
        jolts = build_jolts_national(measures, UPDATED)

        assert jolts["latest"]["openings"] == {
            "value": 8025.0, "year": 2025, "month": 2, "change": 1, "direction": "up",
        }
        assert len(jolts["series"]["openings"]) == 24
        assert "quits" not in jolts["latest"]


# =============================================================================
# Projections
# =============================================================================


class TestProjections:

    @pytest.mark.unit
    def test_clean_projection_requires_code_title_and_change(self):
        assert clean_projection({"code": "29-1141", "title": "Nurses"}) is None
        cleaned = clean_projection({"code": "29-1141", "title": "Nurses", "change_pct": 5.94,
                                    "emp_base": 3375.0, "emp_projected": 3572.8})
        assert cleaned["changePct"] == 5.9
        assert cleaned["changeNum"] == 197.8

    @pytest.mark.unit
    def test_ranked_files(self):
        records = [projection(f"11-{i:04d}", change_pct=float(i - 20), change_num=float(i - 20)) for i in range(1, 60)]
        files = {f.path: f.payload for f in build_projection_files(records, UPDATED)}

        assert files["projections/national.json"]["count"] == 59
        fastest = files["projections/fastest.json"]["occupations"]
        assert len(fastest) == 30
        assert fastest[0]["code"] == "11-0059"
        declining = files["projections/declining.json"]["occupations"]
        assert [o["changePct"] for o in declining[:2]] == [-19.0, -18.0]
        assert len(declining) == 19
        assert files["projections/most-growth.json"]["occupations"][0]["changeNum"] == 39.0


# =============================================================================
# Ticker
# =============================================================================


class TestTicker:

    @pytest.mark.unit
    def test_nothing_to_merge(self):
        assert build_ticker({"ticker": [{"label": "GDP"}]}, {}, {}, UPDATED) is None

    @pytest.mark.unit
    def test_updates_cpi_and_openings_and_keeps_other_items(self):
        existing = {
            "ticker": [{"label": "GDP", "value": "2.3%"}, {"label": "CPI", "value": "old"}],
            "cards": [{"id": "wages", "value": "$35"}],
        }
        cpi = cpi_headline([100.0] * 12 + [103.0, 104.0])
        jolts = {"openings": {"data": monthly(2025, 1, [7600.0, 7740.0])}}

        ticker = build_ticker(existing, cpi, jolts, UPDATED)

        assert ticker["updated"] == "2025-03-12"
        labels = [t["label"] for t in ticker["ticker"]]
        assert labels == ["GDP", "CPI"]
        assert ticker["ticker"][1]["value"] == "4.0%"
        assert ticker["ticker"][1]["direction"] == "up"

        cards = {c["id"]: c for c in ticker["cards"]}
        assert cards["wages"] == {"id": "wages", "value": "$35"}
        assert cards["openings"]["value"] == "7.7M"
        assert cards["openings"]["direction"] == "up"


class TestPublishIndicators:

    @pytest.mark.unit
    def test_only_available_inputs_are_published(self, store):
        write_raw(store, "bls-jolts.json", {"openings": {"data": monthly(2025, 1, [7600.0, 7740.0])}},
                  fetched=UPDATED)

        written = publish_indicators(store)

        assert written == 2
        assert store.read_json("jolts/national.json")["updated"] == UPDATED
        assert store.read_json("ticker.json")["updated"] == "2025-03-12"
        assert store.read_json("cpi/national.json") is None

    @pytest.mark.unit
    def test_no_inputs_writes_nothing(self, store):
        assert publish_indicators(store) == 0
        assert store.read_json("ticker.json") is None
