"""
Unit tests for the multi-index publisher.
"""
import json

import pytest

from laborcompare.geo.resolver import GeoKind, GeoResolver
from laborcompare.pipeline.joiner import (
    OccupationDataset,
    join_counties,
    join_metros,
    join_states,
    load_source_tables,
)
from laborcompare.pipeline.publisher import (
    build_oews_indexes,
    build_soc_hierarchy,
    publish_geography,
    publish_oews,
)
from laborcompare.pipeline.records import OccupationRecord


def occ(kind, area_id, soc="29-1141", title="Registered Nurses", group="detailed", area_title="", **values):
    return OccupationRecord(
        soc_code=soc,
        title=title,
        group=group,
        area_kind=kind,
        area_id=area_id,
        area_title=area_title,
        **values,
    )


@pytest.fixture
def dataset():
    return OccupationDataset(
        year=2024,
        records=[
            occ("nation", "US", soc="29-0000", title="Healthcare Practitioners", group="major", employment=9e6),
            occ("nation", "US", employment=3300000.0, annual_median=93600.0),
            occ("nation", "US", soc="29-1228", title="Physicians, All Other", employment=80000.0,
                annual_median=239200.0, annual_p90=239200.0, capped=["annual_median", "annual_p90"]),
            occ("state", "06", employment=320000.0, annual_median=148330.0, location_quotient=0.9),
            occ("state", "10", employment=11000.0, annual_median=None),
            occ("metro", "35620", employment=190000.0, annual_median=120000.0,
                area_title="New York-Newark-Jersey City, NY-NJ"),
            occ("state", "06", soc="29-1228", title="Physicians, All Other", employment=9000.0),
        ],
    )


def by_path(files):
    return {f.path: f for f in files}


# =============================================================================
# OEWS indexes
# =============================================================================


class TestOewsIndexes:

    @pytest.mark.unit
    def test_by_state_and_area_files_agree(self, dataset):
        files = by_path(build_oews_indexes(dataset))

        by_state = files["oews/occupations/by-state/29-1141.json"].payload
        area = files["oews/areas/states/06.json"].payload

        from_occupation = by_state["states"]["06"]
        from_area = {k: v for k, v in area["occupations"]["29-1141"].items() if k != "title"}
        assert from_occupation == from_area == {"emp": 320000.0, "med": 148330.0, "lq": 0.9}

    @pytest.mark.unit
    def test_national_lists_detailed_only(self, dataset):
        national = by_path(build_oews_indexes(dataset))["oews/national.json"].payload
        assert national["year"] == 2024
        assert national["count"] == 2
        assert list(national["occupations"]) == ["29-1141", "29-1228"]

    @pytest.mark.unit
    def test_null_fields_omitted_and_caps_flagged(self, dataset):
        files = by_path(build_oews_indexes(dataset))

        delaware = files["oews/occupations/by-state/29-1141.json"].payload["states"]["10"]
        assert delaware == {"emp": 11000.0}

        capped = files["oews/national.json"].payload["occupations"]["29-1228"]
        assert capped["med"] == 239200.0
        assert capped["cap"] == ["med", "p90"]

    @pytest.mark.unit
    def test_metro_files_carry_names(self, dataset):
        files = by_path(build_oews_indexes(dataset))
        by_metro = files["oews/occupations/by-metro/29-1141.json"].payload
        assert by_metro["metros"]["35620"]["name"] == "New York-Newark-Jersey City, NY-NJ"
        assert files["oews/areas/metros/35620.json"].payload["count"] == 1

    @pytest.mark.unit
    def test_oews_files_are_compact(self, dataset):
        assert all(f.compact for f in build_oews_indexes(dataset))

    @pytest.mark.unit
    def test_soc_hierarchy(self, dataset):
        hierarchy = build_soc_hierarchy(dataset.scoped(GeoKind.NATION))
        assert hierarchy["29"]["title"] == "Healthcare Practitioners"
        assert [o["title"] for o in hierarchy["29"]["occupations"]] == [
            "Physicians, All Other",
            "Registered Nurses",
        ]


class TestPublishOews:

    @pytest.mark.unit
    def test_writes_compact_json(self, store, dataset):
        publish_oews(store, dataset)
        text = store.path("oews/occupations/by-state/29-1141.json").read_text()
        assert ": " not in text
        assert json.loads(text)["soc"] == "29-1141"

    @pytest.mark.unit
    def test_stale_files_removed(self, store, dataset):
        store.write_json("oews/occupations/by-state/11-1011.json", {"soc": "11-1011"})
        store.write_json("oews/areas/states/72.json", {"fips": "72"})

        publish_oews(store, dataset)

        assert store.list_json("oews/occupations/by-state") == ["29-1141.json", "29-1228.json"]
        assert store.list_json("oews/areas/states") == ["06.json", "10.json"]

    @pytest.mark.unit
    def test_scope_without_records_keeps_published_files(self, store, dataset):
        publish_oews(store, dataset)
        national_only = OccupationDataset(year=dataset.year, records=dataset.scoped(GeoKind.NATION))

        publish_oews(store, national_only)

        assert store.list_json("oews/occupations/by-state") == ["29-1141.json", "29-1228.json"]
        assert store.list_json("oews/areas/states") == ["06.json", "10.json"]
        assert store.list_json("oews/areas/metros") == ["35620.json"]
        assert store.list_json("oews/occupations/by-metro") == ["29-1141.json"]

    @pytest.mark.unit
    def test_scope_with_records_still_drops_stale_files(self, store, dataset):
        publish_oews(store, dataset)
        without_metros = OccupationDataset(
            year=dataset.year,
            records=[r for r in dataset.records if r.area_kind != "metro" and r.area_id != "10"],
        )

        publish_oews(store, without_metros)

        assert store.list_json("oews/areas/states") == ["06.json"]
        assert store.list_json("oews/areas/metros") == ["35620.json"]

    @pytest.mark.unit
    def test_publish_twice_is_byte_identical(self, store, dataset):
        publish_oews(store, dataset)
        first = store.path("oews/national.json").read_bytes()
        publish_oews(store, dataset)
        assert store.path("oews/national.json").read_bytes() == first


# =============================================================================
# Geography
# =============================================================================


class TestGeographyIndexes:

    @pytest.fixture
    def published(self, raw_geography):
        resolver = GeoResolver()
        tables = load_source_tables(raw_geography)
        counties = join_counties(tables, resolver)
        states = join_states(tables, counties, resolver)
        metros = join_metros(tables, resolver)
        publish_geography(raw_geography, counties, states, metros, tables.updated)
        return raw_geography

    @pytest.mark.unit
    def test_county_files_and_manifest(self, published):
        manifest = published.read_json("counties/index.json")
        assert manifest == [
            {"fips": "09", "name": "Connecticut", "filename": "09-connecticut.json", "county_count": 3},
            {"fips": "10", "name": "Delaware", "filename": "10-delaware.json", "county_count": 1},
        ]

        ct = published.read_json("counties/09-connecticut.json")
        assert ct["state_fips"] == "09"
        assert ct["counties"]["09110"]["unemployment_rate"] == 4.5
        assert ct["counties"]["09190"]["employment"] is None
        assert ct["counties"]["09130"]["population"] is None
        assert ct["counties"]["09130"]["median_household_income"] == 70000.0

    @pytest.mark.unit
    def test_all_counties_matches_state_files(self, published):
        everything = published.read_json("counties/all-counties.json")
        kent = published.read_json("counties/10-delaware.json")["counties"]["10001"]
        assert everything["10001"] == {**kent, "state_fips": "10", "state_name": "Delaware"}

    @pytest.mark.unit
    def test_state_and_metro_files(self, published):
        economic = published.read_json("states/economic-data.json")
        assert economic["updated"] == "2025-03-02T10:00:00+00:00"
        assert economic["data"]["Connecticut"]["median_household_income"] == 56666.67
        assert economic["data"]["Connecticut"]["county_count"] == 3
        assert economic["data"]["Connecticut"]["population"] == 300.0
        assert economic["data"]["Delaware"]["fips"] == "10"

        metros = published.read_json("metros/metro-data.json")
        assert metros["data"]["35620"]["total_nonfarm_employment"] == 9900.5
        assert "37980" in metros["data"]
