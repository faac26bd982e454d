"""
Multi-index publisher.

Fans canonical records out into read-optimized JSON files, one file per
read pattern, so the presentation layer never joins at read time.

OEWS files all come from one ``OccupationDataset``, and each record's
compact form is computed once and shared by every file that lists it,
so a by-occupation file and a by-area file always agree.

Files are built as ``IndexFile`` values first and written afterwards;
building never touches the filesystem.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from laborcompare.core.storage import ArtifactStore
from laborcompare.geo.fips import state_name, state_slug
from laborcompare.geo.resolver import GeoKind
from laborcompare.pipeline.joiner import OccupationDataset
from laborcompare.pipeline.records import CountyRecord, MetroRecord, OccupationRecord, StateRecord

logger = logging.getLogger(__name__)

OEWS_DIRS = {
    "oews/occupations/by-state": GeoKind.STATE,
    "oews/occupations/by-metro": GeoKind.METRO,
    "oews/areas/states": GeoKind.STATE,
    "oews/areas/metros": GeoKind.METRO,
}


@dataclass
class IndexFile:
    """One published file: where it goes, what it holds, how it is serialized."""
    path: str
    payload: Any
    compact: bool = False


def publish(store: ArtifactStore, files: Iterable[IndexFile]) -> int:
    count = 0
    for index_file in files:
        store.write_json(index_file.path, index_file.payload, compact=index_file.compact)
        count += 1
    return count


# =============================================================================
# OEWS
# =============================================================================


def _titles(dataset: OccupationDataset) -> Dict[str, str]:
    """SOC code -> title, national titles first, then any area title."""
    titles: Dict[str, str] = {}
    for record in dataset.scoped(GeoKind.NATION):
        titles.setdefault(record.soc_code, record.title)
    for record in dataset.records:
        titles.setdefault(record.soc_code, record.title)
    return titles


def build_soc_hierarchy(national: Iterable[OccupationRecord]) -> Dict[str, Any]:
    """
    Group national occupations under their 2-digit major group.

    Major group rows (``XX-0000``) give the group title; detailed rows
    are listed sorted by title.
    """
    majors: Dict[str, Dict[str, Any]] = {}
    for record in national:
        if record.group not in ("major", "detailed"):
            continue
        group = majors.setdefault(record.major_group, {"title": "", "occupations": []})
        if record.soc_code.endswith("-0000"):
            group["title"] = record.title
        elif record.group == "detailed":
            group["occupations"].append({"code": record.soc_code, "title": record.title})

    for group in majors.values():
        group["occupations"].sort(key=lambda occ: (occ["title"], occ["code"]))
    return {code: majors[code] for code in sorted(majors)}


def build_oews_indexes(dataset: OccupationDataset) -> List[IndexFile]:
    """Project one OEWS dataset into every OEWS index file."""
    titles = _titles(dataset)
    national = dataset.scoped(GeoKind.NATION)
    compact = {id(r): r.compact() for r in dataset.records}

    files: List[IndexFile] = []

    national_occs = {
        r.soc_code: {"title": r.title, **compact[id(r)]}
        for r in sorted(national, key=lambda r: r.soc_code)
        if r.group == "detailed"
    }
    files.append(IndexFile(
        "oews/national.json",
        {"year": dataset.year, "count": len(national_occs), "occupations": national_occs},
        compact=True,
    ))
    files.append(IndexFile("oews/soc-hierarchy.json", build_soc_hierarchy(national), compact=True))

    by_state: Dict[str, Dict[str, Any]] = {}
    state_areas: Dict[str, Dict[str, Any]] = {}
    for r in dataset.scoped(GeoKind.STATE, "detailed"):
        by_state.setdefault(r.soc_code, {})[r.area_id] = compact[id(r)]
        state_areas.setdefault(r.area_id, {})[r.soc_code] = {"title": r.title, **compact[id(r)]}

    by_metro: Dict[str, Dict[str, Any]] = {}
    metro_areas: Dict[str, Dict[str, Any]] = {}
    metro_names: Dict[str, str] = {}
    for r in dataset.scoped(GeoKind.METRO, "detailed"):
        by_metro.setdefault(r.soc_code, {})[r.area_id] = {"name": r.area_title, **compact[id(r)]}
        metro_areas.setdefault(r.area_id, {})[r.soc_code] = {"title": r.title, **compact[id(r)]}
        metro_names.setdefault(r.area_id, r.area_title)

    for soc in sorted(by_state):
        states = {fips: by_state[soc][fips] for fips in sorted(by_state[soc])}
        files.append(IndexFile(
            f"oews/occupations/by-state/{soc}.json",
            {"soc": soc, "title": titles.get(soc, soc), "states": states},
            compact=True,
        ))

    for soc in sorted(by_metro):
        metros = {cbsa: by_metro[soc][cbsa] for cbsa in sorted(by_metro[soc])}
        files.append(IndexFile(
            f"oews/occupations/by-metro/{soc}.json",
            {"soc": soc, "title": titles.get(soc, soc), "metros": metros},
            compact=True,
        ))

    for fips in sorted(state_areas):
        occupations = {soc: state_areas[fips][soc] for soc in sorted(state_areas[fips])}
        files.append(IndexFile(
            f"oews/areas/states/{fips}.json",
            {"fips": fips, "name": state_name(fips), "count": len(occupations), "occupations": occupations},
            compact=True,
        ))

    for cbsa in sorted(metro_areas):
        occupations = {soc: metro_areas[cbsa][soc] for soc in sorted(metro_areas[cbsa])}
        files.append(IndexFile(
            f"oews/areas/metros/{cbsa}.json",
            {"cbsa": cbsa, "name": metro_names[cbsa], "count": len(occupations), "occupations": occupations},
            compact=True,
        ))

    logger.info(
        f"OEWS indexes: {len(national_occs)} national occupations, "
        f"{len(by_state)} by-state, {len(by_metro)} by-metro, "
        f"{len(state_areas)} state areas, {len(metro_areas)} metro areas"
    )
    return files


def publish_oews(store: ArtifactStore, dataset: OccupationDataset) -> int:
    """
    Write every OEWS index file and drop files for occupations or areas no longer present.

    A scope with no records at all (a release whose state or metro
    workbook failed to load) leaves its published directories untouched.
    """
    files = build_oews_indexes(dataset)
    count = publish(store, files)
    for reldir, kind in OEWS_DIRS.items():
        if not dataset.scoped(kind):
            logger.warning(f"No {kind.value} OEWS records; keeping published {reldir}")
            continue
        keep = {f.path.rsplit("/", 1)[1] for f in files if f.path.startswith(reldir + "/")}
        store.remove_stale(reldir, keep)
    return count


# =============================================================================
# Geography
# =============================================================================


def county_filename(state_fips: str) -> str:
    return f"{state_fips}-{state_slug(state_fips)}.json"


def build_geography_indexes(
    counties_by_state: Mapping[str, Mapping[str, CountyRecord]],
    states: Mapping[str, StateRecord],
    metros: Mapping[str, MetroRecord],
    updated: Optional[str] = None,
) -> List[IndexFile]:
    """County, state and metro files from canonical geography records."""
    files: List[IndexFile] = []
    manifest = []
    all_counties: Dict[str, Any] = {}

    for fips in sorted(counties_by_state):
        counties = counties_by_state[fips]
        if not counties:
            continue
        name = state_name(fips)
        filename = county_filename(fips)
        county_data = {c: counties[c].to_dict() for c in sorted(counties)}
        files.append(IndexFile(
            f"counties/{filename}",
            {"state_fips": fips, "state_name": name, "counties": county_data},
        ))
        manifest.append({"fips": fips, "name": name, "filename": filename, "county_count": len(counties)})
        for county_fips, data in county_data.items():
            all_counties[county_fips] = {**data, "state_fips": fips, "state_name": name}

    files.append(IndexFile("counties/index.json", manifest))
    files.append(IndexFile("counties/all-counties.json", all_counties, compact=True))

    economic = {states[fips].name: states[fips].to_dict() for fips in sorted(states)}
    files.append(IndexFile("states/economic-data.json", {"updated": updated, "data": economic}))

    metro_data = {cbsa: metros[cbsa].to_dict() for cbsa in sorted(metros)}
    files.append(IndexFile("metros/metro-data.json", {"updated": updated, "data": metro_data}))

    logger.info(
        f"Geography indexes: {len(manifest)} states with counties, "
        f"{len(all_counties)} counties, {len(metro_data)} metros"
    )
    return files


def publish_geography(
    store: ArtifactStore,
    counties_by_state: Mapping[str, Mapping[str, CountyRecord]],
    states: Mapping[str, StateRecord],
    metros: Mapping[str, MetroRecord],
    updated: Optional[str] = None,
) -> int:
    files = build_geography_indexes(counties_by_state, states, metros, updated)
    return publish(store, files)
