"""
Search index builder.

Derives a compact keyword index over occupations, SOC major groups and
areas from already-published files. The index is a derived artifact:
it is rebuilt wholesale from its inputs on every run.

Entry shapes::

    occupations  {"c": soc, "t": title, "k": [...], "med": ..., "emp": ...}
    groups       {"c": major code, "t": title, "k": [...], "n": detailed count}
    areas        {"id": fips or cbsa, "t": name, "type": "state"|"metro", "k": [...]}
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from laborcompare.core.storage import ArtifactStore
from laborcompare.geo.fips import STATES
from laborcompare.pipeline.publisher import IndexFile, publish

logger = logging.getLogger(__name__)

SEARCH_INDEX_PATH = "search-index.json"

STOPWORDS = frozenset({"and", "or", "the", "of", "in", "for", "all", "other", "except", "not", "with"})

_NON_WORD = re.compile(r"[^a-z0-9\s-]")
_SPLIT = re.compile(r"[\s-]+")


def _stems(word: str) -> List[str]:
    if word.endswith("ers") or word.endswith("ing") or word.endswith("ors"):
        return [word[:-3]]
    if word.endswith("ists") or word.endswith("ants") or word.endswith("ians"):
        return [word[:-1]]
    if word.endswith("es"):
        # "nurses" -> "nurs" and "nurse"; "boxes" -> "box" and "boxe"
        return [word[:-2], word[:-1]]
    if word.endswith("s") and len(word) > 3:
        return [word[:-1]]
    return []


def generate_keywords(title: str) -> List[str]:
    """
    Lowercased title words plus simple suffix-stripped stems.

    >>> generate_keywords("Registered Nurses")
    ['registered', 'nurses', 'nurs', 'nurse']
    """
    cleaned = _NON_WORD.sub("", (title or "").lower())
    words = [w for w in _SPLIT.split(cleaned) if len(w) > 1]

    keywords: Dict[str, None] = dict.fromkeys(words)
    for word in words:
        for stem in _stems(word):
            keywords.setdefault(stem)

    return [k for k in keywords if len(k) > 1 and k not in STOPWORDS]


def _occupation_sort_key(entry: Mapping[str, Any]):
    return (-(entry.get("emp") or 0), entry["c"])


def build_search_index(
    occupations: Mapping[str, Mapping[str, Any]],
    areas: Iterable[Mapping[str, Any]],
    groups: Mapping[str, Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    Build the search index.

    Args:
        occupations: SOC code -> national compact record with ``title``
        areas: ``{"id", "name", "type"}`` rows, states carrying ``abbr``
        groups: Major group code -> ``{"title", "occupations"}`` from the SOC hierarchy

    Returns:
        ``{"occupations": [...], "areas": [...], "groups": [...]}``
    """
    occupation_entries = [
        {
            "c": code,
            "t": data.get("title", code),
            "k": generate_keywords(data.get("title", "")),
            "med": data.get("med"),
            "emp": data.get("emp"),
        }
        for code, data in occupations.items()
    ]
    occupation_entries.sort(key=_occupation_sort_key)

    group_entries = [
        {
            "c": code,
            "t": group["title"],
            "k": generate_keywords(group["title"]),
            "n": len(group.get("occupations") or []),
        }
        for code, group in sorted(groups.items())
        if group.get("title")
    ]

    area_entries = []
    seen = set()
    for area in areas:
        key = (area["type"], area["id"])
        if key in seen:
            continue
        seen.add(key)
        keywords = generate_keywords(area["name"])
        if area.get("abbr"):
            keywords.append(area["abbr"].lower())
        area_entries.append({"id": area["id"], "t": area["name"], "type": area["type"], "k": keywords})

    return {"occupations": occupation_entries, "areas": area_entries, "groups": group_entries}


def state_areas() -> List[Dict[str, Any]]:
    return [
        {"id": fips, "name": name, "type": "state", "abbr": abbr}
        for fips, (name, abbr) in sorted(STATES.items())
    ]


def metro_areas(store: ArtifactStore) -> List[Dict[str, Any]]:
    """Metros from metro-data.json, then any OEWS metro area file not already listed."""
    areas = []
    metro_data: Optional[Mapping[str, Any]] = store.read_json("metros/metro-data.json")
    if metro_data is None:
        logger.warning("metros/metro-data.json not found; metros come from OEWS area files only")
    else:
        for cbsa, data in sorted((metro_data.get("data") or {}).items()):
            areas.append({"id": cbsa, "name": data.get("name") or cbsa, "type": "metro"})

    known = {a["id"] for a in areas}
    added = 0
    for filename in store.list_json("oews/areas/metros"):
        cbsa = filename[:-5]
        if cbsa in known:
            continue
        area_file = store.read_json(f"oews/areas/metros/{filename}") or {}
        if area_file.get("name"):
            areas.append({"id": cbsa, "name": area_file["name"], "type": "metro"})
            added += 1
    if added:
        logger.info(f"Added {added} metros from OEWS area files")
    return areas


def publish_search_index(store: ArtifactStore) -> int:
    national = store.read_json("oews/national.json")
    if national is None:
        logger.warning("oews/national.json not found; index will have no occupations")
    hierarchy = store.read_json("oews/soc-hierarchy.json") or {}

    index = build_search_index(
        (national or {}).get("occupations") or {},
        state_areas() + metro_areas(store),
        hierarchy,
    )
    logger.info(
        f"Search index: {len(index['occupations'])} occupations, "
        f"{len(index['areas'])} areas, {len(index['groups'])} groups"
    )
    return publish(store, [IndexFile(SEARCH_INDEX_PATH, index, compact=True)])
