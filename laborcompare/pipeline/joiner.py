"""
Joiner / record builder.

Merges per-source partial records into canonical records. Every source
is optional here: a missing source only leaves the fields it would have
supplied as None. Precedence per field is fixed:

County
    unemployment_rate   LAUS, else 100 * ACS unemployed / ACS labor force
    labor_force         LAUS, else ACS
    employment          LAUS
    per_capita_income   BEA, else ACS
    name                ACS, else BEA, else "County {fips}"

State
    unemployment_rate   LAUS, else 100 * LAUS unemployed / LAUS labor force
    labor_force         LAUS, else sum of counties
    employment          LAUS, else sum of counties
    population          sum of counties
    median_household_income   population-weighted mean of counties
    per_capita_income   BEA state row

Output is deterministic: the same raw inputs give identical records.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from laborcompare.core.numeric import pct, round_or_none, sum_present
from laborcompare.core.storage import ArtifactStore
from laborcompare.geo.fips import STATE_FIPS, state_name
from laborcompare.geo.resolver import GeoKind, GeoResolver, GeographicEntity, GeoScheme
from laborcompare.pipeline.records import (
    RAW_FIELDS,
    CountyRecord,
    MetroRecord,
    OccupationRecord,
    StateRecord,
)

logger = logging.getLogger(__name__)

Partial = Optional[Mapping[str, Any]]

AREA_KINDS = {1: GeoKind.NATION, 2: GeoKind.STATE, 4: GeoKind.METRO}


# =============================================================================
# Inputs
# =============================================================================


@dataclass
class SourceTables:
    """Raw artifact payloads, keyed the way each source keys them."""

    laus_states: Dict[str, Any] = field(default_factory=dict)
    laus_counties: Dict[str, Any] = field(default_factory=dict)
    ces_states: Dict[str, Any] = field(default_factory=dict)
    ces_metros: Dict[str, Any] = field(default_factory=dict)
    acs_counties: Dict[str, Any] = field(default_factory=dict)
    bea_counties: Dict[str, Any] = field(default_factory=dict)
    bea_states: Dict[str, Any] = field(default_factory=dict)
    fetched: Dict[str, str] = field(default_factory=dict)

    @property
    def updated(self) -> Optional[str]:
        """Newest fetch timestamp among the inputs, used as the output date."""
        return max(self.fetched.values()) if self.fetched else None


def _data(envelope: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not envelope:
        return {}
    return dict(envelope.get("data") or {})


def load_source_tables(store: ArtifactStore) -> SourceTables:
    """
    Read every geography raw artifact that exists.

    Census ACS is the county backbone and must be present; the others
    are optional.

    Raises:
        MissingArtifactError: If census-acs.json is absent
    """
    envelopes = {
        "census-acs.json": store.read_raw("census-acs.json", required=True),
        "bls-laus-states.json": store.read_raw("bls-laus-states.json"),
        "bls-laus-counties.json": store.read_raw("bls-laus-counties.json"),
        "bls-ces-states.json": store.read_raw("bls-ces-states.json"),
        "bls-ces-metros.json": store.read_raw("bls-ces-metros.json"),
        "bea-income.json": store.read_raw("bea-income.json"),
    }
    bea = _data(envelopes["bea-income.json"])

    return SourceTables(
        laus_states=_data(envelopes["bls-laus-states.json"]),
        laus_counties=_data(envelopes["bls-laus-counties.json"]),
        ces_states=_data(envelopes["bls-ces-states.json"]),
        ces_metros=_data(envelopes["bls-ces-metros.json"]),
        acs_counties=_data(envelopes["census-acs.json"]),
        bea_counties=dict(bea.get("counties") or {}),
        bea_states=dict(bea.get("states") or {}),
        fetched={
            name: env["fetched"]
            for name, env in sorted(envelopes.items())
            if env and env.get("fetched")
        },
    )


# =============================================================================
# Aggregation helpers
# =============================================================================


def weighted_mean(
    values: Sequence[Optional[float]],
    weights: Sequence[Optional[float]],
    digits: int = 2,
) -> Optional[float]:
    """
    Weighted mean over the pairs where both value and weight are present.

    A pair missing either side is left out of numerator and denominator.
    Returns None when no pair contributes or the weights sum to zero.
    """
    numerator = 0.0
    denominator = 0.0
    for value, weight in zip(values, weights):
        if value is None or weight is None:
            continue
        numerator += value * weight
        denominator += weight
    if denominator <= 0:
        return None
    return round(numerator / denominator, digits)


def roll_up(values: Iterable[Optional[float]]) -> Optional[float]:
    """Sum of the non-null values, None if none contribute."""
    return sum_present(values)


def first_present(*values: Optional[float]) -> Optional[float]:
    for value in values:
        if value is not None:
            return value
    return None


def _get(partial: Partial, key: str) -> Optional[Any]:
    if not partial:
        return None
    return partial.get(key)


# =============================================================================
# Record builders
# =============================================================================


def build_county_record(entity: GeographicEntity, partials: Mapping[str, Partial]) -> CountyRecord:
    """
    Build one county from its ``laus``, ``acs`` and ``bea`` partials.

    Any partial may be None.
    """
    laus = partials.get("laus")
    acs = partials.get("acs")
    bea = partials.get("bea")

    name = _get(acs, "name") or _get(bea, "geo_name") or entity.display_name

    derived_rate = pct(_get(acs, "unemployed"), _get(acs, "labor_force"))
    return CountyRecord(
        fips=entity.canonical_id,
        name=name,
        unemployment_rate=round_or_none(first_present(_get(laus, "unemployment_rate"), derived_rate), 1),
        labor_force=first_present(_get(laus, "labor_force"), _get(acs, "labor_force")),
        employment=_get(laus, "employment"),
        median_household_income=_get(acs, "median_household_income"),
        median_earnings=_get(acs, "median_earnings"),
        per_capita_income=first_present(_get(bea, "per_capita_income"), _get(acs, "per_capita_income")),
        median_home_value=_get(acs, "median_home_value"),
        median_rent=_get(acs, "median_rent"),
        population=_get(acs, "population"),
        poverty_rate=round_or_none(_get(acs, "poverty_rate"), 1),
        median_age=round_or_none(_get(acs, "median_age"), 1),
        bachelors_or_higher_pct=round_or_none(_get(acs, "bachelors_or_higher_pct"), 1),
        hs_diploma_or_higher_pct=round_or_none(_get(acs, "hs_diploma_or_higher_pct"), 1),
        gini_index=round_or_none(_get(acs, "gini_index"), 3),
        homeownership_rate=round_or_none(_get(acs, "homeownership_rate"), 1),
        vacancy_rate=round_or_none(_get(acs, "vacancy_rate"), 1),
    )


def build_state_record(
    entity: GeographicEntity,
    partials: Mapping[str, Partial],
    counties: Sequence[CountyRecord],
) -> StateRecord:
    """Build one state from its ``laus``, ``ces`` and ``bea`` partials plus its counties."""
    laus = partials.get("laus")
    ces = partials.get("ces")
    bea = partials.get("bea")

    derived_rate = pct(_get(laus, "unemployment_count"), _get(laus, "labor_force"))
    return StateRecord(
        fips=entity.canonical_id,
        name=entity.display_name,
        unemployment_rate=round_or_none(first_present(_get(laus, "unemployment_rate"), derived_rate), 1),
        labor_force=first_present(_get(laus, "labor_force"), roll_up(c.labor_force for c in counties)),
        employment=first_present(_get(laus, "employment"), roll_up(c.employment for c in counties)),
        unemployment_count=_get(laus, "unemployment_count"),
        total_nonfarm_employment=_get(ces, "total_nonfarm_employment"),
        avg_hourly_earnings=round_or_none(_get(ces, "avg_hourly_earnings"), 2),
        avg_weekly_earnings=round_or_none(_get(ces, "avg_weekly_earnings"), 2),
        avg_weekly_hours=round_or_none(_get(ces, "avg_weekly_hours"), 1),
        per_capita_income=_get(bea, "per_capita_income"),
        population=roll_up(c.population for c in counties),
        median_household_income=weighted_mean(
            [c.median_household_income for c in counties],
            [c.population for c in counties],
        ),
        county_count=len(counties),
    )


def build_metro_record(entity: GeographicEntity, partials: Mapping[str, Partial]) -> MetroRecord:
    ces = partials.get("ces")
    return MetroRecord(
        cbsa=entity.canonical_id,
        name=entity.display_name,
        area_code=entity.canonical_id.zfill(10),
        total_nonfarm_employment=_get(ces, "total_nonfarm_employment"),
        avg_hourly_earnings=round_or_none(_get(ces, "avg_hourly_earnings"), 2),
        avg_weekly_earnings=round_or_none(_get(ces, "avg_weekly_earnings"), 2),
        avg_weekly_hours=round_or_none(_get(ces, "avg_weekly_hours"), 1),
    )


# =============================================================================
# Joins
# =============================================================================


def join_counties(tables: SourceTables, resolver: GeoResolver) -> Dict[str, Dict[str, CountyRecord]]:
    """
    Build every county, grouped by state FIPS.

    The county set is the union of ACS and LAUS after normalization, so
    legacy Connecticut codes land on their planning region.
    """
    acs = resolver.rekey_counties(tables.acs_counties)
    laus = resolver.rekey_counties(tables.laus_counties)
    bea = resolver.rekey_counties(tables.bea_counties)

    by_state: Dict[str, Dict[str, CountyRecord]] = {}
    for fips in sorted(set(acs) | set(laus)):
        partials = {
            "acs": resolver.lookup(acs, fips),
            "laus": resolver.lookup(laus, fips),
            "bea": resolver.lookup(bea, fips),
        }
        entity = resolver.county_entity(fips)
        record = build_county_record(entity, partials)
        by_state.setdefault(record.state_fips, {})[fips] = record

    missing_laus = len(set(acs) - set(laus))
    if laus and missing_laus:
        logger.info(f"{missing_laus} ACS counties have no LAUS data; using ACS labor figures")
    return {state: by_state[state] for state in sorted(by_state)}


def join_states(
    tables: SourceTables,
    counties_by_state: Mapping[str, Mapping[str, CountyRecord]],
    resolver: GeoResolver,
) -> Dict[str, StateRecord]:
    """Build every state that has counties or any state-level source row."""
    laus = _rekey_states(tables.laus_states, resolver)
    ces = _rekey_states(tables.ces_states, resolver)
    bea = _rekey_states(tables.bea_states, resolver)

    states: Dict[str, StateRecord] = {}
    for fips in STATE_FIPS:
        counties = list((counties_by_state.get(fips) or {}).values())
        if not counties and fips not in laus and fips not in ces and fips not in bea:
            logger.warning(f"No data for {state_name(fips)} ({fips})")
            continue
        partials = {"laus": laus.get(fips), "ces": ces.get(fips), "bea": bea.get(fips)}
        states[fips] = build_state_record(resolver.state_entity(fips), partials, counties)
    return states


def join_metros(tables: SourceTables, resolver: GeoResolver) -> Dict[str, MetroRecord]:
    """
    Build the curated metros plus any other metro CES returned.

    Curated metros without CES data are kept with null fields so the
    metro list stays stable between runs.
    """
    ces: Dict[str, Any] = {}
    for raw_key in sorted(tables.ces_metros):
        cbsa = resolver.try_normalize(raw_key, GeoScheme.METRO)
        if cbsa is not None:
            ces.setdefault(cbsa, tables.ces_metros[raw_key])

    metros: Dict[str, MetroRecord] = {}
    for cbsa in sorted(set(ces) | set(resolver.metros)):
        entity = resolver.metro_entity(cbsa)
        metros[cbsa] = build_metro_record(entity, {"ces": ces.get(cbsa)})

    with_data = sum(1 for m in metros.values() if m.has_data)
    logger.info(f"Metros: {with_data} of {len(metros)} have CES data")
    return metros


def _rekey_states(table: Mapping[str, Any], resolver: GeoResolver) -> Dict[str, Any]:
    rekeyed: Dict[str, Any] = {}
    for raw_key in sorted(table):
        fips = resolver.try_normalize(raw_key, GeoScheme.STATE)
        if fips is not None:
            rekeyed.setdefault(fips, table[raw_key])
    return rekeyed


# =============================================================================
# Occupations
# =============================================================================


@dataclass
class OccupationDataset:
    """All OEWS records of one release, the single input of every OEWS index file."""

    year: Optional[int]
    records: List[OccupationRecord]

    def scoped(self, kind: GeoKind, group: Optional[str] = None) -> List[OccupationRecord]:
        return [
            r for r in self.records
            if r.area_kind == kind.value and (group is None or r.group == group)
        ]


def _area_id(row: Mapping[str, Any], kind: GeoKind, resolver: GeoResolver) -> Optional[str]:
    if kind == GeoKind.NATION:
        return "US"
    if kind == GeoKind.STATE:
        return resolver.try_normalize(row.get("area"), GeoScheme.STATE)
    return resolver.try_normalize(row.get("area"), GeoScheme.METRO)


def build_occupation_records(rows: Iterable[Mapping[str, Any]], resolver: GeoResolver) -> List[OccupationRecord]:
    """
    Convert normalized OEWS rows into occupation records.

    Rows for other area types (territories, nonmetro areas) and rows whose
    area cannot be resolved are dropped. The first row wins for a
    duplicated (area, occupation) pair. Metro titles are registered with
    the resolver so they can be looked up by name.
    """
    records: List[OccupationRecord] = []
    seen = set()
    unresolved = 0

    for row in rows:
        kind = AREA_KINDS.get(row.get("area_type"))
        if kind is None:
            continue
        area_id = _area_id(row, kind, resolver)
        if area_id is None:
            unresolved += 1
            continue

        key: Tuple[str, str, str] = (kind.value, area_id, row["occ_code"])
        if key in seen:
            continue
        seen.add(key)

        if kind == GeoKind.METRO:
            resolver.register_metro_name(row.get("area_title", ""), area_id)

        values = {attr: row.get(raw) for raw, attr in RAW_FIELDS.items()}
        capped = [RAW_FIELDS[name] for name in row.get("capped", []) if name in RAW_FIELDS]
        records.append(
            OccupationRecord(
                soc_code=row["occ_code"],
                title=row.get("occ_title", ""),
                group=row.get("o_group", ""),
                area_kind=kind.value,
                area_id=area_id,
                area_title=row.get("area_title", ""),
                capped=capped,
                **values,
            )
        )

    if unresolved:
        logger.warning(f"Dropped {unresolved} OEWS rows with unrecognized area codes")
    return records


def load_occupation_dataset(store: ArtifactStore, resolver: GeoResolver) -> OccupationDataset:
    """
    Raises:
        MissingArtifactError: If oews-raw.json is absent
    """
    envelope = store.read_raw("oews-raw.json", required=True)
    data = envelope.get("data") or {}
    records = build_occupation_records(data.get("rows") or [], resolver)
    logger.info(f"Loaded {len(records)} OEWS records for {data.get('year')}")
    return OccupationDataset(year=data.get("year"), records=records)
