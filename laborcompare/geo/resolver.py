"""
Geographic identity resolver.

Each source codes geography its own way:

- BLS LAUS/CES and Census: 2-digit state and 5-digit county FIPS
- BEA Regional: 5-digit GeoFips, with states as ``SS000``
- OEWS: 2-digit or 7-digit (``SS00000``) state areas, CBSA-based metro areas
- CES metro series: 10-digit zero-padded area codes

``GeoResolver.normalize`` maps all of these to one canonical id per
geography: the 2-digit state FIPS, the 5-digit county FIPS, or the bare
5-digit CBSA code. It is idempotent.

Connecticut replaced its eight counties with nine planning regions in
2022. Census publishes the regions; some BLS and BEA tables still carry
the legacy county codes. Legacy codes normalize to the region that
covers most of the old county, and lookups fall back to the legacy alias
before reporting no data. Western Connecticut (09190) has no legacy
counterpart; its alias is the sentinel ``CT_NO_LEGACY_COUNTERPART``.
"""
import enum
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from laborcompare.geo.fips import STATES, state_name
from laborcompare.geo.metros import CURATED_METROS, Metro

logger = logging.getLogger(__name__)

# A FIPS-shaped code that is never assigned, so any lookup with it misses
CT_NO_LEGACY_COUNTERPART = "09999"

CT_REGION_TO_LEGACY: Dict[str, str] = {
    "09110": "09001",
    "09120": "09003",
    "09130": "09005",
    "09140": "09007",
    "09150": "09009",
    "09160": "09011",
    "09170": "09013",
    "09180": "09015",
    "09190": CT_NO_LEGACY_COUNTERPART,
}

CT_LEGACY_TO_REGION: Dict[str, str] = {
    legacy: region
    for region, legacy in CT_REGION_TO_LEGACY.items()
    if legacy != CT_NO_LEGACY_COUNTERPART
}

CT_REGION_NAMES: Dict[str, str] = {
    "09110": "Capitol Planning Region",
    "09120": "Greater Bridgeport Planning Region",
    "09130": "Lower Connecticut River Valley Planning Region",
    "09140": "Naugatuck Valley Planning Region",
    "09150": "Northeastern Connecticut Planning Region",
    "09160": "Northwest Hills Planning Region",
    "09170": "South Central Connecticut Planning Region",
    "09180": "Southeastern Connecticut Planning Region",
    "09190": "Western Connecticut Planning Region",
}

_ABBR_TO_FIPS = {abbr: fips for fips, (_, abbr) in STATES.items()}
_NAME_TO_FIPS = {name.lower(): fips for fips, (name, _) in STATES.items()}


class GeoResolutionError(ValueError):
    """Raised when an identifier cannot be mapped to a known geography."""


class GeoScheme(str, enum.Enum):
    STATE = "state"
    COUNTY = "county"
    METRO = "metro"


class GeoKind(str, enum.Enum):
    NATION = "nation"
    STATE = "state"
    COUNTY = "county"
    METRO = "metro"


@dataclass(frozen=True)
class GeographicEntity:
    canonical_id: str
    kind: GeoKind
    display_name: str
    aliases: Tuple[str, ...] = ()


NATION = GeographicEntity(canonical_id="US", kind=GeoKind.NATION, display_name="United States")


def _clean(raw: Any) -> str:
    if raw is None:
        raise GeoResolutionError("Empty geographic identifier")
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    text = str(raw).strip()
    if not text:
        raise GeoResolutionError("Empty geographic identifier")
    return text


def _name_key(name: str) -> str:
    return re.sub(r"\s+", " ", name.strip().lower())


class GeoResolver:
    """
    Normalizes raw identifiers and resolves aliases.

    Metro display names are resolved against the curated list plus any
    names registered at runtime (OEWS area titles).
    """

    def __init__(self, metros: Optional[Mapping[str, Metro]] = None):
        self.metros: Dict[str, Metro] = dict(metros if metros is not None else CURATED_METROS)
        self._metro_names: Dict[str, str] = {}
        for metro in self.metros.values():
            self.register_metro_name(metro.name, metro.cbsa)

    def register_metro_name(self, name: str, cbsa: str) -> None:
        if name:
            self._metro_names.setdefault(_name_key(name), cbsa)

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, raw_id: Any, scheme: GeoScheme) -> str:
        """
        Map a raw identifier in ``scheme`` to its canonical id.

        Raises:
            GeoResolutionError: If the identifier is not a known geography
        """
        if scheme == GeoScheme.STATE:
            return self.normalize_state(raw_id)
        if scheme == GeoScheme.COUNTY:
            return self.normalize_county(raw_id)
        if scheme == GeoScheme.METRO:
            return self.normalize_metro(raw_id)
        raise GeoResolutionError(f"Unknown scheme: {scheme}")

    def normalize_state(self, raw_id: Any) -> str:
        text = _clean(raw_id)

        if not text.isdigit():
            fips = _ABBR_TO_FIPS.get(text.upper()) or _NAME_TO_FIPS.get(text.lower())
            if fips is None:
                raise GeoResolutionError(f"Unknown state: {text!r}")
            return fips

        if len(text) <= 2:
            fips = text.zfill(2)
        elif len(text) == 5 and text.endswith("000"):
            fips = text[:2]
        elif len(text) == 7 and text.endswith("00000"):
            fips = text[:2]
        else:
            raise GeoResolutionError(f"Not a state code: {text!r}")

        if fips not in STATES:
            raise GeoResolutionError(f"Unknown state FIPS: {fips!r}")
        return fips

    def normalize_county(self, raw_id: Any) -> str:
        text = _clean(raw_id)
        if not text.isdigit() or len(text) > 5:
            raise GeoResolutionError(f"Not a county FIPS: {text!r}")
        fips = text.zfill(5)
        if fips[:2] not in STATES:
            raise GeoResolutionError(f"County {fips} is outside the 50 states and DC")
        return CT_LEGACY_TO_REGION.get(fips, fips)

    def normalize_metro(self, raw_id: Any) -> str:
        text = _clean(raw_id)
        if text.isdigit():
            if len(text) > 5:
                return text[-5:]
            return text.zfill(5)

        cbsa = self._metro_names.get(_name_key(text))
        if cbsa is None:
            raise GeoResolutionError(f"Unknown metro name: {text!r}")
        return cbsa

    def try_normalize(self, raw_id: Any, scheme: GeoScheme) -> Optional[str]:
        try:
            return self.normalize(raw_id, scheme)
        except GeoResolutionError as e:
            logger.debug(f"Skipping identifier: {e}")
            return None

    # ------------------------------------------------------------------
    # Aliases
    # ------------------------------------------------------------------

    @staticmethod
    def legacy_alias(county_fips: str) -> Optional[str]:
        """
        Legacy county code for a Connecticut planning region.

        Returns CT_NO_LEGACY_COUNTERPART for Western Connecticut and None
        for any county outside the remap.
        """
        return CT_REGION_TO_LEGACY.get(county_fips)

    def aliases(self, canonical_id: str) -> List[str]:
        legacy = self.legacy_alias(canonical_id)
        if legacy and legacy != CT_NO_LEGACY_COUNTERPART:
            return [legacy]
        return []

    def lookup(self, table: Mapping[str, Any], canonical_id: str) -> Optional[Any]:
        """Find ``canonical_id`` in ``table``, falling back through its aliases."""
        if canonical_id in table:
            return table[canonical_id]
        for alias in self.aliases(canonical_id):
            if alias in table:
                logger.debug(f"Resolved {canonical_id} via legacy alias {alias}")
                return table[alias]
        return None

    def rekey_counties(self, table: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Re-key a county table by canonical FIPS.

        When both a legacy code and its region are present, the region's
        own entry wins.
        """
        rekeyed: Dict[str, Any] = {}
        for raw_key in sorted(table):
            canonical = self.try_normalize(raw_key, GeoScheme.COUNTY)
            if canonical is None:
                continue
            if canonical in rekeyed and raw_key != canonical:
                continue
            rekeyed[canonical] = table[raw_key]
        return rekeyed

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def state_entity(self, fips: str) -> GeographicEntity:
        canonical = self.normalize_state(fips)
        return GeographicEntity(canonical, GeoKind.STATE, state_name(canonical))

    def county_entity(self, fips: str, display_name: Optional[str] = None) -> GeographicEntity:
        canonical = self.normalize_county(fips)
        name = display_name or CT_REGION_NAMES.get(canonical) or f"County {canonical}"
        return GeographicEntity(canonical, GeoKind.COUNTY, name, tuple(self.aliases(canonical)))

    def metro_entity(self, raw_id: Any, display_name: Optional[str] = None) -> GeographicEntity:
        cbsa = self.normalize_metro(raw_id)
        metro = self.metros.get(cbsa)
        name = display_name or (metro.name if metro else f"Metro {cbsa}")
        return GeographicEntity(cbsa, GeoKind.METRO, name, (cbsa.zfill(10),))
