"""
Defensive numeric parsing for government data.

Upstream files mix real numbers with placeholder tokens: BLS uses "-"
for unavailable months, BEA uses "(NA)"/"(D)" for suppressed cells,
OEWS uses "*" and "**" for unpublished estimates and "#" for wages above
the published cap, and the Census API encodes annotations as large
negative integers. Everything here turns such values into ``None`` so no
placeholder ever reaches a canonical record.
"""
import math
from typing import Any, Iterable, Optional, Tuple

SENTINEL_TOKENS = frozenset({
    "",
    "-",
    "--",
    "(NA)",
    "(NM)",
    "(D)",
    "(L)",
    "(S)",
    "(X)",
    "*",
    "**",
    "***",
    "#",
    "N/A",
    "NA",
    "null",
    "None",
})

# Census API annotation values (jam values) for suppressed estimates
CENSUS_ANNOTATION_VALUES = frozenset({
    -999999999.0,
    -888888888.0,
    -666666666.0,
    -555555555.0,
    -333333333.0,
    -222222222.0,
})

WAGE_CAP_TOKEN = "#"


def is_sentinel(raw: Any) -> bool:
    """True when ``raw`` is a provider placeholder rather than a value."""
    if raw is None:
        return True
    if isinstance(raw, float) and not math.isfinite(raw):
        return True
    if isinstance(raw, str):
        return raw.strip() in SENTINEL_TOKENS
    return False


def parse_number(raw: Any) -> Optional[float]:
    """
    Convert a raw upstream cell into a float or None.

    Handles comma-grouped numbers ("1,234.5"), currency and percent
    signs, placeholder tokens, NaN and infinities. Booleans are not
    numbers.

    Args:
        raw: Cell value as delivered by the provider

    Returns:
        Clean float, or None for anything that is not a usable number
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if text in SENTINEL_TOKENS:
            return None
        text = text.replace(",", "").replace("$", "").replace("%", "").strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None

    if not math.isfinite(value):
        return None
    return value


def parse_census_number(raw: Any) -> Optional[float]:
    """Like parse_number, but also rejects Census annotation values."""
    value = parse_number(raw)
    if value is None or value in CENSUS_ANNOTATION_VALUES:
        return None
    if value <= -666666666:
        return None
    return value


def parse_wage(raw: Any, cap: float) -> Tuple[Optional[float], bool]:
    """
    Parse an OEWS wage cell.

    Returns ``(value, capped)``. A "#" cell means the true wage is at or
    above ``cap``; it becomes ``(cap, True)`` so consumers can rank it
    while still knowing it is a floor, not an estimate.
    """
    if isinstance(raw, str) and raw.strip() == WAGE_CAP_TOKEN:
        return cap, True
    return parse_number(raw), False


def round_or_none(value: Optional[float], digits: int = 1) -> Optional[float]:
    """Round a value, passing None through untouched."""
    if value is None:
        return None
    return round(value, digits)


def pct(numerator: Optional[float], denominator: Optional[float], digits: int = 1) -> Optional[float]:
    """Percentage ``100 * numerator / denominator`` or None when undefined."""
    if numerator is None or denominator is None or denominator <= 0:
        return None
    return round(numerator / denominator * 100, digits)


def sum_present(values: Iterable[Optional[float]]) -> Optional[float]:
    """Sum the non-null values; None when nothing contributes."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present)
