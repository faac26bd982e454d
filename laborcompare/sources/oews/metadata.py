"""
OEWS spreadsheet schema: field aliases, validation and row normalization.

Column headers have changed across releases (``OCC_GROUP`` became
``O_GROUP``, ``AREA_NAME`` became ``AREA_TITLE``) and vary in case. The
alias table below is the single place that knows about that. It is
checked once per sheet against the actual header row; a sheet missing a
required field is rejected as a whole instead of producing rows full of
nulls.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from laborcompare.core.api_errors import PayloadError
from laborcompare.core.numeric import parse_number, parse_wage

logger = logging.getLogger(__name__)

# canonical field -> accepted header spellings (compared case-insensitively)
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "area": ("AREA", "AREA_CODE"),
    "area_title": ("AREA_TITLE", "AREA_NAME"),
    "area_type": ("AREA_TYPE",),
    "occ_code": ("OCC_CODE",),
    "occ_title": ("OCC_TITLE",),
    "o_group": ("O_GROUP", "OCC_GROUP", "GROUP"),
    "tot_emp": ("TOT_EMP",),
    "jobs_1000": ("JOBS_1000", "JOBS_1000_ORIG"),
    "loc_quotient": ("LOC_QUOTIENT", "LOC QUOTIENT"),
    "h_mean": ("H_MEAN",),
    "a_mean": ("A_MEAN",),
    "h_median": ("H_MEDIAN",),
    "a_median": ("A_MEDIAN",),
    "h_pct10": ("H_PCT10",),
    "h_pct25": ("H_PCT25",),
    "h_pct75": ("H_PCT75",),
    "h_pct90": ("H_PCT90",),
    "a_pct10": ("A_PCT10",),
    "a_pct25": ("A_PCT25",),
    "a_pct75": ("A_PCT75",),
    "a_pct90": ("A_PCT90",),
}

REQUIRED_FIELDS = ("area", "area_title", "occ_code", "occ_title", "o_group", "tot_emp")

TEXT_FIELDS = ("area", "area_title", "occ_code", "occ_title", "o_group")
COUNT_FIELDS = ("tot_emp", "jobs_1000", "loc_quotient")
HOURLY_WAGE_FIELDS = ("h_mean", "h_median", "h_pct10", "h_pct25", "h_pct75", "h_pct90")
ANNUAL_WAGE_FIELDS = ("a_mean", "a_median", "a_pct10", "a_pct25", "a_pct75", "a_pct90")

KEEP_GROUPS = frozenset({"detailed", "major", "broad"})

SHEET_HINTS = ("all", "data", "national", "state", "metro")

# file suffix -> (label, area_type used when the sheet has no AREA_TYPE column)
FILE_TYPES: Dict[str, Tuple[str, int]] = {
    "nat": ("National", 1),
    "st": ("State", 2),
    "ma": ("Metro", 4),
}

AREA_TYPE_NATIONAL = 1
AREA_TYPE_STATE = 2
AREA_TYPE_METRO = 4


def select_sheet(sheet_names: Iterable[str]) -> str:
    """Pick the data sheet: first whose name hints at data, else the first sheet."""
    names = list(sheet_names)
    if not names:
        raise PayloadError("Workbook has no sheets", source="oews")
    for name in names:
        lowered = name.lower()
        if any(hint in lowered for hint in SHEET_HINTS):
            return name
    return names[0]


def resolve_columns(columns: Iterable[Any]) -> Dict[str, str]:
    """
    Map canonical fields to the sheet's actual headers.

    Raises:
        PayloadError: If any required field has no matching header
    """
    by_upper = {str(col).strip().upper(): col for col in columns}
    resolved: Dict[str, str] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            if alias.upper() in by_upper:
                resolved[field_name] = by_upper[alias.upper()]
                break

    missing = [f for f in REQUIRED_FIELDS if f not in resolved]
    if missing:
        raise PayloadError(
            message=f"OEWS sheet is missing required columns: {', '.join(missing)}",
            source="oews",
            missing_fields=missing,
        )

    absent = [f for f in FIELD_ALIASES if f not in resolved]
    if absent:
        logger.info(f"OEWS sheet has no columns for: {', '.join(absent)}")
    return resolved


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    text = str(value).strip()
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    return text


def normalize_row(
    row: Mapping[str, Any],
    columns: Mapping[str, str],
    default_area_type: int,
    annual_cap: float,
    hourly_cap: float,
) -> Dict[str, Any]:
    """
    Turn one spreadsheet row into a clean record.

    Wage cells holding the cap marker become the cap value and are
    listed under ``capped``.
    """
    def cell(field_name: str) -> Any:
        column = columns.get(field_name)
        return row.get(column) if column is not None else None

    record: Dict[str, Any] = {name: _text(cell(name)) for name in TEXT_FIELDS}
    record["o_group"] = record["o_group"].lower()

    area_type = parse_number(cell("area_type"))
    record["area_type"] = int(area_type) if area_type is not None else default_area_type

    for name in COUNT_FIELDS:
        record[name] = parse_number(cell(name))

    capped: List[str] = []
    for name in HOURLY_WAGE_FIELDS:
        record[name], was_capped = parse_wage(cell(name), hourly_cap)
        if was_capped:
            capped.append(name)
    for name in ANNUAL_WAGE_FIELDS:
        record[name], was_capped = parse_wage(cell(name), annual_cap)
        if was_capped:
            capped.append(name)
    if capped:
        record["capped"] = capped
    return record


def normalize_frame(
    df: pd.DataFrame,
    default_area_type: int,
    annual_cap: float,
    hourly_cap: float,
) -> List[Dict[str, Any]]:
    """
    Validate a sheet's headers, normalize its rows and keep occupation groups we publish.

    Raises:
        PayloadError: If the sheet lacks required columns
    """
    columns = resolve_columns(df.columns)
    rows: List[Dict[str, Any]] = []
    skipped = 0

    for raw in df.to_dict(orient="records"):
        record = normalize_row(raw, columns, default_area_type, annual_cap, hourly_cap)
        if record["o_group"] not in KEEP_GROUPS:
            continue
        if not record["occ_code"] or not record["area"]:
            skipped += 1
            continue
        rows.append(record)

    if skipped:
        logger.warning(f"Skipped {skipped} OEWS rows without an area or occupation code")
    return rows


def count_national_detailed(rows: Iterable[Mapping[str, Any]]) -> int:
    return sum(
        1
        for row in rows
        if row.get("area_type") == AREA_TYPE_NATIONAL and row.get("o_group") == "detailed"
    )


def build_url(year: int, suffix: str) -> str:
    return f"https://www.bls.gov/oes/special-requests/oesm{str(year)[-2:]}{suffix}.zip"


def describe(rows: List[Dict[str, Any]]) -> Optional[str]:
    if not rows:
        return None
    areas = len({(r["area_type"], r["area"]) for r in rows})
    occupations = len({r["occ_code"] for r in rows})
    return f"{len(rows)} rows, {areas} areas, {occupations} occupation codes"
