"""
BLS Occupational Employment and Wage Statistics (OEWS).

Annual wage and employment estimates for ~830 occupations at the
national, state and metro level.

Data source: https://www.bls.gov/oes/tables.htm
API Key: NOT REQUIRED (bulk ZIP/Excel downloads)
"""
from laborcompare.sources.oews.client import OEWSClient, extract_workbook, read_workbook
from laborcompare.sources.oews.ingest import OEWS_ARTIFACT, OEWSFetcher
from laborcompare.sources.oews.metadata import (
    FIELD_ALIASES,
    FILE_TYPES,
    KEEP_GROUPS,
    normalize_frame,
    normalize_row,
    resolve_columns,
    select_sheet,
)

__all__ = [
    "OEWSClient",
    "OEWSFetcher",
    "OEWS_ARTIFACT",
    "FIELD_ALIASES",
    "FILE_TYPES",
    "KEEP_GROUPS",
    "extract_workbook",
    "read_workbook",
    "normalize_frame",
    "normalize_row",
    "resolve_columns",
    "select_sheet",
]
