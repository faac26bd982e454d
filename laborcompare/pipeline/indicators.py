"""
National indicator files: CPI, JOLTS, employment projections and the ticker.

All inputs are optional. A missing raw artifact skips its files and
leaves whatever was published before.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from laborcompare.core.storage import ArtifactStore
from laborcompare.pipeline.publisher import IndexFile, publish
from laborcompare.sources.bls.series import CPI_HEADLINE_SERIES

logger = logging.getLogger(__name__)

CPI_CATEGORY_SERIES = (
    "CUSR0000SAF1",
    "CUSR0000SAH1",
    "CUSR0000SEHF01",
    "CUSR0000SAM",
    "CUSR0000SAT1",
    "CUSR0000SAA",
    "CUSR0000SAE",
    "CUSR0000SAR",
)
CPI_HEADLINE_NAME = "CPI-U All Items (Seasonally Adjusted)"
CATEGORY_HISTORY_MONTHS = 12
JOLTS_HISTORY_MONTHS = 24
PROJECTIONS_TOP_N = 30

DIRECTION_UP = "up"
DIRECTION_DOWN = "down"
DIRECTION_FLAT = "flat"


def percent_change(current: Optional[float], previous: Optional[float], digits: int = 2) -> Optional[float]:
    if current is None or not previous:
        return None
    return round((current - previous) / previous * 100, digits)


def direction(current: Optional[float], previous: Optional[float]) -> str:
    if current is None or previous is None or current == previous:
        return DIRECTION_FLAT
    return DIRECTION_UP if current > previous else DIRECTION_DOWN


def newest_first(points: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(
        ({"year": p["year"], "month": p["month"], "value": p["value"]} for p in points),
        key=lambda p: (p["year"], p["month"]),
        reverse=True,
    )


def _year_ago(points: Sequence[Mapping[str, Any]], point: Mapping[str, Any]) -> Optional[float]:
    for candidate in points:
        if candidate["year"] == point["year"] - 1 and candidate["month"] == point["month"]:
            return candidate["value"]
    return None


def _fetched(envelope: Optional[Mapping[str, Any]]) -> Optional[str]:
    return envelope.get("fetched") if envelope else None


# =============================================================================
# CPI
# =============================================================================


def build_cpi_national(series: Mapping[str, Any], updated: Optional[str]) -> Optional[Dict[str, Any]]:
    headline = series.get(CPI_HEADLINE_SERIES)
    if not headline or not headline.get("data"):
        logger.warning(f"CPI headline series {CPI_HEADLINE_SERIES} missing")
        return None

    points = newest_first(headline["data"])
    for i, point in enumerate(points):
        if i + 1 < len(points):
            point["momChange"] = percent_change(point["value"], points[i + 1]["value"])
        yoy = percent_change(point["value"], _year_ago(points, point))
        if yoy is not None:
            point["yoyChange"] = yoy

    return {
        "updated": updated,
        "seriesId": CPI_HEADLINE_SERIES,
        "name": CPI_HEADLINE_NAME,
        "data": points,
    }


def build_cpi_categories(series: Mapping[str, Any], updated: Optional[str]) -> Dict[str, Any]:
    categories = []
    for series_id in CPI_CATEGORY_SERIES:
        entry = series.get(series_id)
        if not entry or not entry.get("data"):
            continue
        points = newest_first(entry["data"])
        latest = points[0]
        previous = points[1]["value"] if len(points) > 1 else None
        categories.append({
            "seriesId": series_id,
            "name": entry.get("name", series_id),
            "latestValue": latest["value"],
            "latestYear": latest["year"],
            "latestMonth": latest["month"],
            "yoyChange": percent_change(latest["value"], _year_ago(points, latest)),
            "momChange": percent_change(latest["value"], previous),
            "history": points[:CATEGORY_HISTORY_MONTHS],
        })
    return {"updated": updated, "categories": categories}


# =============================================================================
# JOLTS
# =============================================================================


def build_jolts_national(measures: Mapping[str, Any], updated: Optional[str]) -> Dict[str, Any]:
    """Latest value with month-over-month change, plus two years of history, per measure."""
    output: Dict[str, Any] = {"updated": updated, "latest": {}, "series": {}}
    for measure in sorted(measures):
        points = newest_first(measures[measure].get("data") or [])
        if not points:
            continue
        latest = points[0]
        previous = points[1]["value"] if len(points) > 1 else None
        output["latest"][measure] = {
            "value": latest["value"],
            "year": latest["year"],
            "month": latest["month"],
            "change": round(latest["value"] - previous) if previous is not None else None,
            "direction": direction(latest["value"], previous),
        }
        output["series"][measure] = points[:JOLTS_HISTORY_MONTHS]
    return output


# =============================================================================
# Projections
# =============================================================================


def clean_projection(record: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    if not record.get("code") or not record.get("title") or record.get("change_pct") is None:
        return None
    base = record.get("emp_base")
    projected = record.get("emp_projected")
    change_num = record.get("change_num")
    if change_num is None and base is not None and projected is not None:
        change_num = round(projected - base, 1)
    return {
        "code": record["code"],
        "title": record["title"],
        "empBase": base,
        "empProjected": projected,
        "changePct": round(record["change_pct"], 1),
        "changeNum": change_num,
        "openings": record.get("openings"),
        "median": record.get("median"),
    }


def build_projection_files(records: Sequence[Mapping[str, Any]], updated: Optional[str]) -> List[IndexFile]:
    cleaned = [c for c in (clean_projection(r) for r in records) if c is not None]
    cleaned.sort(key=lambda o: o["code"])

    fastest = sorted(
        (o for o in cleaned if o["changePct"] > 0), key=lambda o: (-o["changePct"], o["code"])
    )[:PROJECTIONS_TOP_N]
    declining = sorted(
        (o for o in cleaned if o["changePct"] < 0), key=lambda o: (o["changePct"], o["code"])
    )[:PROJECTIONS_TOP_N]
    most_growth = sorted(
        (o for o in cleaned if o["changeNum"] is not None and o["changeNum"] > 0),
        key=lambda o: (-o["changeNum"], o["code"]),
    )[:PROJECTIONS_TOP_N]

    logger.info(
        f"Projections: {len(cleaned)} occupations, {len(fastest)} growing, {len(declining)} declining"
    )
    return [
        IndexFile("projections/national.json", {
            "updated": updated, "source": "bls_projections", "count": len(cleaned), "occupations": cleaned,
        }),
        IndexFile("projections/fastest.json", {"updated": updated, "occupations": fastest}),
        IndexFile("projections/declining.json", {"updated": updated, "occupations": declining}),
        IndexFile("projections/most-growth.json", {"updated": updated, "occupations": most_growth}),
    ]


# =============================================================================
# Ticker
# =============================================================================


def _format_delta(current: Optional[float], previous: Optional[float], suffix: str) -> str:
    if current is None or previous is None:
        return "— flat"
    diff = current - previous
    sign = "▲" if diff > 0 else "▼" if diff < 0 else "—"
    return f"{sign} {abs(diff):.1f}{suffix}"


def _upsert(items: List[Dict[str, Any]], key: str, value: str, data: Dict[str, Any]) -> None:
    for i, item in enumerate(items):
        if item.get(key) == value:
            items[i] = {**item, **data}
            return
    items.append({key: value, **data})


def build_ticker(
    existing: Optional[Mapping[str, Any]],
    cpi_series: Optional[Mapping[str, Any]],
    jolts_measures: Optional[Mapping[str, Any]],
    updated: Optional[str],
) -> Optional[Dict[str, Any]]:
    """
    Update CPI and job-openings entries over the previous ticker.

    Items this pipeline does not produce are carried over unchanged.
    Returns None when there is nothing new to merge.
    """
    if not cpi_series and not jolts_measures:
        return None

    ticker = [dict(t) for t in (existing or {}).get("ticker", [])]
    cards = [dict(c) for c in (existing or {}).get("cards", [])]

    headline = (cpi_series or {}).get(CPI_HEADLINE_SERIES) or {}
    points = newest_first(headline.get("data") or [])
    if len(points) >= 13:
        latest, previous = points[0], points[1]
        yoy = percent_change(latest["value"], _year_ago(points, latest), 1)
        prev_yoy = percent_change(previous["value"], _year_ago(points, previous), 1)
        if yoy is not None:
            trend = direction(yoy, prev_yoy)
            delta = f"{abs(yoy - prev_yoy):.1f}" if prev_yoy is not None else "0.0"
            _upsert(ticker, "label", "CPI", {"value": f"{yoy:.1f}%", "delta": delta, "direction": trend})
            _upsert(cards, "id", "cpi", {
                "label": "CPI (YoY)",
                "value": f"{yoy:.1f}%",
                "delta": _format_delta(yoy, prev_yoy, " pts"),
                "direction": trend,
            })
            logger.info(f"Ticker CPI: {yoy:.1f}%")

    openings = newest_first(((jolts_measures or {}).get("openings") or {}).get("data") or [])
    if openings:
        latest = openings[0]["value"]
        previous = openings[1]["value"] if len(openings) > 1 else None
        _upsert(cards, "id", "openings", {
            "label": "Job Openings",
            "value": f"{latest / 1000:.1f}M",
            "delta": _format_delta(latest, previous, "K"),
            "direction": direction(latest, previous),
        })
        logger.info(f"Ticker job openings: {latest / 1000:.1f}M")

    return {"updated": updated[:10] if updated else None, "ticker": ticker, "cards": cards}


# =============================================================================
# Stage entry point
# =============================================================================


def publish_indicators(store: ArtifactStore) -> int:
    """Build every indicator file whose raw input exists; returns files written."""
    files: List[IndexFile] = []

    cpi = store.read_raw("bls-cpi.json")
    jolts = store.read_raw("bls-jolts.json")
    projections = store.read_raw("bls-projections.json")

    cpi_series = (cpi or {}).get("data") or {}
    jolts_measures = (jolts or {}).get("data") or {}

    if cpi_series:
        national = build_cpi_national(cpi_series, _fetched(cpi))
        if national is not None:
            files.append(IndexFile("cpi/national.json", national))
        files.append(IndexFile("cpi/categories.json", build_cpi_categories(cpi_series, _fetched(cpi))))

    if jolts_measures:
        files.append(IndexFile("jolts/national.json", build_jolts_national(jolts_measures, _fetched(jolts))))

    if projections and projections.get("data"):
        files.extend(build_projection_files(projections["data"], _fetched(projections)))

    stamps = [s for s in (_fetched(cpi), _fetched(jolts)) if s]
    ticker = build_ticker(
        store.read_json("ticker.json"),
        cpi_series,
        jolts_measures,
        max(stamps) if stamps else None,
    )
    if ticker is not None:
        files.append(IndexFile("ticker.json", ticker))
    else:
        logger.info("No CPI or JOLTS data; keeping existing ticker.json")

    return publish(store, files)
