"""
Builders for raw artifacts and fake upstream responses.
"""
import json

import httpx


def write_raw(store, artifact, data, fetched="2025-03-01T12:00:00+00:00", source="test"):
    """Write a raw artifact in the standard envelope."""
    store.write_raw(
        artifact,
        {"source": source, "fetched": fetched, "complete": True, "meta": {}, "data": data},
    )


def bls_series(series_id, points):
    """One BLS ``Results.series`` entry from (year, period, value) tuples."""
    return {
        "seriesID": series_id,
        "data": [
            {"year": str(year), "period": period, "value": value}
            for year, period, value in points
        ],
    }


def bls_success(series):
    return {"status": "REQUEST_SUCCEEDED", "message": [], "Results": {"series": series}}


def bls_threshold():
    return {
        "status": "REQUEST_NOT_PROCESSED",
        "message": [
            "Request could not be serviced, as the daily threshold for total number "
            "of requests allocated to the user has been reached."
        ],
        "Results": {},
    }


def request_series_ids(request: httpx.Request):
    return json.loads(request.content)["seriesid"]


def monthly(year_from, month_from, values):
    """Consecutive monthly points starting at (year_from, month_from)."""
    points = []
    year, month = year_from, month_from
    for value in values:
        points.append({"year": year, "month": month, "value": value})
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return points
