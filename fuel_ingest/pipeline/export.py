"""Canonical station CSV snapshot."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from fuel_ingest.common.constants import FUEL_GRADES
from fuel_ingest.common.fs import write_csv

STATION_HEADERS = [
    "site_id",
    "brand",
    "name",
    "address",
    "postcode",
    "location",
    "location_json",
    *FUEL_GRADES,
    "last_updated",
]


def _serialize_row(row: dict) -> dict:
    prices = row.get("current_prices") or {}
    out = {}
    for key in STATION_HEADERS:
        if key in FUEL_GRADES:
            value = prices.get(key)
        else:
            value = row.get(key)
        if value is None:
            out[key] = ""
        elif isinstance(value, dict):
            out[key] = json.dumps(value, sort_keys=True)
        else:
            out[key] = value
    return out


def write_stations_csv(data_dir: Path, rows: Iterable[dict]) -> Path:
    out_path = data_dir / "out" / "stations.csv"
    sorted_rows = sorted(rows, key=lambda row: row["site_id"])
    write_csv(out_path, STATION_HEADERS, [_serialize_row(row) for row in sorted_rows])
    return out_path
