"""Collapse harvested stations to one record per site."""

from __future__ import annotations

from typing import Iterable

from fuel_ingest.common.models import CanonicalStation


def dedupe_stations(stations: Iterable[CanonicalStation]) -> dict[str, CanonicalStation]:
    # Later records overwrite earlier ones; keys keep first-seen order.
    unique: dict[str, CanonicalStation] = {}
    for station in stations:
        unique[station.site_id] = station
    return unique
