"""Store-facing geometry and timestamp formatting."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any

from fuel_ingest.common.constants import WGS84_SRID
from fuel_ingest.common.logging import log_event
from fuel_ingest.common.models import CanonicalStation

logger = logging.getLogger(__name__)

DMY_TIMESTAMP_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4}) (\d{2}):(\d{2}):(\d{2})$")


def _valid_lon_lat(longitude: Any, latitude: Any) -> bool:
    if isinstance(longitude, bool) or isinstance(latitude, bool):
        return False
    if not isinstance(longitude, (int, float)) or not isinstance(latitude, (int, float)):
        return False
    if not (math.isfinite(longitude) and math.isfinite(latitude)):
        return False
    return -180 <= longitude <= 180 and -90 <= latitude <= 90


def to_ewkt(longitude: Any, latitude: Any) -> str | None:
    """PostGIS extended WKT, ``SRID=4326;POINT(lon lat)``."""
    if not _valid_lon_lat(longitude, latitude):
        return None
    return f"SRID={WGS84_SRID};POINT({longitude!r} {latitude!r})"


def to_location_json(longitude: Any, latitude: Any) -> dict | None:
    if not _valid_lon_lat(longitude, latitude):
        return None
    return {"type": "Point", "coordinates": [longitude, latitude]}


def normalise_timestamp(value: str) -> str:
    """Rewrite ``DD/MM/YYYY HH:mm:ss`` to ``YYYY-MM-DD HH:mm:ss``.

    Anything else is assumed to already be in the store's format and is
    returned as is, so repeated application is harmless.
    """
    match = DMY_TIMESTAMP_RE.match(value)
    if not match:
        return value

    day, month, year, hour, minute, second = match.groups()
    try:
        datetime(int(year), int(month), int(day), int(hour), int(minute), int(second))
    except ValueError:
        log_event(
            logger,
            f"timestamp {value!r} matches DD/MM/YYYY but is not a real date; leaving unchanged",
            level=logging.WARNING,
            stage="persist-stations",
            event="TIMESTAMP_INVALID",
            status="warning",
        )
        return value
    return f"{year}-{month}-{day} {hour}:{minute}:{second}"


def format_station(station: CanonicalStation) -> dict[str, Any]:
    """Build the ``stations`` table row for one canonical station."""
    location = to_ewkt(station.longitude, station.latitude)
    if location is None:
        log_event(
            logger,
            f"site {station.site_id} has unusable coordinates {station.coordinates!r}; writing null geometry",
            level=logging.WARNING,
            stage="persist-stations",
            retailer=station.retailer,
            event="GEOMETRY_NULL",
            status="warning",
        )

    return {
        "site_id": station.site_id,
        "brand": station.brand,
        "name": station.name,
        "address": station.address,
        "postcode": station.postcode,
        "location": location,
        "location_json": to_location_json(station.longitude, station.latitude),
        "current_prices": station.prices.as_dict(),
        "last_updated": normalise_timestamp(station.last_updated),
    }
