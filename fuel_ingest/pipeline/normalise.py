"""Turn heterogeneous retailer payloads into canonical station records.

Every retailer feed is read with the same routine: a field is resolved by
walking that retailer's alias tuple and taking the first key that holds a
usable value. Values are then coerced (numeric strings to floats, ids to
strings) and the record is checked against the canonical invariants:

* non-empty ``site_id``
* non-empty ``postcode``
* coordinates other than ``(0, 0)``

Entries failing any of these are dropped one at a time; siblings in the same
payload are unaffected.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterator, Mapping

from fuel_ingest.common.constants import FUEL_GRADES
from fuel_ingest.common.errors import RecordInvalidError, StructuralAnomalyError
from fuel_ingest.common.logging import log_event
from fuel_ingest.common.models import CanonicalStation, FieldAliases, FuelPrices
from fuel_ingest.common.postcode import looks_like_uk_postcode
from fuel_ingest.common.time_utils import utc_timestamp_iso

logger = logging.getLogger(__name__)


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _lookup_first(entry: Mapping[str, Any], candidates: tuple[str, ...]) -> Any | None:
    for key in candidates:
        if key in entry and _is_present(entry[key]):
            return entry[key]
    return None


def _safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _container(entry: Mapping[str, Any], candidates: tuple[str, ...]) -> Mapping[str, Any] | None:
    for key in candidates:
        value = entry.get(key)
        if isinstance(value, Mapping):
            return value
    return None


def resolve_coordinates(entry: Mapping[str, Any], aliases: FieldAliases) -> tuple[float, float]:
    # Some feeds put lat/lng on the station itself instead of a location object.
    location = _container(entry, aliases.location)
    if location is None:
        location = entry

    longitude = _safe_float(_lookup_first(location, aliases.longitude))
    latitude = _safe_float(_lookup_first(location, aliases.latitude))
    return (
        longitude if longitude is not None else 0.0,
        latitude if latitude is not None else 0.0,
    )


def resolve_price(prices: Mapping[str, Any], candidates: tuple[str, ...]) -> float | None:
    value = _safe_float(_lookup_first(prices, candidates))
    if value is None or not math.isfinite(value):
        return None
    return value


def resolve_prices(entry: Mapping[str, Any], aliases: FieldAliases) -> FuelPrices:
    prices = _container(entry, aliases.prices) or {}
    return FuelPrices(**{grade: resolve_price(prices, aliases.grades[grade]) for grade in FUEL_GRADES})


def locate_station_entries(payload: Any) -> list:
    """Return the raw station list of a payload or raise ``StructuralAnomalyError``."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("stations"), list):
        return payload["stations"]
    raise StructuralAnomalyError(f"Unexpected top-level shape: {type(payload).__name__}")


def payload_last_updated(payload: Any, aliases: FieldAliases) -> str | None:
    if not isinstance(payload, Mapping):
        return None
    value = _lookup_first(payload, aliases.last_updated)
    return _as_text(value) if value is not None else None


def _build_station(
    entry: Any,
    retailer_name: str,
    aliases: FieldAliases,
    fallback_updated: str,
) -> CanonicalStation:
    if not isinstance(entry, Mapping):
        raise RecordInvalidError(f"station entry is {type(entry).__name__}, not an object")

    site_id = _as_text(_lookup_first(entry, aliases.site_id))
    if not site_id:
        raise RecordInvalidError("missing site_id")

    postcode = _as_text(_lookup_first(entry, aliases.postcode))
    if not postcode:
        raise RecordInvalidError(f"missing postcode for site {site_id}")
    if not looks_like_uk_postcode(postcode):
        log_event(
            logger,
            f"unrecognised postcode {postcode!r} for site {site_id}",
            level=logging.DEBUG,
            stage="harvest",
            retailer=retailer_name,
            event="POSTCODE_UNRECOGNISED",
            status="ok",
        )

    longitude, latitude = resolve_coordinates(entry, aliases)
    if longitude == 0 and latitude == 0:
        raise RecordInvalidError(f"missing coordinates for site {site_id}")

    name = _lookup_first(entry, aliases.name)
    last_updated = _lookup_first(entry, aliases.last_updated)

    return CanonicalStation(
        site_id=site_id,
        brand=_as_text(_lookup_first(entry, aliases.brand)) or retailer_name,
        name=_as_text(name) if name is not None else None,
        address=_as_text(_lookup_first(entry, aliases.address)),
        postcode=postcode,
        longitude=longitude,
        latitude=latitude,
        prices=resolve_prices(entry, aliases),
        last_updated=_as_text(last_updated) if last_updated is not None else fallback_updated,
        retailer=retailer_name,
    )


def normalise_entry(
    entry: Any,
    retailer_name: str,
    aliases: FieldAliases,
    fallback_updated: str,
) -> CanonicalStation | None:
    """Normalise one raw entry; invalid entries come back as ``None``."""
    try:
        return _build_station(entry, retailer_name, aliases, fallback_updated)
    except RecordInvalidError as exc:
        log_event(
            logger,
            f"dropped station: {exc}",
            level=logging.DEBUG,
            stage="harvest",
            retailer=retailer_name,
            event="RECORD_DROPPED",
            status="skipped",
            error_code=exc.error_code,
        )
        return None


def normalise_stations(
    payload: Any,
    retailer_name: str,
    aliases: FieldAliases,
    now: str | None = None,
) -> Iterator[CanonicalStation]:
    try:
        entries = locate_station_entries(payload)
    except StructuralAnomalyError as exc:
        log_event(
            logger,
            f"{retailer_name}: {exc}",
            level=logging.WARNING,
            stage="harvest",
            retailer=retailer_name,
            event="STRUCTURAL_ANOMALY",
            status="error",
            error_code=exc.error_code,
        )
        return

    fallback_updated = payload_last_updated(payload, aliases) or now or utc_timestamp_iso()
    for entry in entries:
        station = normalise_entry(entry, retailer_name, aliases, fallback_updated)
        if station is not None:
            yield station
