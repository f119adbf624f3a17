"""Harvest every registered retailer with fail-soft semantics."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence

from fuel_ingest.common.errors import StructuralAnomalyError
from fuel_ingest.common.http import HttpClient
from fuel_ingest.common.logging import log_event
from fuel_ingest.common.models import AggregateResult, CanonicalStation, FetchFailure, RetailerSource
from fuel_ingest.common.time_utils import utc_timestamp_iso
from fuel_ingest.harvest.retailer_client import fetch_retailer
from fuel_ingest.pipeline.normalise import locate_station_entries, normalise_stations

logger = logging.getLogger(__name__)


def _fetch_payloads(
    sources: Sequence[RetailerSource],
    http_client: HttpClient,
    max_workers: int,
) -> list[Any | FetchFailure]:
    if max_workers <= 1 or len(sources) <= 1:
        return [fetch_retailer(source, http_client) for source in sources]

    # map() yields in submission order, so registry order survives the fan-out.
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda source: fetch_retailer(source, http_client), sources))


def _normalise_source(
    source: RetailerSource,
    payload: Any,
    now: str,
) -> tuple[list[CanonicalStation], int]:
    # Raises on a structural anomaly before normalise_stations would swallow it.
    entries = locate_station_entries(payload)
    stations = list(normalise_stations(payload, source.name, source.aliases, now=now))
    return stations, len(entries) - len(stations)


def _source_status(status: str, *, stations: int = 0, dropped: int = 0, error_code: str | None = None) -> dict:
    return {"status": status, "stations": stations, "dropped": dropped, "error_code": error_code}


def fetch_all(
    sources: Sequence[RetailerSource],
    http_client: HttpClient,
    *,
    max_workers: int = 1,
    now: str | None = None,
) -> AggregateResult:
    """Fetch and normalise each source, in registry order.

    A failing source is recorded in ``failures`` and contributes no stations;
    it never stops the others.
    """
    run_timestamp = now or utc_timestamp_iso()
    result = AggregateResult()
    payloads = _fetch_payloads(sources, http_client, max_workers)

    for source, payload in zip(sources, payloads):
        if isinstance(payload, FetchFailure):
            result.failures.append(payload)
            result.per_source[source.name] = _source_status("failed", error_code=payload.error_code)
            continue

        try:
            stations, dropped = _normalise_source(source, payload, run_timestamp)
        except StructuralAnomalyError as exc:
            log_event(
                logger,
                f"{source.name}: {exc}",
                level=logging.WARNING,
                stage="harvest",
                retailer=source.name,
                event="STRUCTURAL_ANOMALY",
                status="error",
                error_code=exc.error_code,
            )
            result.failures.append(FetchFailure(source=source, cause=exc))
            result.per_source[source.name] = _source_status("failed", error_code=exc.error_code)
            continue

        result.stations.extend(stations)
        result.per_source[source.name] = _source_status("ok", stations=len(stations), dropped=dropped)
        log_event(
            logger,
            f"retrieved {len(stations)} stations from {source.name}",
            stage="harvest",
            retailer=source.name,
            event="SOURCE_NORMALISED",
            status="ok",
            rows_in=len(stations) + dropped,
            rows_out=len(stations),
        )

    if result.failures:
        log_event(
            logger,
            f"{len(result.failures)} of {len(sources)} retailers failed",
            level=logging.WARNING,
            stage="harvest",
            event="HARVEST_PARTIAL",
            status="partial",
        )
    return result
