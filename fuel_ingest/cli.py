"""CLI entrypoint: one full ingest, normalise, dedupe and persist pass."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from fuel_ingest.common.config_loader import load_all_configs
from fuel_ingest.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS
from fuel_ingest.common.errors import PipelineError
from fuel_ingest.common.http import HttpClient
from fuel_ingest.common.ids import generate_run_id
from fuel_ingest.common.logging import ROOT_LOGGER_NAME, build_logger, log_event
from fuel_ingest.harvest.runner import fetch_all
from fuel_ingest.pipeline.averages import compute_averages
from fuel_ingest.pipeline.dedupe import dedupe_stations
from fuel_ingest.pipeline.export import write_stations_csv
from fuel_ingest.pipeline.formatting import format_station
from fuel_ingest.pipeline.persistence import StationStore
from fuel_ingest.pipeline.reports import build_run_summary, write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--dry-run", action="store_true", help="harvest and normalise without writing to the store")
    parser.add_argument("--export-csv", action="store_true", help="also write data/out/stations.csv")
    return parser.parse_args(argv)


def run_command(
    args: argparse.Namespace,
    *,
    http_client: HttpClient | None = None,
    store: StationStore | None = None,
) -> int:
    run_id = args.run_id or generate_run_id()
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)
    if store is None and not args.dry_run:
        store = StationStore.from_config(bundle.store)

    log_event(logger, "price update started", stage="harvest", event="STAGE_START", status="ok", rows_in=len(bundle.retailers))
    owns_client = http_client is None
    client = http_client or HttpClient(timeout=bundle.timeout, retry=bundle.retry)
    try:
        harvest = fetch_all(bundle.retailers, client, max_workers=bundle.max_workers)
    finally:
        if owns_client:
            client.close()

    unique = dedupe_stations(harvest.stations)
    log_event(
        logger,
        f"deduplicated {len(harvest.stations)} stations to {len(unique)}",
        stage="dedupe",
        event="STAGE_END",
        status="ok",
        rows_in=len(harvest.stations),
        rows_out=len(unique),
    )

    rows = [format_station(station) for station in unique.values()]
    if args.export_csv:
        write_stations_csv(data_dir, rows)

    averages = compute_averages(unique)
    upsert = None
    averages_stored = None
    if args.dry_run:
        log_event(logger, "dry run: skipping store writes", stage="persist-stations", event="DRY_RUN", status="skipped")
    else:
        upsert = store.upsert_stations(rows)
        averages_stored = store.upsert_averages(averages)

    summary = build_run_summary(
        run_id=run_id,
        harvest=harvest,
        unique_count=len(unique),
        upsert=upsert,
        averages=averages,
        averages_stored=averages_stored,
    )
    write_run_summary(data_dir, summary)
    log_event(
        logger,
        f"updated {summary['counts']['persisted_stations']} stations",
        stage="persist-stations",
        event="RUN_END",
        status=summary["status"],
        rows_in=len(unique),
        rows_out=summary["counts"]["persisted_stations"],
    )
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    try:
        return run_command(args)
    except PipelineError as exc:
        log_event(logger, f"run aborted: {exc}", level=logging.ERROR, event="RUN_FAIL", status="error", error_code=exc.error_code)
        return EXIT_HARD_FAIL
    except Exception:
        logger.exception("unexpected failure", extra={"event": "RUN_FAIL", "status": "error", "error_code": "UNEXPECTED_ERROR"})
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
