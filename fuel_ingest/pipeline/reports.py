"""Run summary report."""

from __future__ import annotations

from pathlib import Path

from fuel_ingest.common.fs import write_json
from fuel_ingest.common.models import AggregateResult, NationalAverages, UpsertResult


def build_run_summary(
    *,
    run_id: str,
    harvest: AggregateResult,
    unique_count: int,
    upsert: UpsertResult | None,
    averages: NationalAverages,
    averages_stored: bool | None,
) -> dict:
    status = "success"
    if harvest.failures or (upsert is not None and upsert.failed_batches) or averages_stored is False:
        status = "partial"

    return {
        "run_id": run_id,
        "status": status,
        "counts": {
            "retailers": len(harvest.per_source),
            "failed_retailers": len(harvest.failures),
            "fetched_stations": len(harvest.stations),
            "unique_stations": unique_count,
            "persisted_stations": upsert.persisted if upsert is not None else 0,
            "failed_batches": upsert.failed_batches if upsert is not None else 0,
        },
        "dry_run": upsert is None,
        "sources": harvest.per_source,
        "failures": [failure.to_dict() for failure in harvest.failures],
        "national_averages": averages.to_dict(),
        "national_averages_stored": averages_stored,
    }


def write_run_summary(data_dir: Path, summary: dict) -> Path:
    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    write_json(summary_path, summary)
    return summary_path
