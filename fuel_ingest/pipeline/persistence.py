"""Keyed upserts into the hosted Postgres store via the Supabase client."""

from __future__ import annotations

import logging
import os
from typing import Any, Iterator, Sequence

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from fuel_ingest.common.errors import ConfigError, PersistenceError
from fuel_ingest.common.logging import log_event
from fuel_ingest.common.models import NationalAverages, UpsertResult

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def _chunked(rows: Sequence[dict], size: int) -> Iterator[Sequence[dict]]:
    for i in range(0, len(rows), size):
        yield rows[i : i + size]


def create_store_client(store_config: dict) -> Client:
    url = os.getenv(store_config["url_env"], "")
    key = os.getenv(store_config["key_env"], "")
    missing = [name for name, value in ((store_config["url_env"], url), (store_config["key_env"], key)) if not value]
    if missing:
        raise ConfigError(f"Missing store credentials in environment: {', '.join(missing)}")
    return create_client(url, key)


class StationStore:
    """Upserts for the ``stations`` and ``national_averages`` tables.

    Failures are contained per batch: a rejected batch is logged and the
    remaining batches still run. Rows are passed through unchanged.
    """

    def __init__(
        self,
        client: Any,
        *,
        stations_table: str = "stations",
        averages_table: str = "national_averages",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ConfigError("batch_size must be positive")
        self.client = client
        self.stations_table = stations_table
        self.averages_table = averages_table
        self.batch_size = batch_size

    @classmethod
    def from_config(cls, store_config: dict) -> "StationStore":
        return cls(
            create_store_client(store_config),
            stations_table=store_config["stations_table"],
            averages_table=store_config["averages_table"],
            batch_size=int(store_config["batch_size"]),
        )

    def _upsert(self, table: str, rows: Any, on_conflict: str) -> None:
        try:
            self.client.table(table).upsert(rows, on_conflict=on_conflict).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise PersistenceError(f"upsert into {table} failed: {exc}") from exc

    def upsert_stations(self, rows: Sequence[dict]) -> UpsertResult:
        persisted = 0
        failed_batches = 0
        for index, batch in enumerate(_chunked(rows, self.batch_size)):
            try:
                self._upsert(self.stations_table, list(batch), on_conflict="site_id")
            except PersistenceError as exc:
                failed_batches += 1
                log_event(
                    logger,
                    f"station batch {index} ({len(batch)} rows) failed: {exc}",
                    level=logging.ERROR,
                    stage="persist-stations",
                    event="BATCH_FAIL",
                    status="error",
                    rows_in=len(batch),
                    rows_out=0,
                    error_code=exc.error_code,
                )
                continue
            persisted += len(batch)

        log_event(
            logger,
            f"upserted {persisted} of {len(rows)} stations",
            stage="persist-stations",
            event="STATIONS_UPSERTED",
            status="ok" if failed_batches == 0 else "partial",
            rows_in=len(rows),
            rows_out=persisted,
        )
        return UpsertResult(attempted=len(rows), persisted=persisted, failed_batches=failed_batches)

    def upsert_averages(self, averages: NationalAverages) -> bool:
        try:
            self._upsert(self.averages_table, averages.to_dict(), on_conflict="date")
        except PersistenceError as exc:
            log_event(
                logger,
                f"national averages upsert for {averages.date} failed: {exc}",
                level=logging.ERROR,
                stage="averages",
                event="AVERAGES_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            return False

        log_event(logger, f"national averages stored for {averages.date}", stage="averages", event="AVERAGES_UPSERTED", status="ok")
        return True
