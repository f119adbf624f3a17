"""Fetch a single retailer feed and classify the outcome."""

from __future__ import annotations

import logging
import time
from typing import Any

from fuel_ingest.common.errors import StageError
from fuel_ingest.common.http import HttpClient
from fuel_ingest.common.logging import log_event
from fuel_ingest.common.models import FetchFailure, RetailerSource

logger = logging.getLogger(__name__)


def fetch_retailer(source: RetailerSource, http_client: HttpClient) -> Any | FetchFailure:
    """Return the decoded JSON payload, or a ``FetchFailure`` describing why not.

    Transport problems and non-JSON responses are expected for some feeds, so
    they are returned as values instead of raised.
    """
    started = time.monotonic()
    try:
        payload = http_client.get_json(source.url)
    except StageError as exc:
        log_event(
            logger,
            f"fetch failed for {source.name}: {exc}",
            level=logging.WARNING,
            stage="harvest",
            retailer=source.name,
            event="FETCH_FAIL",
            status="error",
            duration_ms=int((time.monotonic() - started) * 1000),
            error_code=exc.error_code,
        )
        return FetchFailure(source=source, cause=exc)

    log_event(
        logger,
        f"fetched {source.name}",
        stage="harvest",
        retailer=source.name,
        event="FETCH_OK",
        status="ok",
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    return payload
