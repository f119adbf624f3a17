"""HTTP client with timeouts, optional retries and JSON content checks."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from fuel_ingest.common.constants import USER_AGENT
from fuel_ingest.common.errors import TransportError, UnsupportedFormatError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}
MARKUP_CONTENT_MARKERS = ("html", "xml")


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 10.0


@dataclass(frozen=True)
class RetryConfig:
    # Feeds are refreshed on the next scheduled run, so one attempt is the default.
    max_attempts: int = 1
    multiplier: float = 1.0
    max_wait: float = 30.0


class HttpRequestError(TransportError):
    """Non-retryable transport failure (4xx, malformed request)."""


class RetryableHttpError(HttpRequestError):
    pass


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """The calling thread's session; pool workers never share one."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            with self._lock:
                self._sessions.append(session)
            self._local.session = session
        return session

    def close(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
            self._local = threading.local()
        for session in sessions:
            session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        if headers:
            out.update(headers)
        return out

    def _raise_for_status_or_retry(self, response: requests.Response, url: str) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status {status} from {url}")
        if status >= 400:
            raise HttpRequestError(f"HTTP status {status} from {url}")

    def _raise_for_markup(self, response: requests.Response, url: str) -> None:
        content_type = (response.headers.get("Content-Type") or "").lower()
        if any(marker in content_type for marker in MARKUP_CONTENT_MARKERS):
            raise UnsupportedFormatError(f"Non-JSON content type {content_type!r} from {url}")

    def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        req_timeout = timeout or self.timeout
        try:
            response = self.session.request(
                method="GET",
                url=url,
                params=params,
                headers=self._headers(headers),
                timeout=(req_timeout.connect, req_timeout.read),
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            raise RetryableHttpError(f"{type(exc).__name__} fetching {url}: {exc}") from exc
        except requests.RequestException as exc:
            raise HttpRequestError(f"{type(exc).__name__} fetching {url}: {exc}") from exc

        self._raise_for_status_or_retry(response, url)
        self._raise_for_markup(response, url)

        try:
            return response.json()
        except ValueError as exc:
            raise UnsupportedFormatError(f"Invalid JSON payload from {url}") from exc

    def get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> Any:
        @retry(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.multiplier,
                max=self.retry.max_wait,
                jitter=1.0,
            ),
            retry=retry_if_exception_type(RetryableHttpError),
            reraise=True,
        )
        def _wrapped() -> Any:
            return self._get_json(url, params=params, headers=headers, timeout=timeout)

        return _wrapped()
