from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

import requests
import urllib3
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.exceptions import InsecureRequestWarning
from urllib3.util.retry import Retry

from pathfinder.config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)
_SLOW_REQUEST_SECONDS = 5.0


@dataclass(slots=True)
class PageResponse:
    url: str
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200


@dataclass(slots=True)
class PoliteHttpClient:
    """Shared HTTP transport for every source adapter.

    ``verify_tls=False`` exists for legacy government portals that serve
    self-signed or weak certificates. It is a per-client switch, not a
    process-wide default.
    """

    requests_per_second: float = 0.0
    timeout_seconds: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = 2
    backoff_factor: float = 0.5
    verify_tls: bool = True
    _session: requests.Session = field(init=False, repr=False)
    _last_request_monotonic: float = field(init=False, default=0.0)
    _rate_limit_lock: threading.Lock = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = requests.Session()
        self._session.headers.update(
            {
                "User-Agent": self.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            }
        )
        self._session.verify = self.verify_tls
        if not self.verify_tls:
            urllib3.disable_warnings(InsecureRequestWarning)

        retry = Retry(
            total=self.max_retries,
            connect=self.max_retries,
            read=self.max_retries,
            status=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)
        self._last_request_monotonic = 0.0
        self._rate_limit_lock = threading.Lock()

    def close(self) -> None:
        self._session.close()

    def get_page(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> PageResponse:
        """Fetch a page without raising on 4xx so callers can probe paths.

        Server errors still raise ``requests.HTTPError`` once retries are spent.
        """

        response = self._request("GET", url, params=params, timeout_seconds=timeout_seconds)
        if response.status_code >= 500:
            response.raise_for_status()
        return PageResponse(url=url, status_code=response.status_code, text=response.text)

    def timeout_tuple(self, timeout_seconds: float | None = None) -> tuple[float, float]:
        total = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        connect_timeout = max(1.0, min(total, 5.0))
        read_timeout = max(connect_timeout, total)
        return connect_timeout, read_timeout

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> Response:
        self._sleep_for_rate_limit()
        started_at = time.monotonic()
        response = self._session.request(
            method=method,
            url=url,
            params=params,
            timeout=self.timeout_tuple(timeout_seconds),
        )
        elapsed = time.monotonic() - started_at
        if elapsed > _SLOW_REQUEST_SECONDS:
            logger.warning("Slow HTTP %s %.3fs %s", method, elapsed, url)
        return response

    def _sleep_for_rate_limit(self) -> None:
        if self.requests_per_second <= 0:
            return
        min_interval = 1.0 / self.requests_per_second
        with self._rate_limit_lock:
            elapsed = time.monotonic() - self._last_request_monotonic
            sleep_seconds = min_interval - elapsed
            if sleep_seconds > 0:
                time.sleep(sleep_seconds)
            self._last_request_monotonic = time.monotonic()
