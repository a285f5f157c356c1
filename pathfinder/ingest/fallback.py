from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

import requests

from pathfinder.normalize.schema import OpportunityRecord

logger = logging.getLogger(__name__)

PageParser = Callable[[str, str], list[OpportunityRecord]]


def join_path(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class FallbackProber:
    """Try candidate URLs in order until one yields parseable records.

    A blocked, missing or unreachable candidate is only a reason to move on;
    when every candidate fails the result is an empty list, whatever the cause.
    """

    def __init__(self, http_client: Any, *, timeout_seconds: float | None = None) -> None:
        self.http_client = http_client
        self.timeout_seconds = timeout_seconds

    def _get(self, url: str):
        try:
            return self.http_client.get_page(url, timeout_seconds=self.timeout_seconds)
        except requests.RequestException as exc:
            logger.warning("Probe failed: %s - %s", url, exc)
            return None

    def _log_status(self, url: str, status_code: int) -> None:
        if status_code == 403:
            logger.warning("Probe blocked (403): %s", url)
        elif status_code == 404:
            logger.info("Probe not found (404): %s, trying next", url)
        else:
            logger.warning("Probe returned status %d: %s", status_code, url)

    def find_reachable(self, urls: Sequence[str]) -> str | None:
        for url in urls:
            page = self._get(url)
            if page is None:
                continue
            if page.status_code == 200:
                logger.info("Found working URL: %s", url)
                return url
            self._log_status(url, page.status_code)
        return None

    def probe_urls(self, urls: Sequence[str], parse: PageParser) -> list[OpportunityRecord]:
        for url in urls:
            page = self._get(url)
            if page is None:
                continue
            if page.status_code != 200:
                self._log_status(url, page.status_code)
                continue
            records = parse(page.text, url)
            if records:
                logger.info("Found %d records at %s", len(records), url)
                return records
            logger.info("No records at %s, trying next", url)
        logger.warning("No working URL among %d candidates", len(urls))
        return []

    def probe(self, base_url: str, paths: Sequence[str], parse: PageParser) -> list[OpportunityRecord]:
        return self.probe_urls([join_path(base_url, path) for path in paths], parse)
