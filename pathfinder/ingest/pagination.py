from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

import requests
from bs4 import BeautifulSoup

from pathfinder.normalize.schema import OpportunityRecord

logger = logging.getLogger(__name__)

_NEXT_LINK_SELECTORS = ('a[rel="next"]', ".pager-next a", ".pager-next", ".pagination .next a")
_PAGINATION_CONTROL_SELECTORS = (".pagination", ".pager", '[class*="pagination"]')


@dataclass(frozen=True, slots=True)
class PaginationPolicy:
    """Continuation heuristics for multi-page listings.

    ``always_try_second_page`` fetches page 2 whenever page 1 had records,
    because some portals render no pager on the first page.
    """

    max_pages: int = 10
    always_try_second_page: bool = True
    follow_pagination_controls: bool = True
    sparse_page_ratio: float = 0.3

    def __post_init__(self) -> None:
        if self.max_pages < 1:
            raise ValueError("max_pages must be at least 1.")
        if not 0.0 <= self.sparse_page_ratio <= 1.0:
            raise ValueError("sparse_page_ratio must be between 0 and 1.")


@dataclass(slots=True)
class PageResult:
    records: list[OpportunityRecord] = field(default_factory=list)
    has_next_link: bool = False
    has_pagination_controls: bool = False


@dataclass(slots=True)
class WalkResult:
    records: list[OpportunityRecord]
    pages_fetched: int
    stop_reason: str


def has_next_link(soup: BeautifulSoup) -> bool:
    for selector in _NEXT_LINK_SELECTORS:
        if soup.select_one(selector) is not None:
            return True
    for anchor in soup.find_all("a"):
        text = anchor.get_text(" ", strip=True).lower()
        if text.startswith("next"):
            return True
    return False


def has_pagination_controls(soup: BeautifulSoup) -> bool:
    return any(soup.select_one(selector) is not None for selector in _PAGINATION_CONTROL_SELECTORS)


def page_url(base_url: str, page: int) -> str:
    if page <= 1:
        return base_url
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}page={page}"


class PaginationWalker:
    """Fetch pages in increasing order until a stop condition holds."""

    def __init__(
        self,
        fetch_page: Callable[[int], PageResult],
        policy: PaginationPolicy | None = None,
    ) -> None:
        self._fetch_page = fetch_page
        self.policy = policy or PaginationPolicy()

    def should_continue(self, page: int, result: PageResult) -> bool:
        if page == 1 and self.policy.always_try_second_page:
            return True
        if result.has_next_link:
            return True
        return self.policy.follow_pagination_controls and result.has_pagination_controls

    def walk(self, *, limit: int | None = None) -> WalkResult:
        records: list[OpportunityRecord] = []
        first_page_count = 0
        page = 1
        while True:
            try:
                result = self._fetch_page(page)
            except requests.RequestException as exc:
                if page == 1:
                    raise
                logger.warning("Page %d failed, keeping %d records: %s", page, len(records), exc)
                return WalkResult(records=records, pages_fetched=page, stop_reason="page_failed")

            if not result.records:
                logger.info("No records on page %d, stopping pagination", page)
                return WalkResult(records=records, pages_fetched=page, stop_reason="empty_page")

            records.extend(result.records)
            if page == 1:
                first_page_count = len(result.records)
            logger.info("Extracted %d records from page %d", len(result.records), page)

            if limit is not None and len(records) >= limit:
                return WalkResult(records=records[:limit], pages_fetched=page, stop_reason="limit")
            if page > 1 and len(result.records) < first_page_count * self.policy.sparse_page_ratio:
                logger.info("Page %d has only %d records, likely the last page", page, len(result.records))
                return WalkResult(records=records, pages_fetched=page, stop_reason="sparse_page")
            if page >= self.policy.max_pages:
                return WalkResult(records=records, pages_fetched=page, stop_reason="max_pages")
            if not self.should_continue(page, result):
                return WalkResult(records=records, pages_fetched=page, stop_reason="no_next_page")
            page += 1
