from __future__ import annotations

import logging
from typing import Any

from bs4 import BeautifulSoup

from pathfinder.ingest.base import BaseSource, FetchOptions
from pathfinder.ingest.extract import (
    RowFields,
    extract_row_fields,
    map_opportunity_type,
    parse_deadline,
    parse_html,
    resolve_link,
    select_rows,
)
from pathfinder.ingest.fallback import FallbackProber, join_path
from pathfinder.ingest.pagination import (
    PageResult,
    PaginationPolicy,
    PaginationWalker,
    has_next_link,
    has_pagination_controls,
    page_url,
)
from pathfinder.normalize.clean import is_usable_name
from pathfinder.normalize.schema import ContactInfo, Eligibility, OpportunityRecord

logger = logging.getLogger(__name__)

BASE_URL = "https://www.education.go.ke"
CANDIDATE_PATHS = (
    "/index.php/scholarships",
    "/scholarships",
    "/education/scholarships",
    "/opportunities/scholarships",
)
ROW_SELECTORS = (
    "table tbody tr",
    "table tr",
    ".scholarship-item",
    ".scholarship",
    '[class*="scholarship"]',
    "tbody tr",
)
PROVIDER = "Kenya Ministry of Education"


class MinistryOfEducationSource(BaseSource):
    """National scholarship listings, spread over several pages."""

    name = "ministry_of_education"

    def __init__(
        self,
        *,
        base_url: str = BASE_URL,
        timeout_seconds: float = 10.0,
        probe_timeout_seconds: float = 8.0,
        policy: PaginationPolicy | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.probe_timeout_seconds = probe_timeout_seconds
        self.policy = policy or PaginationPolicy()

    def candidate_urls(self) -> list[str]:
        return [join_path(self.base_url, path) for path in CANDIDATE_PATHS]

    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        prober = FallbackProber(http_client, timeout_seconds=self.probe_timeout_seconds)
        listing_url = prober.find_reachable(self.candidate_urls())
        if listing_url is None:
            logger.warning("No reachable Ministry listing URL among %s", ", ".join(CANDIDATE_PATHS))
            return []

        def fetch_page(page: int) -> PageResult:
            url = page_url(listing_url, page)
            response = http_client.get_page(url, timeout_seconds=self.timeout_seconds)
            if not response.ok:
                logger.warning("Received status %d on page %d: %s", response.status_code, page, url)
                return PageResult()
            soup = parse_html(response.text)
            return PageResult(
                records=self.parse_listing(soup, options),
                has_next_link=has_next_link(soup),
                has_pagination_controls=has_pagination_controls(soup),
            )

        result = PaginationWalker(fetch_page, self.policy).walk(limit=options.limit)
        logger.info(
            "Extracted %d records from %d page(s), stop=%s",
            len(result.records),
            result.pages_fetched,
            result.stop_reason,
        )
        return result.records

    def parse_listing(self, soup: BeautifulSoup, options: FetchOptions) -> list[OpportunityRecord]:
        selector, rows = select_rows(soup, ROW_SELECTORS)
        if selector is None:
            logger.warning("No listing rows matched any selector")
            return []
        logger.debug("Found %d rows with selector %s", len(rows), selector)

        records: list[OpportunityRecord] = []
        for row in rows:
            if options.limit is not None and len(records) >= options.limit:
                break
            fields = extract_row_fields(row)
            if not is_usable_name(fields.name):
                continue
            if options.type != "all" and fields.type and options.type not in fields.type:
                continue
            records.append(self._to_record(fields))
        return records

    def _to_record(self, fields: RowFields) -> OpportunityRecord:
        return OpportunityRecord(
            name=fields.name,
            provider=PROVIDER,
            type=map_opportunity_type(fields.type),
            description=fields.description or None,
            amount=fields.amount or None,
            duration=fields.duration or None,
            application_deadline=parse_deadline(fields.deadline),
            application_link=resolve_link(fields.link, self.base_url),
            eligibility=Eligibility(countries=[fields.location] if fields.location else None),
            contact_info=ContactInfo(source="Ministry of Education", website=self.base_url),
            source=self.name,
        )
