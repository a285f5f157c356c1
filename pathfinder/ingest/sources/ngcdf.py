from __future__ import annotations

import logging
from typing import Any

from pathfinder.ingest.base import BaseSource, FetchOptions
from pathfinder.ingest.extract import FieldSelectors, extract_labeled_elements, parse_deadline, parse_html
from pathfinder.ingest.fallback import FallbackProber, join_path
from pathfinder.normalize.clean import is_usable_name
from pathfinder.normalize.schema import ContactInfo, Eligibility, OpportunityRecord

logger = logging.getLogger(__name__)

# Constituency funds are mostly run from local offices; none of these portals is reliable.
BASE_URLS = (
    "https://ngcdf.go.ke",
    "https://www.ngcdf.go.ke",
    "https://ngcdf.parliament.go.ke",
)
ROW_SELECTOR = "table tbody tr, .bursary-item, .scholarship-card"
ROW_FIELDS = FieldSelectors(
    name=".title, h3, td:first-child",
    type="",
    location="",
    duration="",
    deadline=".deadline, .date",
    amount=".amount, .value",
    description=".description, p",
)


class NgcdfSource(BaseSource):
    """National Government Constituency Development Fund bursaries."""

    name = "ngcdf"

    def __init__(self, *, base_urls: tuple[str, ...] = BASE_URLS, timeout_seconds: float = 8.0) -> None:
        self.base_urls = base_urls
        self.timeout_seconds = timeout_seconds

    def applies_to(self, options: FetchOptions) -> bool:
        return bool(options.county)

    def candidate_urls(self, options: FetchOptions) -> list[str]:
        path = f"/bursaries/{options.county.strip().lower()}" if options.county else "/bursaries"
        return [join_path(base_url, path) for base_url in self.base_urls]

    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        prober = FallbackProber(http_client, timeout_seconds=self.timeout_seconds)
        return prober.probe_urls(
            self.candidate_urls(options),
            lambda html, url: self.parse_listing(html, options=options, page_url=url),
        )

    def parse_listing(self, html: str, *, options: FetchOptions, page_url: str) -> list[OpportunityRecord]:
        website = next((base for base in self.base_urls if page_url.startswith(base)), page_url)
        records: list[OpportunityRecord] = []
        for row in parse_html(html).select(ROW_SELECTOR):
            fields = extract_labeled_elements(row, ROW_FIELDS)
            if fields is None or not is_usable_name(fields.name):
                continue
            records.append(
                OpportunityRecord(
                    name=fields.name,
                    provider="NG-CDF",
                    type="bursary",
                    description=fields.description or "NG-CDF Constituency Bursary",
                    amount=fields.amount or None,
                    application_deadline=parse_deadline(fields.deadline),
                    eligibility=Eligibility(
                        counties=[options.county] if options.county else None,
                        constituencies=[options.constituency] if options.constituency else None,
                    ),
                    contact_info=ContactInfo(source="NG-CDF", website=website),
                    source=self.name,
                )
            )
        return records
