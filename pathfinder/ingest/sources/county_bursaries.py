from __future__ import annotations

import logging
from typing import Any

from pathfinder.ingest.base import BaseSource, FetchOptions
from pathfinder.ingest.extract import (
    FieldSelectors,
    RowFields,
    extract_labeled_elements,
    parse_deadline,
    parse_html,
    resolve_link,
)
from pathfinder.ingest.fallback import FallbackProber
from pathfinder.normalize.clean import is_usable_name
from pathfinder.normalize.schema import ContactInfo, Eligibility, OpportunityRecord

logger = logging.getLogger(__name__)

COUNTY_PORTALS = {
    "Nairobi": "https://www.nairobi.go.ke",
    "Kiambu": "https://www.kiambu.go.ke",
    "Nakuru": "https://www.nakuru.go.ke",
    "Mombasa": "https://www.mombasa.go.ke",
    "Kisumu": "https://www.kisumu.go.ke",
}
BURSARY_PATHS = (
    "/bursaries",
    "/education/bursaries",
    "/scholarships",
    "/education/scholarships",
    "/education/bursary",
    "/services/bursaries",
    "/departments/education/bursaries",
)
CARD_SELECTOR = ".bursary, .scholarship, article, .card"
CARD_FIELDS = FieldSelectors(
    name="h2, h3, .title, .name",
    type="",
    location="",
    duration="",
    deadline=".deadline, .date",
    amount=".amount, .value",
    description="p, .description",
)


def resolve_county(county: str | None, portals: dict[str, str] = COUNTY_PORTALS) -> str | None:
    if not county:
        return None
    lowered = county.strip().lower()
    for known in portals:
        if known.lower() == lowered:
            return known
    return None


class CountyBursarySource(BaseSource):
    """County government bursaries, found by probing common portal paths."""

    name = "county_bursaries"

    def __init__(
        self,
        *,
        portals: dict[str, str] | None = None,
        paths: tuple[str, ...] = BURSARY_PATHS,
        timeout_seconds: float = 8.0,
    ) -> None:
        self.portals = dict(COUNTY_PORTALS if portals is None else portals)
        self.paths = paths
        self.timeout_seconds = timeout_seconds

    def applies_to(self, options: FetchOptions) -> bool:
        return bool(options.county)

    def fetch_records(self, http_client: Any, options: FetchOptions) -> list[OpportunityRecord]:
        county = resolve_county(options.county, self.portals)
        if county is None:
            logger.warning("No portal URL known for county: %s", options.county)
            return []

        portal_url = self.portals[county]
        prober = FallbackProber(http_client, timeout_seconds=self.timeout_seconds)
        return prober.probe(
            portal_url,
            self.paths,
            lambda html, url: self.parse_listing(html, county=county, portal_url=portal_url),
        )

    def parse_listing(self, html: str, *, county: str, portal_url: str) -> list[OpportunityRecord]:
        soup = parse_html(html)
        records: list[OpportunityRecord] = []
        for card in soup.select(CARD_SELECTOR):
            fields = extract_labeled_elements(card, CARD_FIELDS) or RowFields()
            name = fields.name or f"{county} County Bursary"
            if not is_usable_name(name):
                continue
            records.append(
                OpportunityRecord(
                    name=name,
                    provider=f"{county} County Government",
                    type="bursary",
                    description=fields.description or f"{county} County Bursary Program",
                    amount=fields.amount or None,
                    application_deadline=parse_deadline(fields.deadline),
                    application_link=resolve_link(fields.link, portal_url),
                    eligibility=Eligibility(counties=[county]),
                    contact_info=ContactInfo(source=f"{county} County", website=portal_url),
                    source=self.name,
                )
            )
        return records
