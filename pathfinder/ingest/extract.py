"""Ordered, best-effort extraction strategies for listing markup.

Government portals change structure without notice, so rows are located by
trying selectors in order and each row is read by several strategies whose
non-empty results are merged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import Callable, Iterable, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

_WS_PATTERN = re.compile(r"\s+")
_ORDINAL_PATTERN = re.compile(r"\b(\d{1,2})(st|nd|rd|th)\b", flags=re.IGNORECASE)
_DEADLINE_LABEL_PATTERN = re.compile(r"^(application\s+)?(deadline|closing\s+date|closes)\s*:?\s*", re.IGNORECASE)
_CLOSING_CONTEXT_PATTERN = re.compile(r"\b(deadline|closing\s+date|closes?|due)(\s+(on|by))?\s*:?\s*$", re.IGNORECASE)
_MONTHS = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?|aug(?:ust)?|"
    r"sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)
_EMBEDDED_DATE_PATTERNS = (
    re.compile(r"\b(\d{4}-\d{2}-\d{2})\b"),
    re.compile(r"\b(\d{1,2}/\d{1,2}/\d{4})\b"),
    re.compile(rf"\b(\d{{1,2}}\s+(?:{_MONTHS})\.?,?\s+\d{{4}})\b", flags=re.IGNORECASE),
    re.compile(rf"\b((?:{_MONTHS})\.?\s+\d{{1,2}},?\s+\d{{4}})\b", flags=re.IGNORECASE),
)
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%d %B, %Y",
    "%d %b, %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
)


@dataclass(slots=True)
class RowFields:
    name: str = ""
    type: str = ""
    location: str = ""
    duration: str = ""
    deadline: str = ""
    link: str = ""
    amount: str = ""
    description: str = ""

    def merged_with(self, other: RowFields) -> RowFields:
        """Keep this row's non-empty values and take the rest from ``other``."""

        updates = {
            item.name: getattr(other, item.name)
            for item in fields(self)
            if not getattr(self, item.name) and getattr(other, item.name)
        }
        return replace(self, **updates) if updates else self

    def is_empty(self) -> bool:
        return not any(getattr(self, item.name) for item in fields(self))


@dataclass(frozen=True, slots=True)
class FieldSelectors:
    """CSS selectors used by the labeled-element strategy, one per field."""

    name: str = "h2, h3, h4, h5, .title, .name, strong"
    type: str = ".type, .category, [class*='type']"
    location: str = ".country, [class*='country'], .location"
    duration: str = ".duration, [class*='duration']"
    deadline: str = ".deadline, .date, [class*='deadline']"
    amount: str = ".amount, .value"
    description: str = ".description, p"


@dataclass(frozen=True, slots=True)
class TableColumns:
    """Column positions read by the table-cell strategy."""

    name: int = 0
    type: int | None = 1
    location: int | None = 2
    duration: int | None = 3
    deadline: int | None = 4


DEFAULT_FIELD_SELECTORS = FieldSelectors()
DEFAULT_TABLE_COLUMNS = TableColumns()

RowStrategy = Callable[[Tag], "RowFields | None"]


def element_text(element: Tag | None) -> str:
    if element is None:
        return ""
    return _WS_PATTERN.sub(" ", element.get_text(" ", strip=True)).strip()


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def select_rows(soup: BeautifulSoup | Tag, selectors: Sequence[str]) -> tuple[str | None, list[Tag]]:
    """Return the first selector that matches anything, with its rows."""

    for selector in selectors:
        rows = soup.select(selector)
        if rows:
            return selector, rows
    return None, []


def _first_href(row: Tag) -> str:
    for anchor in row.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if href and not href.startswith("#") and not href.lower().startswith("javascript:"):
            return href
    return ""


def extract_table_cells(row: Tag, columns: TableColumns = DEFAULT_TABLE_COLUMNS) -> RowFields | None:
    cells = row.find_all(["td", "th"], recursive=False) or row.find_all(["td", "th"])
    if len(cells) < 2:
        return None
    if all(cell.name == "th" for cell in cells):
        return None

    texts = [element_text(cell) for cell in cells]

    def column(index: int | None) -> str:
        if index is None or index >= len(texts):
            return ""
        return texts[index]

    return RowFields(
        name=column(columns.name),
        type=column(columns.type).lower(),
        location=column(columns.location),
        duration=column(columns.duration),
        deadline=column(columns.deadline),
        link=_first_href(row),
    )


def extract_labeled_elements(
    row: Tag,
    selectors: FieldSelectors = DEFAULT_FIELD_SELECTORS,
) -> RowFields | None:
    values = {}
    for item in fields(selectors):
        selector = getattr(selectors, item.name)
        values[item.name] = element_text(row.select_one(selector)) if selector else ""
    values["type"] = values["type"].lower()
    result = RowFields(link=_first_href(row), **values)
    return None if result.is_empty() else result


DEFAULT_STRATEGIES: tuple[RowStrategy, ...] = (extract_table_cells, extract_labeled_elements)


def extract_row_fields(row: Tag, strategies: Iterable[RowStrategy] = DEFAULT_STRATEGIES) -> RowFields:
    result = RowFields()
    for strategy in strategies:
        extracted = strategy(row)
        if extracted is not None:
            result = result.merged_with(extracted)
    return result


def _strict_date(value: str) -> date | None:
    candidate = value.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(candidate).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def _embedded_deadline(text: str) -> date | None:
    """The only date in ``text``, accepted when it directly follows a closing label."""

    found: dict[int, str] = {}
    for pattern in _EMBEDDED_DATE_PATTERNS:
        for match in pattern.finditer(text):
            found[match.start(1)] = match.group(1)
    if len(found) != 1:
        return None
    start, raw = next(iter(found.items()))
    if not _CLOSING_CONTEXT_PATTERN.search(text[:start]):
        return None
    return _strict_date(raw.replace(".", ""))


def parse_deadline(value: str | None) -> str | None:
    """Return an ISO date for a deadline string, or None when it is not a real date."""

    if not value:
        return None
    normalized = _ORDINAL_PATTERN.sub(r"\1", _WS_PATTERN.sub(" ", value).strip())
    cleaned = _DEADLINE_LABEL_PATTERN.sub("", normalized)
    if not cleaned:
        return None

    parsed = _strict_date(cleaned) or _embedded_deadline(normalized)
    return parsed.isoformat() if parsed else None


def resolve_link(href: str | None, base_url: str) -> str | None:
    if not href:
        return None
    cleaned = href.strip()
    if not cleaned:
        return None
    if cleaned.lower().startswith(("http://", "https://")):
        return cleaned
    return urljoin(base_url.rstrip("/") + "/", cleaned)


def map_opportunity_type(type_text: str | None) -> str:
    lowered = (type_text or "").lower()
    if "bursary" in lowered:
        return "bursary"
    if "grant" in lowered:
        return "grant"
    if "loan" in lowered:
        return "loan"
    return "scholarship"
