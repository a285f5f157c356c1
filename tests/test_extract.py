from __future__ import annotations

import pytest

from pathfinder.ingest.extract import (
    FieldSelectors,
    RowFields,
    extract_labeled_elements,
    extract_row_fields,
    extract_table_cells,
    map_opportunity_type,
    parse_deadline,
    parse_html,
    resolve_link,
    select_rows,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2026-05-30", "2026-05-30"),
        ("31st March 2026", "2026-03-31"),
        ("Deadline: 15/01/2026", "2026-01-15"),
        ("June 15, 2026", "2026-06-15"),
        ("Closes 30 Apr 2026", "2026-04-30"),
        ("Applications close on 2026-05-30 at noon", "2026-05-30"),
        ("Apply before the deadline: 31 March 2026", "2026-03-31"),
    ],
)
def test_parse_deadline_returns_iso_dates(raw: str, expected: str) -> None:
    assert parse_deadline(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "TBA",
        "closing soon",
        "31/02/2026",
        "2026-13-01",
        "Opens 1 January 2026, closes 31 March 2026",
        "Opens 1 January 2026",
    ],
)
def test_parse_deadline_returns_none_without_a_single_clear_date(raw: str | None) -> None:
    assert parse_deadline(raw) is None


def test_extract_table_cells_reads_columns_and_link() -> None:
    soup = parse_html(
        "<table><tr>"
        "<td><a href='/scholarships/mext'>Japan MEXT Scholarship</a></td>"
        "<td>Scholarship</td><td>JAPAN</td><td>5 years</td><td>2026-05-30</td>"
        "</tr></table>"
    )

    fields = extract_table_cells(soup.select_one("tr"))

    assert fields == RowFields(
        name="Japan MEXT Scholarship",
        type="scholarship",
        location="JAPAN",
        duration="5 years",
        deadline="2026-05-30",
        link="/scholarships/mext",
    )


def test_extract_table_cells_skips_header_and_single_cell_rows() -> None:
    soup = parse_html(
        "<table>"
        "<tr><th>Name</th><th>Type</th></tr>"
        "<tr><td>Only one cell</td></tr>"
        "</table>"
    )
    header_row, single_row = soup.select("tr")

    assert extract_table_cells(header_row) is None
    assert extract_table_cells(single_row) is None


def test_extract_labeled_elements_skips_empty_selectors_and_javascript_links() -> None:
    soup = parse_html(
        "<div class='card'>"
        "<h3>Kiambu County Bursary</h3>"
        "<span class='deadline'>Deadline: 1 June 2026</span>"
        "<a href='javascript:void(0)'>Share</a>"
        "<a href='/apply'>Apply</a>"
        "</div>"
    )
    selectors = FieldSelectors(type="", location="", duration="", amount="", description="")

    fields = extract_labeled_elements(soup.select_one(".card"), selectors)

    assert fields is not None
    assert fields.name == "Kiambu County Bursary"
    assert fields.deadline == "Deadline: 1 June 2026"
    assert fields.link == "/apply"
    assert fields.type == ""


def test_extract_row_fields_merges_strategies_in_order() -> None:
    soup = parse_html(
        "<table><tr>"
        "<td>Morocco AMCI Scholarship</td><td>Scholarship</td>"
        "<td><p>Four year undergraduate award.</p></td>"
        "</tr></table>"
    )

    fields = extract_row_fields(soup.select_one("tr"))

    assert fields.name == "Morocco AMCI Scholarship"
    assert fields.type == "scholarship"
    assert fields.description == "Four year undergraduate award."


def test_select_rows_returns_first_matching_selector() -> None:
    soup = parse_html("<div class='scholarship'>A</div><div class='scholarship'>B</div>")

    selector, rows = select_rows(soup, ["table tbody tr", ".scholarship"])
    missing_selector, missing_rows = select_rows(soup, ["table tr"])

    assert selector == ".scholarship"
    assert len(rows) == 2
    assert missing_selector is None
    assert missing_rows == []


def test_resolve_link() -> None:
    assert resolve_link("/bursaries/apply", "https://www.nairobi.go.ke") == "https://www.nairobi.go.ke/bursaries/apply"
    assert resolve_link("https://other.example/x", "https://www.nairobi.go.ke") == "https://other.example/x"
    assert resolve_link("  ", "https://www.nairobi.go.ke") is None
    assert resolve_link(None, "https://www.nairobi.go.ke") is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("County Bursary", "bursary"),
        ("research grant", "grant"),
        ("HELB Loan", "loan"),
        ("scholarship", "scholarship"),
        ("", "scholarship"),
        (None, "scholarship"),
    ],
)
def test_map_opportunity_type(raw: str | None, expected: str) -> None:
    assert map_opportunity_type(raw) == expected
