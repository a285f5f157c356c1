from __future__ import annotations

from pathfinder.normalize.canonical_id import dedup_key, generate_opportunity_id
from pathfinder.normalize.schema import OpportunityRecord


def test_generate_opportunity_id_is_stable_and_hex() -> None:
    record = OpportunityRecord(
        name="China Government Scholarship 2026",
        provider="Kenya Ministry of Education",
        application_deadline="2026-03-31",
        application_link="https://www.education.go.ke/index.php/scholarships/china",
    )

    first = generate_opportunity_id(record)
    second = generate_opportunity_id(record)

    assert first == second
    assert len(first) == 40
    assert int(first, 16) >= 0


def test_generate_opportunity_id_normalizes_whitespace_case_and_www() -> None:
    left = OpportunityRecord(
        name="  China   Government Scholarship 2026 ",
        provider="KENYA MINISTRY OF EDUCATION",
        application_link="https://www.education.go.ke/a",
    )
    right = OpportunityRecord(
        name="china government scholarship 2026",
        provider="Kenya Ministry of Education",
        application_link="https://education.go.ke/b",
    )

    assert generate_opportunity_id(left) == generate_opportunity_id(right)


def test_generate_opportunity_id_depends_on_type() -> None:
    scholarship = OpportunityRecord(name="Teachers Support", type="scholarship")
    grant = OpportunityRecord(name="Teachers Support", type="grant")

    assert generate_opportunity_id(scholarship) != generate_opportunity_id(grant)


def test_dedup_key_prefers_link_then_truncated_name() -> None:
    linked = OpportunityRecord(name="Anything", application_link="  HTTPS://Example.org/Apply ")
    long_name = OpportunityRecord(name="  " + "B" * 150)

    assert dedup_key(linked) == "https://example.org/apply"
    assert dedup_key(long_name) == "b" * 100
