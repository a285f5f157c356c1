from __future__ import annotations

import json
from pathlib import Path

import pytest

from scripts.run_match import load_candidates, main, run_match

PROFILE = {"county": "Nairobi", "grade": "Grade 9", "curriculum": "CBC"}
CANDIDATES = [
    {
        "name": "Nairobi County Education Bursary",
        "type": "bursary",
        "applicationLink": "https://www.nairobi.go.ke/bursaries/apply",
        "eligibility": {"counties": ["Nairobi"], "minGrade": 7, "maxGrade": 12, "curriculum": ["CBC"]},
    },
    {
        "name": "Mombasa Senior Bursary",
        "type": "bursary",
        "eligibility": {"counties": ["Mombasa"], "minGrade": 11, "curriculum": ["8-4-4"], "minKCPE": 400},
    },
]


def _write(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_run_match_ranks_candidates_from_an_aggregate_report(tmp_path: Path) -> None:
    profile_path = _write(tmp_path / "profile.json", PROFILE)
    candidates_path = _write(tmp_path / "aggregate.json", {"merged": CANDIDATES, "stats": {}})

    results = run_match(profile_path, candidates_path, top_n=1)

    assert len(results) == 1
    top = results[0]
    assert top["opportunity"]["name"] == "Nairobi County Education Bursary"
    assert top["score"] == 74
    assert top["estimatedChance"] == "high"
    assert top["explanation"] == "; ".join(top["reasons"])
    assert top["applicationSteps"][1] == "Apply online at: https://www.nairobi.go.ke/bursaries/apply"


def test_run_match_applies_weight_overrides(tmp_path: Path) -> None:
    profile_path = _write(tmp_path / "profile.json", PROFILE)
    candidates_path = _write(tmp_path / "candidates.json", CANDIDATES[:1])
    weights_path = _write(
        tmp_path / "weights.json",
        {"default": {"location": 50, "academic": 20, "career": 10, "skills": 10, "field": 10}},
    )

    results = run_match(profile_path, candidates_path, weights_path=weights_path)

    assert results[0]["score"] == 83


def test_load_candidates_accepts_lists_and_store_payloads(tmp_path: Path) -> None:
    as_list = _write(tmp_path / "list.json", CANDIDATES)
    as_store = _write(tmp_path / "store.json", {"opportunities": {"b": CANDIDATES[1], "a": CANDIDATES[0]}})
    invalid = _write(tmp_path / "invalid.json", {"opportunities": "nope"})

    assert len(load_candidates(as_list)) == 2
    assert [item["name"] for item in load_candidates(as_store)] == [
        "Nairobi County Education Bursary",
        "Mombasa Senior Bursary",
    ]
    with pytest.raises(ValueError):
        load_candidates(invalid)


def test_main_prints_ranking_and_writes_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    profile_path = _write(tmp_path / "profile.json", PROFILE)
    candidates_path = _write(tmp_path / "candidates.json", CANDIDATES)
    output_path = tmp_path / "matches.json"

    exit_code = main(
        [
            "--profile",
            str(profile_path),
            "--candidates",
            str(candidates_path),
            "--output",
            str(output_path),
        ]
    )

    captured = capsys.readouterr().out
    assert exit_code == 0
    assert "Nairobi County Education Bursary" in captured
    assert "Available in Nairobi County" in captured
    written = json.loads(output_path.read_text(encoding="utf-8"))
    assert written["matches"][0]["score"] == 74
