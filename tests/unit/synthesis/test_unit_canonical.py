# tests/unit/synthesis/test_unit_canonical.py — v1
"""Tests for synthesis/canonical.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from protoscope.core.models import StepResult
from protoscope.synthesis.canonical import (
    canonical_results,
    canonicalize_step_code,
    is_canonical,
    is_placeholder_payload,
)


def _result(code: str, summary: str = "s", **kwargs) -> StepResult:
    return StepResult(run_id="r", step_code=code, status="completed", payload={"summary": summary}, **kwargs)


class TestCanonicalize:
    @pytest.mark.parametrize(
        "raw, expected",
        [("NB1", "NB1"), ("NB-1", "NB1"), ("nb_01", "NB1"), ("Nb12", "NB12"), (" nb-15 ", "NB15")],
    )
    def test_aliases(self, raw, expected):
        assert canonicalize_step_code(raw) == expected

    @pytest.mark.parametrize("raw", ["", "NB", "XY1", "step-3"])
    def test_unparseable(self, raw):
        assert canonicalize_step_code(raw) is None

    @pytest.mark.parametrize("raw", ["NB_7", "nb7", "nb-7", "Nb07"])
    def test_every_spelling_of_one_step(self, raw):
        assert canonicalize_step_code(raw) == "NB7"

    def test_is_canonical(self):
        assert is_canonical("NB3")
        assert not is_canonical("NB-3")


class TestCanonicalResults:
    def test_skips_placeholders(self):
        results = [
            _result("NB1"),
            _result("NB2", placeholder=True),
            StepResult(run_id="r", step_code="NB3", status="failed", payload={"execution_status": "failed"}),
        ]
        canon, seen = canonical_results(results)
        assert list(canon) == ["NB1"]
        assert seen == ["NB1", "NB2", "NB3"]

    def test_numeric_order_and_aliases(self):
        canon, _ = canonical_results([_result("NB-10"), _result("nb2"), _result("NB1")])
        assert list(canon) == ["NB1", "NB2", "NB10"]

    def test_newest_duplicate_wins(self):
        old = _result("NB4", "old", updated_at=datetime.now(timezone.utc) - timedelta(hours=1))
        new = _result("NB-4", "new")
        canon, _ = canonical_results([new, old])
        assert canon["NB4"].payload["summary"] == "new"

    def test_unparseable_code_ignored(self):
        canon, seen = canonical_results([_result("summary")])
        assert canon == {}
        assert seen == ["summary"]

    def test_placeholder_payload_detection(self):
        assert is_placeholder_payload({"placeholder": True})
        assert not is_placeholder_payload({"summary": "x"})
