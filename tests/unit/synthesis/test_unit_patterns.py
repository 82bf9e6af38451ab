# tests/unit/synthesis/test_unit_patterns.py — v1
"""Tests for synthesis/patterns.py."""

from __future__ import annotations

from protoscope.synthesis.models import Pattern
from protoscope.synthesis.patterns import (
    EXECUTIVE_LIMIT,
    LEVER_LIMIT,
    NUMERIC_LIMIT,
    PRESSURE_LIMIT,
    TIMING_LIMIT,
    clip,
    collect_executives,
    collect_numeric_proofs,
    collect_timing_signals,
    detect_patterns,
    iter_text_fields,
    payload_text,
    rank_themes,
)


class TestHelpers:
    def test_iter_text_fields_skips_citations(self):
        payload = {"Summary Text": "a", "citations": [{"quote": "hidden"}], "nested": {"items": ["b", " "]}}
        assert list(iter_text_fields(payload)) == [("summary_text", "a"), ("items", "b")]

    def test_clip_first_sentence(self):
        assert clip("First sentence here. Second one.") == "First sentence here."

    def test_clip_long(self):
        text = "word " * 100
        clipped = clip(text, 50)
        assert clipped.endswith("...")
        assert len(clipped) <= 53

    def test_payload_text_prefers_summary(self):
        assert payload_text({"summary": " S ", "other": "x"}) == "S"
        assert payload_text({"a": "x", "b": ["y"]}) == "x y"


class TestDetectPatterns:
    def test_limits(self, payloads):
        p = detect_patterns(payloads, "Acme Corp")
        assert len(p.pressures) <= PRESSURE_LIMIT
        assert len(p.levers) <= LEVER_LIMIT
        assert len(p.timing) <= TIMING_LIMIT
        assert len(p.executives) <= EXECUTIVE_LIMIT
        assert len(p.numeric_proofs) <= NUMERIC_LIMIT

    def test_pressures_ranked(self, payloads):
        p = detect_patterns(payloads, "Acme Corp")
        assert len(p.pressures) == 4
        assert p.pressures[0].text == "Acme is losing share to low-cost importers in surgical supplies."
        assert p.pressures[0].step_codes == ["NB1"]
        boosted = next(t for t in p.pressures if "8%" in t.text)
        assert boosted.confidence == 0.7
        assert all(a.confidence >= b.confidence for a, b in zip(p.pressures, p.pressures[1:]))

    def test_levers(self, payloads):
        p = detect_patterns(payloads)
        assert p.levers[0].text == "Direct contracts with hospital systems and purchasing groups."
        assert {code for lever in p.levers for code in lever.step_codes} == {"NB1", "NB8", "NB13"}

    def test_numeric_proofs(self, payloads):
        proofs = collect_numeric_proofs(payloads)
        assert [n.text for n in proofs] == ["450 million", "40%", "8%", "15%"]
        assert proofs[0].step_codes == ["NB2"]
        assert proofs[0].detail["description"].startswith("Revenue reached")

    def test_timing_signals(self, payloads):
        signals = collect_timing_signals(payloads)
        assert [s.step_codes[0] for s in signals] == ["NB1", "NB2", "NB2", "NB10"]

    def test_executives(self, payloads):
        executives = collect_executives(payloads, "Acme Corp")
        assert [e.text for e in executives] == ["Jane Doe", "John Roe", "Acme Corp"]
        assert executives[0].detail == {"title": "CFO", "accountability": "Margin recovery program"}
        assert executives[1].detail["accountability"] == "Strategic oversight"
        assert executives[2].detail["title"] == "Organization"

    def test_executive_limit(self):
        listed = [{"name": f"Exec {i}"} for i in range(6)]
        assert len(collect_executives({"NB3": {"executives": listed}})) == EXECUTIVE_LIMIT


class TestFallbacks:
    def test_generic_fallback(self):
        p = detect_patterns({"NB5": {"summary": "ok"}})
        assert [t.text for t in p.pressures] == ["Market Evolution Pressure"]
        assert [t.text for t in p.levers] == ["Operational Excellence"]
        assert p.pressures[0].confidence == 0.3

    def test_step_derived_fallback(self):
        p = detect_patterns({"NB1": {"summary": "Short text."}, "NB13": {"summary": "Tiny."}})
        assert [t.text for t in p.pressures] == ["Business Pressure from NB1"]
        assert [t.text for t in p.levers] == ["Capability Opportunity from NB13"]
        assert p.pressures[0].detail["signal"].startswith("Short text.")

    def test_no_fallback_when_levers_found(self):
        p = detect_patterns({"NB13": {"summary": "Academic partnerships broaden evaluation capacity."}})
        assert p.pressures == []
        assert len(p.levers) == 1


class TestRankThemes:
    def test_dedupe_merges_step_codes(self):
        themes = [
            Pattern(kind="pressure", text="Same theme", step_codes=["NB3"]),
            Pattern(kind="pressure", text="same THEME", step_codes=["NB4"]),
        ]
        ranked = rank_themes(themes, [], 4)
        assert len(ranked) == 1
        assert ranked[0].step_codes == ["NB3", "NB4"]

    def test_numeric_boost_capped(self):
        themes = [Pattern(kind="pressure", text="Costs up 5%", confidence=0.95)]
        numeric = [Pattern(kind="numeric", text="5%")]
        assert rank_themes(themes, numeric, 4)[0].confidence == 1.0
