# tests/unit/synthesis/test_unit_render.py — v1
"""Tests for synthesis/render.py."""

from __future__ import annotations

import json

import pytest

from protoscope.core.models import ResolvedCitation, Section
from protoscope.synthesis.models import Bridge, PatternSet
from protoscope.synthesis.render import format_source, render_content, render_json, render_markdown


@pytest.fixture
def citations() -> list[ResolvedCitation]:
    return [
        ResolvedCitation(
            id="url_1", fingerprint="f1", url="https://sec.gov/filings/acme-10k",
            domain="sec.gov", title="Acme 10-K", published_at="2024-02-01",
        ),
        ResolvedCitation(id="url_2", fingerprint="f2", url="https://ft.com", domain="ft.com", title="FT"),
    ]


class TestRenderMarkdown:
    def test_title_and_headings(self, clean_sections, citations, primary_entity, secondary_entity):
        text = render_markdown(clean_sections, citations, primary_entity, secondary_entity)
        assert text.startswith("# Intelligence Brief: Acme Corp and Duke Health\n")
        assert "## Executive Summary" in text
        assert "## Opportunity Blueprints" in text
        assert "### Freight Cost Initiative" in text
        assert "## Convergence Insight" in text
        assert '[1] "Acme 10-K", sec.gov (2024) (sec.gov/filings/acme-10k)' in text
        assert '[2] "FT", ft.com' in text

    def test_single_entity_without_sources(self, clean_sections, primary_entity):
        text = render_markdown(clean_sections, [], primary_entity)
        assert text.splitlines()[0] == "# Intelligence Brief: Acme Corp"
        assert "## Sources" not in text
        assert text.endswith("\n")


class TestFormatSource:
    def test_long_path_shortened(self):
        path = "/" + "a" * 30 + "/" + "b" * 30
        citation = ResolvedCitation(id="url_1", fingerprint="f", url=f"https://www.reuters.com{path}",
                                    domain="reuters.com", title="")
        line = format_source(4, citation)
        assert line.startswith('[4] "reuters.com", reuters.com (www.reuters.com/')
        assert f"{path[:20]}...{path[-20:]}" in line

    def test_unparseable_date_omitted(self):
        citation = ResolvedCitation(id="url_1", fingerprint="f", url="https://ft.com/",
                                    domain="ft.com", title="FT", published_at="someday")
        assert format_source(1, citation) == '[1] "FT", ft.com'


class TestRenderJson:
    def test_document(self, clean_sections, citations):
        sections = dict(clean_sections)
        sections["overlooked"] = Section(name="overlooked", content=["x"], fallback=True,
                                         fallback_reason="boom")
        doc = json.loads(render_json("run_001", sections, PatternSet(), Bridge(), citations, True))

        assert doc["meta"]["run_id"] == "run_001"
        assert doc["meta"]["fallback_sections"] == ["overlooked"]
        assert doc["meta"]["selfcheck_pass"] is True
        assert [s["number"] for s in doc["sources"]] == [1, 2]
        assert doc["sources"][0]["url"] == "https://sec.gov/filings/acme-10k"
        assert doc["sections"]["convergence"] == "Pressure and timing now coincide."
        assert set(doc["patterns"]) == {"pressures", "levers", "timing", "executives", "numeric_proofs"}


class TestRenderContent:
    def test_dict_content(self):
        lines = render_content({"summary": "S", "key_themes": ["a"]})
        assert lines == ["**Summary:** S", "**Key themes**", "", "- a", ""]

    def test_list_of_strings(self):
        assert render_content(["a", "b"]) == ["- a", "- b"]

    def test_empty_list(self):
        assert render_content([]) == ["_No content._"]
