# tests/unit/citations/test_unit_resolver.py — v1
"""Tests for citations/resolver.py."""

from __future__ import annotations

from protoscope.citations.resolver import (
    CitationResolver,
    citation_fingerprint,
    fallback_title,
    title_from_url,
)


class TestHelpers:
    def test_fingerprint_ignores_scheme_case_and_slash(self):
        assert citation_fingerprint("https://Reuters.com/a/") == citation_fingerprint("http://reuters.com/a")

    def test_title_from_url(self):
        assert title_from_url("https://ft.com/content/acme-margin_squeeze.html") == "Acme Margin Squeeze"
        assert title_from_url("https://ft.com/") is None

    def test_fallback_title(self):
        assert fallback_title("bloomberg.com") == "Bloomberg Article"
        assert fallback_title("acme.com") == "Acme Article"


class TestResolve:
    def test_merges_duplicates_across_steps(self):
        resolved = CitationResolver().resolve([
            ("NB1", {"url": "https://reuters.com/acme", "domain": "reuters.com"}),
            ("NB4", {"url": "http://reuters.com/acme/", "domain": "reuters.com", "snippet": "later"}),
            ("NB4", {"url": "https://sec.gov/", "domain": "sec.gov", "publishedAt": "2024-01-02"}),
        ])
        assert len(resolved) == 2
        first, second = resolved
        assert first.step_codes == ["NB1", "NB4"]
        assert first.snippet == "later"
        assert first.title == "Acme"
        assert first.id.startswith("url_") and len(first.id) == 12
        assert second.title == "SEC Filing Article"
        assert second.published_at == "2024-01-02T00:00:00+00:00"

    def test_skips_incomplete(self):
        resolved = CitationResolver().resolve([
            ("NB1", {"source_id": 1}),
            ("NB1", {"url": "https://x.com/a"}),
        ])
        assert resolved == []

    def test_given_title_kept(self):
        resolved = CitationResolver().resolve([
            ("NB2", {"url": "https://wsj.com/x", "domain": "wsj.com", "title": "Acme Q2"}),
        ])
        assert resolved[0].title == "Acme Q2"

    def test_non_string_type_dropped(self):
        resolved = CitationResolver().resolve([
            ("NB1", {"url": "https://wsj.com/x", "domain": "wsj.com", "type": 5}),
            ("NB1", {"url": "https://ft.com/y", "domain": "ft.com", "type": "news"}),
        ])
        assert [c.type for c in resolved] == [None, "news"]

    def test_epoch_date_stored_as_iso(self):
        resolved = CitationResolver().resolve([
            ("NB1", {"url": "https://wsj.com/x", "domain": "wsj.com", "publishedAt": 1735689600000}),
        ])
        assert resolved[0].published_at == "2025-01-01T00:00:00+00:00"

    def test_malformed_record_skipped_and_counted(self):
        resolver = CitationResolver()
        resolved = resolver.resolve([
            ("NB1", {"url": "https://wsj.com/x", "domain": 5}),
            ("NB1", {"url": "https://ft.com/y", "domain": "ft.com"}),
        ])
        assert [c.domain for c in resolved] == ["ft.com"]
        assert resolver.malformed == 1
