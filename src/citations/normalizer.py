# src/citations/normalizer.py — v1
"""Citation normalization: heterogeneous citation → canonical record.

Inputs are bare URL strings or partial dicts. normalize() never raises:
each input yields a canonical dict, a pass-through dict, or None
(discarded). Outcomes are counted in NormalizationStats.

Domain rule: lower-case host, strip a leading ``www.``, require a ``.``.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections import Counter
from typing import TYPE_CHECKING, Any, Iterable
from urllib.parse import urlparse

from protoscope.citations.models import NormalizationStats, RunNormalizationResult

if TYPE_CHECKING:
    from protoscope.config.settings import Settings
    from protoscope.core.models import StepResult

logger = logging.getLogger(__name__)

URL_FIELDS = ("url", "link", "source")
TOP_DOMAIN_COUNT = 5

_HOST_RE = re.compile(r"^[a-z0-9.-]+$")
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def ensure_scheme(url: str) -> str:
    """Prepend https:// when the URL has no scheme."""
    url = url.strip()
    if not _SCHEME_RE.match(url):
        url = "https://" + url.lstrip("/")
    return url


def extract_domain(url: str) -> str | None:
    """Derive the canonical domain of a URL, or None if it is not a valid URL."""
    if not isinstance(url, str) or not url.strip():
        return None
    candidate = ensure_scheme(url)
    if any(ch.isspace() for ch in candidate):
        return None
    try:
        parsed = urlparse(candidate)
        host = parsed.hostname
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return None

    host = host.lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    if "." not in host or not _HOST_RE.match(host):
        return None
    if host.startswith(".") or ".." in host:
        return None
    return host


def domain_entropy_score(domain_counts: dict[str, int]) -> float:
    """Normalized Shannon entropy of a domain distribution, in [0, 1].

    Zero or one unique domain yields 0.
    """
    unique = len([c for c in domain_counts.values() if c > 0])
    if unique <= 1:
        return 0.0
    total = sum(domain_counts.values())
    entropy = 0.0
    for count in domain_counts.values():
        if count <= 0:
            continue
        p = count / total
        entropy -= p * math.log2(p)
    score = entropy / math.log2(unique)
    return round(max(0.0, min(1.0, score)), 4)


def domain_matches(domain: str, entries: Iterable[str]) -> bool:
    """True if domain equals an entry or is a subdomain of it."""
    for entry in entries:
        if domain == entry or domain.endswith("." + entry):
            return True
    return False


class CitationNormalizer:
    """Normalize citations and honour a domain allow/deny list."""

    def __init__(
        self,
        deny_domains: Iterable[str] = (),
        allow_domains: Iterable[str] = (),
    ) -> None:
        self._deny = [d.strip().lower() for d in deny_domains if d.strip()]
        self._allow = [d.strip().lower() for d in allow_domains if d.strip()]
        self.stats = NormalizationStats()

    @classmethod
    def from_settings(cls, settings: Settings) -> CitationNormalizer:
        return cls(
            deny_domains=settings.citation_deny_domains_list,
            allow_domains=settings.citation_allow_domains_list,
        )

    def reset_stats(self) -> None:
        self.stats = NormalizationStats()

    def is_denied(self, domain: str) -> bool:
        """Apply the deny list, then the allow list when one is configured."""
        if domain_matches(domain, self._deny):
            return True
        if self._allow and not domain_matches(domain, self._allow):
            return True
        return False

    def normalize(self, citation: Any) -> dict[str, Any] | None:
        """Normalize one citation. Returns None when it is discarded."""
        self.stats.processed += 1

        if isinstance(citation, str):
            domain = extract_domain(citation)
            if domain is None:
                self.stats.malformed += 1
                return None
            if self._filter_denied(domain):
                return None
            self.stats.normalized += 1
            return {"url": ensure_scheme(citation), "domain": domain, "title": ""}

        if isinstance(citation, dict):
            existing = citation.get("domain")
            if isinstance(existing, str) and existing.strip():
                if self._filter_denied(existing.strip().lower()):
                    return None
                self.stats.already_normalized += 1
                return citation

            url = next(
                (citation[f] for f in URL_FIELDS if isinstance(citation.get(f), str) and citation[f].strip()),
                None,
            )
            if url is None:
                self.stats.missing_urls += 1
                return citation

            domain = extract_domain(url)
            if domain is None:
                self.stats.malformed += 1
                return citation
            if self._filter_denied(domain):
                return None

            self.stats.normalized += 1
            normalized = dict(citation)
            normalized.setdefault("url", url)
            normalized["domain"] = domain
            return normalized

        self.stats.malformed += 1
        return None

    def normalize_many(self, citations: Iterable[Any]) -> list[dict[str, Any]]:
        """Normalize a list, dropping discarded entries."""
        out: list[dict[str, Any]] = []
        for citation in citations:
            normalized = self.normalize(citation)
            if normalized is not None:
                out.append(normalized)
        return out

    def normalize_run(self, step_results: Iterable[StepResult]) -> RunNormalizationResult:
        """Normalize every citation of a run and aggregate domain statistics."""
        self.reset_stats()
        by_step: dict[str, list[Any]] = {}
        domains: Counter[str] = Counter()

        for result in step_results:
            raw = collect_step_citations(result.payload, result.citations)
            normalized = self.normalize_many(raw)
            by_step[result.step_code] = normalized
            for citation in normalized:
                domain = citation.get("domain")
                if domain:
                    domains[domain] += 1

        score = domain_entropy_score(dict(domains))
        logger.info(
            "Normalized citations: processed=%d normalized=%d already=%d "
            "malformed=%d missing=%d denied=%d unique_domains=%d diversity=%.2f",
            self.stats.processed, self.stats.normalized,
            self.stats.already_normalized, self.stats.malformed,
            self.stats.missing_urls, self.stats.denied, len(domains), score,
        )
        return RunNormalizationResult(
            citations_by_step=by_step,
            domain_counts=dict(domains),
            top_domains=domains.most_common(TOP_DOMAIN_COUNT),
            diversity_score=score,
            stats=self.stats.model_copy(),
        )

    def _filter_denied(self, domain: str) -> bool:
        if self.is_denied(domain):
            self.stats.denied += 1
            return True
        return False


def collect_step_citations(payload: dict[str, Any], extra: Iterable[Any] = ()) -> list[Any]:
    """Gather raw citations from a step payload, de-duplicated by URL.

    Sources: payload["citations"], payload["sections"][*]["citations"],
    payload["sources"], then any extra (e.g. retrieval) citations.
    """
    raw: list[Any] = []
    if isinstance(payload, dict):
        raw.extend(_as_list(payload.get("citations")))
        for section in _as_list(payload.get("sections")):
            if isinstance(section, dict):
                raw.extend(_as_list(section.get("citations")))
        raw.extend(_as_list(payload.get("sources")))
    raw.extend(extra)

    seen: set[str] = set()
    unique: list[Any] = []
    for citation in raw:
        key = _dedupe_key(citation)
        if key in seen:
            continue
        seen.add(key)
        unique.append(citation)
    return unique


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _dedupe_key(citation: Any) -> str:
    if isinstance(citation, str):
        return citation.strip().lower()
    if isinstance(citation, dict):
        for f in URL_FIELDS:
            value = citation.get(f)
            if isinstance(value, str) and value.strip():
                return value.strip().lower()
        return json.dumps(citation, sort_keys=True, default=str)
    return repr(citation)
