# src/citations/scorer.py — v1
"""Citation confidence and corpus diversity scoring.

Confidence (per citation) = 0.40·authority + 0.20·recency
                          + 0.25·corroboration + 0.15·relevance

Diversity (per citation set) = 0.35·domain variety + 0.30·type balance
                             + 0.25·temporal spread + 0.10·dual-entity bonus

All scores are pure functions of their inputs plus the reference time
passed to the constructor (defaults to now, UTC).
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import date, datetime, timezone
from typing import Any, Iterable

from protoscope.citations.models import DiversityMetrics, RecencyMix

DOMAIN_AUTHORITY: dict[str, float] = {
    "sec.gov": 1.0,
    "edgar.sec.gov": 1.0,
    "fda.gov": 1.0,
    "nih.gov": 0.98,
    "duke.edu": 0.95,
    "investor.gov": 0.95,
    "bloomberg.com": 0.95,
    "reuters.com": 0.95,
    "wsj.com": 0.95,
    "ft.com": 0.90,
    "nejm.org": 0.90,
    "jama.jamanetwork.com": 0.90,
    "forbes.com": 0.85,
    "fortune.com": 0.85,
    "viivhealthcare.com": 0.85,
    "gsk.com": 0.85,
    "businesswire.com": 0.80,
    "prnewswire.com": 0.80,
    "medscape.com": 0.80,
    "techcrunch.com": 0.75,
    "crunchbase.com": 0.75,
    "linkedin.com": 0.70,
    "glassdoor.com": 0.65,
}

SUBDOMAIN_PENALTY = 0.95
INVESTOR_RELATIONS_SCORE = 0.75
DEFAULT_AUTHORITY = 0.40
_INVESTOR_RE = re.compile(r"investor|ir\.|investors")

# Ordered: first match wins.
SOURCE_TYPE_PATTERNS: dict[str, tuple[str, ...]] = {
    "regulatory": ("sec.gov", "edgar.sec", "investor.gov", "fdic.gov", "occ.gov", "fda.gov", "nih.gov"),
    "news": ("bloomberg", "reuters", "wsj", "ft.com", "forbes", "fortune", "cnbc", "marketwatch"),
    "analyst": ("gartner", "forrester", "idc.com", "mckinsey", "deloitte", "pwc", "bcg.com"),
    "company": ("investor.", "ir.", "investors.", "about.", "newsroom.", "viiv", "gsk"),
    "industry": ("trade", "association", "institute", "society", "foundation"),
    "academic": ("duke.edu", "edu", "ac.uk", "research", "university", "college"),
    "healthcare": ("pharma", "medscape", "nejm", "jama", "healthcare", "health"),
}
DEFAULT_SOURCE_TYPE = "industry"

SECTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "executive_insight": ("leadership", "strategy", "ceo", "executive", "vision"),
    "financial_trajectory": ("revenue", "growth", "ebitda", "margin", "financial"),
    "margin_pressures": ("cost", "efficiency", "pressure", "expense", "overhead"),
    "strategic_priorities": ("priority", "initiative", "transformation", "digital"),
    "growth_levers": ("expansion", "market", "opportunity", "potential", "scale"),
}

# Ideal source-type share ranges for a dual-entity report.
IDEAL_TYPE_RANGES: dict[str, tuple[float, float]] = {
    "company": (0.15, 0.35),
    "academic": (0.10, 0.30),
    "regulatory": (0.10, 0.25),
    "industry": (0.05, 0.20),
    "news": (0.15, 0.35),
    "healthcare": (0.05, 0.25),
}

# epoch values above this are milliseconds
MILLISECOND_EPOCH_THRESHOLD = 1e11
_DATE_FIELDS = ("published_at", "publishedAt", "publishedat", "date")


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def parse_published(value: Any) -> datetime | None:
    """Parse a publication date (ISO string, date, datetime or epoch seconds/milliseconds)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) > MILLISECOND_EPOCH_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def citation_published(citation: dict[str, Any]) -> datetime | None:
    for f in _DATE_FIELDS:
        if citation.get(f):
            return parse_published(citation[f])
    return None


def categorize_source_type(domain: str) -> str:
    """Map a domain to a source category by ordered substring patterns."""
    domain = (domain or "").lower()
    for source_type, patterns in SOURCE_TYPE_PATTERNS.items():
        if any(p in domain for p in patterns):
            return source_type
    return DEFAULT_SOURCE_TYPE


class CitationScorer:
    """Per-citation confidence and corpus diversity metrics."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or datetime.now(timezone.utc)

    # --- Confidence ---

    def confidence(self, citation: dict[str, Any], context: dict[str, Any] | None = None) -> float:
        """Weighted confidence in [0, 1].

        Args:
            citation: Canonical citation (domain, snippet, published date).
            context: Optional ``section`` and ``corroboration_count``.
        """
        context = context or {}
        score = (
            self.authority_score(citation) * 0.40
            + self.recency_score(citation) * 0.20
            + self.corroboration_score(context.get("corroboration_count", 1)) * 0.25
            + self.relevance_score(citation, context.get("section")) * 0.15
        )
        return round(_clamp(score), 2)

    def authority_score(self, citation: dict[str, Any]) -> float:
        domain = (citation.get("domain") or "").lower()
        if domain in DOMAIN_AUTHORITY:
            return DOMAIN_AUTHORITY[domain]
        for auth_domain, score in DOMAIN_AUTHORITY.items():
            if auth_domain in domain:
                return score * SUBDOMAIN_PENALTY
        if _INVESTOR_RE.search(domain):
            return INVESTOR_RELATIONS_SCORE
        return DEFAULT_AUTHORITY

    def recency_score(self, citation: dict[str, Any]) -> float:
        published = citation_published(citation)
        if published is None:
            return 0.50
        days_old = (self._now - published).total_seconds() / 86400
        if days_old <= 30:
            return 1.0
        if days_old <= 90:
            return 0.85
        if days_old <= 180:
            return 0.70
        if days_old <= 365:
            return 0.55
        return 0.40

    @staticmethod
    def corroboration_score(count: int) -> float:
        if count >= 3:
            return 1.0
        if count == 2:
            return 0.75
        return 0.50

    @staticmethod
    def relevance_score(citation: dict[str, Any], section: str | None) -> float:
        keywords = SECTION_KEYWORDS.get(section or "")
        if not keywords:
            return 0.60
        text = str(citation.get("snippet") or citation.get("title") or "").lower()
        ratio = sum(1 for k in keywords if k in text) / len(keywords)
        if ratio >= 0.6:
            return 1.0
        if ratio >= 0.4:
            return 0.80
        if ratio >= 0.2:
            return 0.60
        return 0.40

    # --- Diversity ---

    def diversity_metrics(self, citations: Iterable[dict[str, Any]]) -> DiversityMetrics:
        """Compute corpus diversity for a set of canonical citations."""
        citations = list(citations)
        if not citations:
            return DiversityMetrics()

        domains: Counter[str] = Counter()
        types: Counter[str] = Counter()
        dates: list[datetime] = []
        for citation in citations:
            domain = (citation.get("domain") or "unknown").lower()
            domains[domain] += 1
            types[categorize_source_type(domain)] += 1
            published = citation_published(citation)
            if published is not None:
                dates.append(published)

        distribution = {t: round(c / len(citations), 2) for t, c in types.items()}
        variety = self.domain_variety_score(len(domains))
        balance = self.type_balance_score(distribution)
        spread = self.temporal_spread_score(dates)
        bonus = self.dual_entity_bonus(distribution)

        composite = variety * 0.35 + balance * 0.30 + spread * 0.25 + bonus * 0.10
        return DiversityMetrics(
            unique_domains=len(domains),
            domain_counts=dict(domains),
            type_distribution=distribution,
            recency_mix=self.recency_mix(dates),
            domain_variety_score=variety,
            type_balance_score=balance,
            temporal_spread_score=spread,
            dual_entity_bonus=bonus,
            diversity_score=round(_clamp(composite), 2),
        )

    @staticmethod
    def domain_variety_score(unique_count: int) -> float:
        if unique_count >= 10:
            return 1.0
        if unique_count >= 7:
            return 0.80
        if unique_count >= 4:
            return 0.60
        return 0.40

    @staticmethod
    def type_balance_score(distribution: dict[str, float]) -> float:
        type_count = len(distribution)
        if type_count >= 4:
            mean = sum(distribution.values()) / type_count
            variance = sum((v - mean) ** 2 for v in distribution.values()) / type_count
            if variance < 0.1:
                return 1.0
            if variance < 0.2:
                return 0.85
            return 0.70
        if type_count == 3:
            return 0.75
        if type_count == 2:
            return 0.50
        return 0.25

    @staticmethod
    def temporal_spread_score(dates: list[datetime]) -> float:
        if len(dates) < 2:
            return 0.25
        spread_days = (max(dates) - min(dates)).total_seconds() / 86400
        if spread_days >= 365:
            return 1.0
        if spread_days >= 180:
            return 0.75
        if spread_days >= 90:
            return 0.50
        return 0.25

    @staticmethod
    def dual_entity_bonus(distribution: dict[str, float]) -> float:
        bonus = 0.0
        has = {t for t, share in distribution.items() if share > 0}
        if "academic" in has:
            bonus += 0.30
        if "healthcare" in has:
            bonus += 0.25
        if "company" in has and "academic" in has:
            bonus += 0.25
        if "regulatory" in has and "academic" in has:
            bonus += 0.20
        return min(1.0, bonus)

    def recency_mix(self, dates: list[datetime]) -> RecencyMix:
        if not dates:
            return RecencyMix()
        total = len(dates)

        def share(days: int) -> float:
            within = sum(1 for d in dates if (self._now - d).total_seconds() <= days * 86400)
            return round(within / total, 2)

        return RecencyMix(
            current_month=share(30),
            current_quarter=share(90),
            current_year=share(365),
        )


def validate_citation_balance(distribution: dict[str, float]) -> dict[str, Any]:
    """Compare source-type shares against the ideal dual-entity ranges.

    Returns:
        {"score": float in [0, 1], "warnings": [str, ...]}
    """
    warnings: list[str] = []
    score = 1.0
    for source_type, (low, high) in IDEAL_TYPE_RANGES.items():
        actual = distribution.get(source_type, 0.0)
        if actual < low:
            warnings.append(f"{source_type} sources underrepresented: {actual:.2f} (min {low:.2f})")
            score -= 0.10
        elif actual > high:
            warnings.append(f"{source_type} sources overrepresented: {actual:.2f} (max {high:.2f})")
            score -= 0.05

    if distribution.get("academic", 0.0) <= 0.05:
        warnings.append("Missing secondary-entity coverage (academic sources <= 5%)")
        score -= 0.20
    if distribution.get("company", 0.0) <= 0.10:
        warnings.append("Missing primary-entity coverage (company sources <= 10%)")
        score -= 0.15
    if distribution.get("regulatory", 0.0) <= 0.05:
        warnings.append("Missing regulatory context (regulatory sources <= 5%)")
        score -= 0.10

    return {"score": round(_clamp(score), 2), "warnings": warnings}
