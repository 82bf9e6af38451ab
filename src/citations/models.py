# src/citations/models.py — v1
"""Citation statistics and diversity models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class NormalizationStats(BaseModel):
    """Counters accumulated by CitationNormalizer."""

    processed: int = 0
    normalized: int = 0
    already_normalized: int = 0
    malformed: int = 0
    missing_urls: int = 0
    denied: int = 0


class RunNormalizationResult(BaseModel):
    """Output of normalizing every citation of a run."""

    citations_by_step: dict[str, list[Any]] = Field(default_factory=dict)
    domain_counts: dict[str, int] = Field(default_factory=dict)
    top_domains: list[tuple[str, int]] = Field(default_factory=list)
    diversity_score: float = 0.0
    stats: NormalizationStats = Field(default_factory=NormalizationStats)


class RecencyMix(BaseModel):
    """Share of dated citations published within each window."""

    current_month: float = 0.0
    current_quarter: float = 0.0
    current_year: float = 0.0


class DiversityMetrics(BaseModel):
    """Corpus-wide diversity of a citation set. All scores are in [0, 1]."""

    unique_domains: int = 0
    domain_counts: dict[str, int] = Field(default_factory=dict)
    type_distribution: dict[str, float] = Field(default_factory=dict)
    recency_mix: RecencyMix = Field(default_factory=RecencyMix)
    domain_variety_score: float = 0.0
    type_balance_score: float = 0.0
    temporal_spread_score: float = 0.0
    dual_entity_bonus: float = 0.0
    diversity_score: float = 0.0
