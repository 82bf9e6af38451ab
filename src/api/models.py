# src/api/models.py — v1
"""API-level models: EntityInput, ConfigOverrides, AnalysisRequest, AnalysisResult."""

from __future__ import annotations

from pydantic import BaseModel, Field

from protoscope.core.models import RunStatus, SynthesisBundle


class ContextDocument(BaseModel):
    """A company document chunk supplied by the caller."""

    text: str
    source: str = ""


class EntityInput(BaseModel):
    """Entity to analyse, with optional context documents."""

    name: str
    id: str | None = None
    website: str = ""
    sector: str = ""
    documents: list[ContextDocument] = Field(default_factory=list)


class ConfigOverrides(BaseModel):
    """Per-run overrides — validated subset of Settings."""

    generation_model: str | None = None
    retrieval_model: str | None = None
    step_max_attempts: int | None = None
    max_retries: int | None = None
    citation_deny_domains: str | None = None
    citation_allow_domains: str | None = None
    synthesis_enabled: bool | None = None


class AnalysisRequest(BaseModel):
    """Input of facade.run_analysis()."""

    primary: EntityInput
    secondary: EntityInput | None = None
    run_id: str | None = None
    config_overrides: ConfigOverrides | None = None


class AnalysisResult(BaseModel):
    """Return value of facade.run_analysis()."""

    run_id: str
    status: RunStatus
    success: bool
    step_count: int = 0
    placeholder_steps: list[str] = Field(default_factory=list)
    repaired_steps: list[str] = Field(default_factory=list)
    estimated_cost: float = 0.0
    actual_tokens: int = 0
    actual_cost: float = 0.0
    bundle: SynthesisBundle | None = None
    synthesis_error: str | None = None
