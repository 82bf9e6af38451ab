# src/synthesis/models.py — v1
"""Intermediate synthesis models: patterns, bridge, voice and self-check reports."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PatternKind = Literal["pressure", "lever", "timing", "executive", "numeric"]
Severity = Literal["error", "warn"]


class Pattern(BaseModel):
    """A recurring signal detected across step payloads."""

    kind: PatternKind
    text: str
    confidence: float = 0.5
    step_codes: list[str] = Field(default_factory=list)
    detail: dict[str, str] = Field(default_factory=dict)


class PatternSet(BaseModel):
    """All patterns detected for a run."""

    pressures: list[Pattern] = Field(default_factory=list)
    levers: list[Pattern] = Field(default_factory=list)
    timing: list[Pattern] = Field(default_factory=list)
    executives: list[Pattern] = Field(default_factory=list)
    numeric_proofs: list[Pattern] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "pressures": len(self.pressures),
            "levers": len(self.levers),
            "timing": len(self.timing),
            "executives": len(self.executives),
            "numeric_proofs": len(self.numeric_proofs),
        }


class BridgeItem(BaseModel):
    """Why one source theme matters to the target entity."""

    theme: str
    why_it_matters_to_target: str
    relevance_score: float


class Bridge(BaseModel):
    """Target-relevance bridge between primary and secondary entity."""

    items: list[BridgeItem] = Field(default_factory=list)
    rationale: list[str] = Field(default_factory=list)


class VoiceReport(BaseModel):
    """Outcome of voice enforcement across all sections."""

    checks: dict[str, dict[str, object]] = Field(default_factory=dict)
    score: int = 0
    rewrites_applied: list[str] = Field(default_factory=list)


class SelfCheckViolation(BaseModel):
    rule: str
    severity: Severity
    location: str
    message: str
    suggested_rewrite: str = ""


class SelfCheckReport(BaseModel):
    """Self-check outcome. passed is serialized as "pass"."""

    model_config = ConfigDict(populate_by_name=True)

    passed: bool = Field(default=True, alias="pass")
    violations: list[SelfCheckViolation] = Field(default_factory=list)
