# src/tracking/models.py — v1
"""Tracking domain models: CallRecord, ModelPricing, CostEstimate."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class CallRecord(BaseModel):
    """Individual retrieval or generation call log entry."""

    call_id: str
    timestamp: datetime
    run_id: str
    step: str
    kind: Literal["retrieval", "generation"]
    provider: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    latency_ms: int = 0
    attempt: int = 1
    estimated_cost_usd: float = 0.0


class ModelPricing(BaseModel):
    """Model pricing configuration (USD per 1k tokens, or per search call)."""

    model: str
    input_price_per_1k: float = 0.0
    output_price_per_1k: float = 0.0
    search_price_per_call: float = 0.0


class StepCostEstimate(BaseModel):
    """Estimated token usage and cost for one step."""

    input_tokens: int
    output_tokens: int
    cost_usd: float


class CostEstimate(BaseModel):
    """Pre-run cost estimate over the whole step catalogue."""

    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    breakdown: dict[str, StepCostEstimate] = Field(default_factory=dict)
