# src/tracking/cost_calculator.py — v1
"""Cost calculation from call records, plus pre-run estimation.

Prices are USD per 1k tokens for generation models and per call for
search providers.
"""

from __future__ import annotations

from typing import Iterable

from protoscope.tracking.models import (
    CallRecord,
    CostEstimate,
    ModelPricing,
    StepCostEstimate,
)

DEFAULT_PRICING: dict[str, ModelPricing] = {
    "gpt-4": ModelPricing(model="gpt-4", input_price_per_1k=0.03, output_price_per_1k=0.06),
    "gpt-4-turbo": ModelPricing(model="gpt-4-turbo", input_price_per_1k=0.01, output_price_per_1k=0.03),
    "gpt-3.5-turbo": ModelPricing(model="gpt-3.5-turbo", input_price_per_1k=0.0005, output_price_per_1k=0.0015),
    "claude-3-opus": ModelPricing(model="claude-3-opus", input_price_per_1k=0.015, output_price_per_1k=0.075),
    "claude-3-sonnet": ModelPricing(model="claude-3-sonnet", input_price_per_1k=0.003, output_price_per_1k=0.015),
    "claude-3-haiku": ModelPricing(model="claude-3-haiku", input_price_per_1k=0.00025, output_price_per_1k=0.00125),
    "perplexity": ModelPricing(model="perplexity", search_price_per_call=0.005),
    "sonar-pro": ModelPricing(model="sonar-pro", search_price_per_call=0.005),
}

# Historical average tokens per step (input, output).
AVG_TOKENS_PER_STEP: dict[str, tuple[int, int]] = {
    "NB1": (1500, 800),
    "NB2": (1800, 1000),
    "NB3": (2000, 1200),
    "NB4": (1600, 900),
    "NB5": (2200, 1100),
    "NB6": (1700, 850),
    "NB7": (1900, 950),
    "NB8": (2100, 1050),
    "NB9": (1800, 900),
    "NB10": (2000, 1000),
    "NB11": (1600, 800),
    "NB12": (1700, 850),
    "NB13": (1500, 750),
    "NB14": (2500, 1500),
    "NB15": (2800, 1600),
}

# Retrieval context adds ~10% to generation input.
RETRIEVAL_INPUT_OVERHEAD = 1.1


def compute_call_cost(record: CallRecord, pricing: dict[str, ModelPricing] | None = None) -> float:
    """Compute estimated cost for a single call in USD."""
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(record.model) or pricing.get(record.provider)
    if p is None:
        return 0.0
    if record.kind == "retrieval":
        return p.search_price_per_call
    return (
        record.input_tokens * p.input_price_per_1k / 1000
        + record.output_tokens * p.output_price_per_1k / 1000
    )


def compute_total_cost(
    records: Iterable[CallRecord],
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Compute total estimated cost across all records."""
    return sum(compute_call_cost(r, pricing) for r in records)


def estimate_run_cost(
    step_codes: Iterable[str],
    model: str = "gpt-4-turbo",
    search_model: str = "sonar-pro",
    pricing: dict[str, ModelPricing] | None = None,
) -> CostEstimate:
    """Estimate the cost of running the given steps from historical averages.

    Unknown step codes use the mean of the known averages.
    """
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(model, ModelPricing(model=model))
    search = pricing.get(search_model, ModelPricing(model=search_model))

    mean_in = sum(i for i, _ in AVG_TOKENS_PER_STEP.values()) // len(AVG_TOKENS_PER_STEP)
    mean_out = sum(o for _, o in AVG_TOKENS_PER_STEP.values()) // len(AVG_TOKENS_PER_STEP)

    estimate = CostEstimate(model=model)
    for code in step_codes:
        avg_in, avg_out = AVG_TOKENS_PER_STEP.get(code, (mean_in, mean_out))
        input_tokens = int(avg_in * RETRIEVAL_INPUT_OVERHEAD)
        cost = (
            input_tokens * p.input_price_per_1k / 1000
            + avg_out * p.output_price_per_1k / 1000
            + search.search_price_per_call
        )
        estimate.breakdown[code] = StepCostEstimate(
            input_tokens=input_tokens, output_tokens=avg_out, cost_usd=round(cost, 4),
        )
        estimate.input_tokens += input_tokens
        estimate.output_tokens += avg_out
        estimate.total_cost_usd += cost

    estimate.total_tokens = estimate.input_tokens + estimate.output_tokens
    estimate.total_cost_usd = round(estimate.total_cost_usd, 4)
    return estimate
