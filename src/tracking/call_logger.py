# src/tracking/call_logger.py — v1
"""Call logging — records every retrieval and generation call of a run."""

from __future__ import annotations

import json
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path

from protoscope.llm.models import GenerationResponse, RetrievalResponse
from protoscope.tracking.cost_calculator import compute_call_cost
from protoscope.tracking.models import CallRecord, ModelPricing


class CallLogger:
    """Accumulates call records during a protocol run."""

    def __init__(self, pricing: dict[str, ModelPricing] | None = None) -> None:
        self._records: list[CallRecord] = []
        self._pricing = pricing

    def record_retrieval(
        self, run_id: str, step: str, response: RetrievalResponse, attempt: int = 1,
    ) -> CallRecord:
        return self._append(CallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            run_id=run_id,
            step=step,
            kind="retrieval",
            provider=response.provider,
            model=response.model,
            total_tokens=response.tokens_used,
            latency_ms=response.latency_ms,
            attempt=attempt,
        ))

    def record_generation(
        self, run_id: str, step: str, response: GenerationResponse, attempt: int = 1,
    ) -> CallRecord:
        return self._append(CallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            run_id=run_id,
            step=step,
            kind="generation",
            provider=response.provider,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.tokens_used,
            latency_ms=response.latency_ms,
            attempt=attempt,
        ))

    def _append(self, record: CallRecord) -> CallRecord:
        record.estimated_cost_usd = compute_call_cost(record, self._pricing)
        self._records.append(record)
        return record

    @property
    def records(self) -> list[CallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self._records)

    @property
    def total_cost(self) -> float:
        return sum(r.estimated_cost_usd for r in self._records)

    @property
    def total_calls(self) -> int:
        return len(self._records)

    def tokens_by_step(self) -> dict[str, int]:
        totals: dict[str, int] = defaultdict(int)
        for r in self._records:
            totals[r.step] += r.total_tokens
        return dict(totals)

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
