# src/storage/memory_repository.py — v1
"""In-process repository. Safe for concurrent runs on one event loop."""

from __future__ import annotations

import asyncio
from collections import defaultdict

from protoscope.core.models import (
    Entity,
    Run,
    RunStatus,
    StepResult,
    SynthesisBundle,
)
from protoscope.storage.base_repository import BaseRepository, RunNotFoundError


class InMemoryRepository(BaseRepository):
    """Dict-backed repository guarded by an asyncio.Lock."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._runs: dict[str, Run] = {}
        self._results: dict[str, dict[str, StepResult]] = defaultdict(dict)
        self._bundles: dict[str, SynthesisBundle] = {}
        self._entities: dict[str, Entity] = {}
        self._chunks: dict[str, list[dict[str, str]]] = defaultdict(list)

    async def save_run(self, run: Run) -> None:
        async with self._lock:
            existing = self._runs.get(run.id)
            if existing is not None:
                existing.check_replacement(run)
            self._runs[run.id] = run.model_copy(deep=True)

    async def get_run(self, run_id: str) -> Run | None:
        async with self._lock:
            run = self._runs.get(run_id)
            return run.model_copy(deep=True) if run else None

    async def set_run_status(self, run_id: str, status: RunStatus, error: str | None = None) -> Run:
        async with self._lock:
            run = self._require_run(run_id)
            run.transition(status, error=error)
            return run.model_copy(deep=True)

    async def update_run_metrics(
        self,
        run_id: str,
        actual_tokens: int | None = None,
        actual_cost: float | None = None,
        estimated_tokens: int | None = None,
        estimated_cost: float | None = None,
    ) -> Run:
        async with self._lock:
            run = self._require_run(run_id)
            if actual_tokens is not None:
                run.actual_tokens = actual_tokens
            if actual_cost is not None:
                run.actual_cost = actual_cost
            if estimated_tokens is not None:
                run.estimated_tokens = estimated_tokens
            if estimated_cost is not None:
                run.estimated_cost = estimated_cost
            return run.model_copy(deep=True)

    async def upsert_step_result(self, run_id: str, step_code: str, result: StepResult) -> None:
        async with self._lock:
            self._results[run_id][step_code] = result.model_copy(deep=True)

    async def get_step_results(self, run_id: str) -> list[StepResult]:
        async with self._lock:
            return [r.model_copy(deep=True) for r in self._results.get(run_id, {}).values()]

    async def save_synthesis_bundle(self, run_id: str, bundle: SynthesisBundle) -> None:
        async with self._lock:
            self._bundles[run_id] = bundle.model_copy(deep=True)

    async def load_synthesis_bundle(self, run_id: str) -> SynthesisBundle | None:
        async with self._lock:
            bundle = self._bundles.get(run_id)
            return bundle.model_copy(deep=True) if bundle else None

    async def save_entity(self, entity: Entity) -> None:
        async with self._lock:
            self._entities[entity.id] = entity.model_copy()

    async def get_entity(self, entity_id: str) -> Entity | None:
        async with self._lock:
            entity = self._entities.get(entity_id)
            return entity.model_copy() if entity else None

    async def add_context_chunk(self, entity_id: str, text: str, source: str = "") -> None:
        async with self._lock:
            self._chunks[entity_id].append({"text": text, "source": source})

    async def get_context_chunks(self, entity_id: str, limit: int = 10) -> list[dict[str, str]]:
        async with self._lock:
            return [dict(c) for c in self._chunks.get(entity_id, [])[:limit]]

    def _require_run(self, run_id: str) -> Run:
        run = self._runs.get(run_id)
        if run is None:
            raise RunNotFoundError(f"Unknown run: {run_id}")
        return run
