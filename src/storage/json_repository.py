# src/storage/json_repository.py — v1
"""JSON file-based repository.

One JSON file per record under a root directory:

    runs/{run_id}.json
    results/{run_id}/{step_code}.json
    bundles/{run_id}.json
    entities/{entity_id}.json
    context/{entity_id}.json
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from pydantic import BaseModel

from protoscope.core.models import (
    Entity,
    Run,
    RunStatus,
    StepResult,
    SynthesisBundle,
)
from protoscope.storage.base_repository import BaseRepository, RunNotFoundError

logger = logging.getLogger(__name__)


class JsonFileRepository(BaseRepository):
    """File-backed repository. Writes are serialized with an asyncio.Lock."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    # --- Runs ---

    async def save_run(self, run: Run) -> None:
        async with self._lock:
            path = self._path("runs", run.id)
            existing = self._read(path, Run)
            if existing is not None:
                existing.check_replacement(run)
            self._write(path, run)

    async def get_run(self, run_id: str) -> Run | None:
        return self._read(self._path("runs", run_id), Run)

    async def set_run_status(self, run_id: str, status: RunStatus, error: str | None = None) -> Run:
        async with self._lock:
            run = self._require_run(run_id)
            run.transition(status, error=error)
            self._write(self._path("runs", run_id), run)
            return run

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
            self._write(self._path("runs", run_id), run)
            return run

    # --- Step results ---

    async def upsert_step_result(self, run_id: str, step_code: str, result: StepResult) -> None:
        async with self._lock:
            self._write(self._path("results", run_id, step_code), result)

    async def get_step_results(self, run_id: str) -> list[StepResult]:
        folder = self._root / "results" / _safe(run_id)
        if not folder.is_dir():
            return []
        results: list[StepResult] = []
        for path in sorted(folder.glob("*.json")):
            result = self._read(path, StepResult)
            if result is not None:
                results.append(result)
        return results

    # --- Synthesis ---

    async def save_synthesis_bundle(self, run_id: str, bundle: SynthesisBundle) -> None:
        async with self._lock:
            self._write(self._path("bundles", run_id), bundle)

    async def load_synthesis_bundle(self, run_id: str) -> SynthesisBundle | None:
        return self._read(self._path("bundles", run_id), SynthesisBundle)

    # --- Entities and context ---

    async def save_entity(self, entity: Entity) -> None:
        async with self._lock:
            self._write(self._path("entities", entity.id), entity)

    async def get_entity(self, entity_id: str) -> Entity | None:
        return self._read(self._path("entities", entity_id), Entity)

    async def add_context_chunk(self, entity_id: str, text: str, source: str = "") -> None:
        async with self._lock:
            path = self._path("context", entity_id)
            chunks = self._read_chunks(path)
            chunks.append({"text": text, "source": source})
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(chunks, indent=2), encoding="utf-8")

    async def get_context_chunks(self, entity_id: str, limit: int = 10) -> list[dict[str, str]]:
        return self._read_chunks(self._path("context", entity_id))[:limit]

    # --- Internals ---

    def _path(self, *parts: str) -> Path:
        *dirs, name = parts
        return self._root.joinpath(*(_safe(d) for d in dirs)) / f"{_safe(name)}.json"

    def _require_run(self, run_id: str) -> Run:
        run = self._read(self._path("runs", run_id), Run)
        if run is None:
            raise RunNotFoundError(f"Unknown run: {run_id}")
        return run

    @staticmethod
    def _write(path: Path, record: BaseModel) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(record.model_dump_json(indent=2), encoding="utf-8")

    @staticmethod
    def _read(path: Path, model: type[BaseModel]):
        if not path.exists():
            return None
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning("Failed to read record %s: %s", path, e)
            return None

    @staticmethod
    def _read_chunks(path: Path) -> list[dict[str, str]]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("Failed to read context chunks %s: %s", path, e)
            return []
        return data if isinstance(data, list) else []


def _safe(key: str) -> str:
    return key.replace("/", "_").replace("\\", "_")
