# src/storage/base_repository.py — v1
"""Abstract persistence interface for runs, step results and bundles.

The core never assumes a storage technology, only these verbs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from protoscope.core.models import (
    Entity,
    Run,
    RunStatus,
    StepResult,
    SynthesisBundle,
)


class RunNotFoundError(LookupError):
    """Raised when a run id is unknown to the repository."""


class BaseRepository(ABC):
    """Unified interface for persistence backends."""

    # --- Runs ---

    @abstractmethod
    async def save_run(self, run: Run) -> None:
        """Create or replace a run record.

        Raises:
            RunStateError: If a terminal run would change beyond its cost fields.
        """

    @abstractmethod
    async def get_run(self, run_id: str) -> Run | None:
        """Load a run, or None if unknown."""

    @abstractmethod
    async def set_run_status(self, run_id: str, status: RunStatus, error: str | None = None) -> Run:
        """Transition a run's status (one-way state machine).

        Raises:
            RunNotFoundError: If the run is unknown.
            RunStateError: If the transition is illegal.
        """

    @abstractmethod
    async def update_run_metrics(
        self,
        run_id: str,
        actual_tokens: int | None = None,
        actual_cost: float | None = None,
        estimated_tokens: int | None = None,
        estimated_cost: float | None = None,
    ) -> Run:
        """Update token/cost totals (allowed on terminal runs)."""

    # --- Step results ---

    @abstractmethod
    async def upsert_step_result(self, run_id: str, step_code: str, result: StepResult) -> None:
        """Insert or replace the result for (run_id, step_code)."""

    @abstractmethod
    async def get_step_results(self, run_id: str) -> list[StepResult]:
        """All step results of a run."""

    # --- Synthesis ---

    @abstractmethod
    async def save_synthesis_bundle(self, run_id: str, bundle: SynthesisBundle) -> None:
        """Store the bundle, replacing any previous one."""

    @abstractmethod
    async def load_synthesis_bundle(self, run_id: str) -> SynthesisBundle | None:
        """Load the bundle, or None if none was built."""

    # --- Entities and context ---

    @abstractmethod
    async def save_entity(self, entity: Entity) -> None:
        """Create or replace an entity."""

    @abstractmethod
    async def get_entity(self, entity_id: str) -> Entity | None:
        """Load an entity, or None if unknown."""

    @abstractmethod
    async def add_context_chunk(self, entity_id: str, text: str, source: str = "") -> None:
        """Attach a context document chunk to an entity."""

    @abstractmethod
    async def get_context_chunks(self, entity_id: str, limit: int = 10) -> list[dict[str, str]]:
        """Context chunks for an entity: [{"text", "source"}, ...]."""
