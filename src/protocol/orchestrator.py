# src/protocol/orchestrator.py — v1
"""Protocol orchestrator: execute the fifteen research steps of a run.

For each step: gather context, build prompts, call retrieval + generation,
parse and validate the JSON payload, repair or regenerate with validation
feedback, and persist one StepResult. A step that cannot produce a valid
payload gets a placeholder result instead of failing the run.

Run lifecycle:
  pending -> running            (setup)
  running -> completed          (all steps attempted)
  running -> failed             (setup error, or failure outside a step)

Citation normalization runs as a non-fatal post-step once the run is
completed.
"""

from __future__ import annotations

import copy
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from protoscope.citations.normalizer import CitationNormalizer
from protoscope.config.settings import Settings
from protoscope.core.models import RunStateError, StepResult
from protoscope.llm.retry import RetryExhausted
from protoscope.logging.context import set_run_context, set_step_context
from protoscope.protocol.executor import StepExecutor, StepPrompt, parse_payload
from protoscope.protocol.prompts import build_query, build_system_prompt
from protoscope.protocol.steps import STEP_DEFINITIONS, StepDefinition
from protoscope.schema.registry import BASE_SCHEMA, SchemaLoadError, SchemaRegistry
from protoscope.schema.repair import repair
from protoscope.schema.validator import validate
from protoscope.tracking.call_logger import CallLogger
from protoscope.tracking.cost_calculator import estimate_run_cost

if TYPE_CHECKING:
    from protoscope.core.models import Entity, Run
    from protoscope.llm.base_client import BaseGenerationClient, BaseRetrievalClient
    from protoscope.storage.base_repository import BaseRepository

logger = logging.getLogger(__name__)

PLACEHOLDER_STATUS = "Processing failed - data unavailable"
PLACEHOLDER_ANALYSIS = "Unable to complete analysis due to technical issues"


class ProtocolSetupError(Exception):
    """Raised when a run cannot start (unknown run or entity)."""


def placeholder_payload(failure_reason: str) -> dict[str, Any]:
    """Payload stored for a step that exhausted its attempts."""
    return {
        "citations": [],
        "execution_status": "failed",
        "failure_reason": failure_reason,
        "placeholder": True,
        "status": PLACEHOLDER_STATUS,
        "analysis": PLACEHOLDER_ANALYSIS,
    }


class ProtocolOrchestrator:
    """Execute every step of the protocol for a run.

    Args:
        repository: Persistence for runs, entities, context and results.
        retrieval: Search client.
        generation: Text generation client.
        settings: Attempt bounds, context limit and model names.
        schema_registry: Step schemas (defaults to bundled schemas).
        normalizer: Citation normalizer for the post-step.
        steps: Step catalogue (defaults to NB1..NB15).
        call_logger: Call tracker. A fresh one is used per run when omitted.
    """

    def __init__(
        self,
        repository: BaseRepository,
        retrieval: BaseRetrievalClient,
        generation: BaseGenerationClient,
        settings: Settings | None = None,
        schema_registry: SchemaRegistry | None = None,
        normalizer: CitationNormalizer | None = None,
        steps: tuple[StepDefinition, ...] = STEP_DEFINITIONS,
        call_logger: CallLogger | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._repository = repository
        self._retrieval = retrieval
        self._generation = generation
        self._schemas = schema_registry or SchemaRegistry(self._settings.schema_dir)
        self._normalizer = normalizer or CitationNormalizer.from_settings(self._settings)
        self._steps = steps
        self._call_logger = call_logger

    async def execute_protocol(self, run_id: str) -> bool:
        """Run all steps for a run.

        Returns:
            True when the loop completed (placeholders included), False when
            it could not execute.

        Raises:
            ProtocolSetupError: If the run or one of its entities is unknown.
        """
        set_run_context(run_id)
        run, primary, secondary = await self._setup(run_id)

        call_logger = self._call_logger or CallLogger()
        executor = StepExecutor(
            self._retrieval,
            self._generation,
            call_logger=call_logger,
            max_tokens=self._settings.generation_max_tokens,
            temperature=self._settings.generation_temperature,
        )
        start_ns = time.monotonic_ns()
        placeholders = 0

        try:
            for step in self._steps:
                result = await self._execute_step(run, step, primary, secondary, executor)
                await self._repository.upsert_step_result(run_id, step.code, result)
                placeholders += int(result.placeholder)

            await self._repository.update_run_metrics(
                run_id,
                actual_tokens=call_logger.total_tokens,
                actual_cost=round(call_logger.total_cost, 4),
            )
            if not run.is_terminal:
                await self._repository.set_run_status(run_id, "completed")
        except Exception as e:
            logger.exception("Protocol loop failed for run %s", run_id)
            await self._mark_failed(run_id, f"Protocol loop failed: {e}")
            return False
        finally:
            set_step_context(None)

        logger.info(
            "Run %s: %d steps in %dms (%d placeholder), %d tokens, $%.4f",
            run_id, len(self._steps), (time.monotonic_ns() - start_ns) // 1_000_000,
            placeholders, call_logger.total_tokens, call_logger.total_cost,
            extra={"data": {"placeholders": placeholders, "calls": call_logger.total_calls}},
        )

        await self._normalize_citations(run_id)
        return True

    # --- Setup ---

    async def _setup(self, run_id: str) -> tuple[Run, Entity, Entity | None]:
        run = await self._repository.get_run(run_id)
        if run is None:
            raise ProtocolSetupError(f"Run not found: {run_id}")

        if run.status == "pending":
            run = await self._repository.set_run_status(run_id, "running")
        elif run.is_terminal:
            logger.warning("Run %s is already %s; re-executing steps", run_id, run.status)

        primary = await self._repository.get_entity(run.primary_entity_id)
        if primary is None:
            await self._fail_setup(run_id, f"Primary entity not found: {run.primary_entity_id}")

        secondary = None
        if run.secondary_entity_id:
            secondary = await self._repository.get_entity(run.secondary_entity_id)
            if secondary is None:
                await self._fail_setup(run_id, f"Secondary entity not found: {run.secondary_entity_id}")

        estimate = estimate_run_cost(
            [s.code for s in self._steps],
            model=self._settings.generation_model,
            search_model=self._settings.retrieval_model,
        )
        await self._repository.update_run_metrics(
            run_id,
            estimated_tokens=estimate.total_tokens,
            estimated_cost=estimate.total_cost_usd,
        )
        return run, primary, secondary

    async def _fail_setup(self, run_id: str, reason: str) -> None:
        logger.error("Run %s setup failed: %s", run_id, reason)
        await self._mark_failed(run_id, reason)
        raise ProtocolSetupError(reason)

    async def _mark_failed(self, run_id: str, reason: str) -> None:
        try:
            await self._repository.set_run_status(run_id, "failed", error=reason)
        except RunStateError as e:
            logger.warning("Could not mark run %s failed: %s", run_id, e)

    # --- Steps ---

    async def _execute_step(
        self,
        run: Run,
        step: StepDefinition,
        primary: Entity,
        secondary: Entity | None,
        executor: StepExecutor,
    ) -> StepResult:
        set_step_context(step.code)
        start_ns = time.monotonic_ns()
        logger.info("Starting %s (%s)", step.code, step.objective)

        context = await self._gather_context(primary, secondary)
        prompt = StepPrompt(
            query=build_query(step, primary, secondary),
            system_prompt=build_system_prompt(step),
            primary=primary,
            secondary=secondary,
        )
        schema = self._schema_for(step)
        max_attempts = self._settings.step_max_attempts

        payload: dict[str, Any] | None = None
        repaired = False
        retrieval = None
        tokens = 0
        failure_reason = f"Step validation failed after {max_attempts} attempt(s)"
        attempt = 0

        while attempt < max_attempts:
            attempt += 1
            try:
                execution = await executor.run(
                    step, prompt, context, run_id=run.id, attempt=attempt, retrieval=retrieval,
                )
            except RetryExhausted as e:
                failure_reason = f"Step execution failed: {e}"
                logger.warning("%s attempt %d: %s", step.code, attempt, e)
                break
            except Exception as e:
                failure_reason = f"Step execution failed with exception: {e}"
                logger.warning("%s attempt %d raised %s: %s", step.code, attempt, type(e).__name__, e)
                continue

            retrieval = execution.retrieval
            tokens += execution.tokens_used

            try:
                data = parse_payload(execution.content)
            except json.JSONDecodeError:
                errors = ["Invalid JSON"]
            else:
                result = validate(data, schema)
                if result.valid:
                    payload = data
                    logger.info("%s: valid JSON on attempt %d", step.code, attempt)
                    break
                errors = result.errors
                fixed = repair(data, schema)
                if fixed is not None:
                    payload = fixed
                    repaired = True
                    logger.info("%s: repaired JSON on attempt %d", step.code, attempt)
                    break

            logger.warning(
                "%s: validation failed on attempt %d: %s",
                step.code, attempt, "; ".join(errors[:5]),
            )
            failure_reason = f"Step validation failed after {attempt} attempt(s)"
            prompt.validation_errors = errors

        retrieval_citations = list(retrieval.citations) if retrieval is not None else []
        duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

        if payload is None:
            logger.error("%s: creating placeholder result: %s", step.code, failure_reason)
            return StepResult(
                run_id=run.id,
                step_code=step.code,
                status="failed",
                payload=placeholder_payload(failure_reason),
                citations=retrieval_citations,
                duration_ms=duration_ms,
                tokens_used=tokens,
                attempts=attempt,
                placeholder=True,
            )

        payload_citations = payload.get("citations")
        citations = list(payload_citations) if isinstance(payload_citations, list) else []
        return StepResult(
            run_id=run.id,
            step_code=step.code,
            status="completed",
            payload=payload,
            citations=citations + retrieval_citations,
            duration_ms=duration_ms,
            tokens_used=tokens,
            attempts=attempt,
            repaired=repaired,
        )

    def _schema_for(self, step: StepDefinition) -> dict[str, Any]:
        """Step schema, or the base schema when the step file cannot be loaded."""
        try:
            return self._schemas.get(step.code)
        except SchemaLoadError as e:
            logger.error("%s: %s; validating against the base schema", step.code, e)
            return copy.deepcopy(BASE_SCHEMA)

    async def _gather_context(self, primary: Entity, secondary: Entity | None) -> list[dict[str, Any]]:
        limit = self._settings.context_chunk_limit
        try:
            chunks = await self._repository.get_context_chunks(primary.id, limit)
            if secondary is not None:
                chunks = chunks + await self._repository.get_context_chunks(secondary.id, limit)
        except Exception as e:
            logger.warning("Could not read context chunks: %s", e)
            return []
        return chunks

    # --- Post-steps ---

    async def _normalize_citations(self, run_id: str) -> None:
        """Rewrite every step's citations in canonical form (non-fatal)."""
        try:
            results = await self._repository.get_step_results(run_id)
            normalized = self._normalizer.normalize_run(results)
            for result in results:
                result.citations = normalized.citations_by_step.get(result.step_code, [])
                await self._repository.upsert_step_result(run_id, result.step_code, result)
        except Exception:
            logger.exception("Citation normalization failed for run %s (non-fatal)", run_id)
