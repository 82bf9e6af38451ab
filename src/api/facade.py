# src/api/facade.py — v1
"""Public API facade — single entry point for a research run.

Usage:
    from protoscope.api.facade import run_analysis
    result = await run_analysis(AnalysisRequest(primary=EntityInput(name="Acme")))
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from protoscope.api.models import AnalysisRequest, AnalysisResult, ConfigOverrides, EntityInput
from protoscope.citations.normalizer import CitationNormalizer
from protoscope.config.settings import Settings
from protoscope.core.models import Entity, Run
from protoscope.llm.client_factory import create_generation_client, create_retrieval_client
from protoscope.logging.logger import setup_logging_from_settings
from protoscope.protocol.orchestrator import ProtocolOrchestrator
from protoscope.storage.memory_repository import InMemoryRepository
from protoscope.synthesis.engine import SynthesisEngine
from protoscope.synthesis.errors import SynthesisPhaseError
from protoscope.tracking.call_logger import CallLogger

if TYPE_CHECKING:
    from protoscope.core.models import SynthesisBundle
    from protoscope.llm.base_client import BaseGenerationClient, BaseRetrievalClient
    from protoscope.storage.base_repository import BaseRepository

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


async def run_analysis(
    request: AnalysisRequest,
    settings: Settings | None = None,
    repository: BaseRepository | None = None,
    retrieval: BaseRetrievalClient | None = None,
    generation: BaseGenerationClient | None = None,
) -> AnalysisResult:
    """Create a run, execute the protocol and build the synthesis.

    Steps:
      1. Resolve settings and apply per-run overrides
      2. Persist entities, context documents and the run
      3. Execute the fifteen protocol steps
      4. Build the synthesis bundle (failure is recorded, not raised)

    Args:
        request: Entities, optional run id and overrides.
        settings: Global settings. Loaded from .env if None.
        repository: Persistence backend. In-memory if None.
        retrieval: Search client. Built from settings if None.
        generation: Generation client. Built from settings if None.

    Raises:
        ProtocolSetupError: If the run cannot start.
    """
    settings = _apply_overrides(settings or Settings(), request.config_overrides)
    if settings.log_file:
        setup_logging_from_settings(settings)
    repository = repository or InMemoryRepository()
    retrieval = retrieval or create_retrieval_client(settings)
    generation = generation or create_generation_client(settings)

    primary = await _save_entity(repository, request.primary)
    secondary = await _save_entity(repository, request.secondary) if request.secondary else None

    run_id = request.run_id or _generate_run_id(primary.id)
    if await repository.get_run(run_id) is None:
        await repository.save_run(Run(
            id=run_id,
            primary_entity_id=primary.id,
            secondary_entity_id=secondary.id if secondary else None,
        ))

    logger.info(
        "Starting analysis: run_id=%s, primary=%s, secondary=%s",
        run_id, primary.name, secondary.name if secondary else None,
    )

    orchestrator = ProtocolOrchestrator(
        repository,
        retrieval,
        generation,
        settings=settings,
        call_logger=CallLogger(),
    )
    success = await orchestrator.execute_protocol(run_id)

    bundle = None
    synthesis_error = None
    if success and settings.synthesis_enabled:
        try:
            bundle = await build_synthesis(run_id, repository, settings)
        except SynthesisPhaseError as e:
            logger.exception("Synthesis failed for run %s (non-fatal)", run_id)
            synthesis_error = str(e)

    run = await repository.get_run(run_id)
    results = await repository.get_step_results(run_id)
    result = AnalysisResult(
        run_id=run_id,
        status=run.status,
        success=success,
        step_count=len(results),
        placeholder_steps=[r.step_code for r in results if r.placeholder],
        repaired_steps=[r.step_code for r in results if r.repaired],
        estimated_cost=run.estimated_cost,
        actual_tokens=run.actual_tokens,
        actual_cost=run.actual_cost,
        bundle=bundle,
        synthesis_error=synthesis_error,
    )

    logger.info(
        "Analysis complete: run_id=%s, status=%s, placeholders=%d, synthesis=%s",
        run_id, result.status, len(result.placeholder_steps), bundle is not None,
    )
    return result


async def build_synthesis(
    run_id: str,
    repository: BaseRepository,
    settings: Settings | None = None,
) -> SynthesisBundle:
    """(Re)build the synthesis bundle of an executed run.

    Raises:
        SynthesisPhaseError: If any synthesis phase fails.
    """
    settings = settings or Settings()
    engine = SynthesisEngine(repository, normalizer=CitationNormalizer.from_settings(settings))
    return await engine.build_report(run_id)


def _apply_overrides(settings: Settings, overrides: ConfigOverrides | None) -> Settings:
    """Apply per-run config overrides if provided."""
    if overrides is None:
        return settings
    values = overrides.model_dump(exclude_none=True)
    if not values:
        return settings
    current = settings.model_dump()
    current.update(values)
    return Settings(_env_file=None, **current)


async def _save_entity(repository: BaseRepository, entity_input: EntityInput) -> Entity:
    entity = Entity(
        id=entity_input.id or _entity_id(entity_input.name),
        name=entity_input.name,
        website=entity_input.website,
        sector=entity_input.sector,
    )
    await repository.save_entity(entity)
    for document in entity_input.documents:
        await repository.add_context_chunk(entity.id, document.text, document.source)
    return entity


def _entity_id(name: str) -> str:
    slug = _SLUG_RE.sub("-", name.lower()).strip("-") or "entity"
    return f"{slug}-{uuid.uuid5(uuid.NAMESPACE_DNS, name).hex[:8]}"


def _generate_run_id(entity_id: str) -> str:
    """Generate a run ID: yyyymmdd_hhmmss_{uuid5 short}."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    run_uuid = uuid.uuid5(uuid.NAMESPACE_DNS, f"{entity_id}_{ts}_{uuid.uuid4().hex}")
    return f"{ts}_{run_uuid.hex[:12]}"
