# src/synthesis/engine.py — v1
"""Synthesis engine: turn a run's step results into one SynthesisBundle.

Phases (each may fail into SynthesisPhaseError, none is retried):

    input_validation -> patterns -> bridge -> sections -> voice
    -> selfcheck -> citations -> render -> done

Every failure is logged on one line as
``SYNTH_PHASE run=<id> phase=<phase> keys=[...] note=<...>`` before the
phase error is raised.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from protoscope.citations.normalizer import CitationNormalizer, collect_step_citations
from protoscope.citations.resolver import CitationResolver
from protoscope.citations.scorer import CitationScorer, validate_citation_balance
from protoscope.core.models import ResolvedCitation, SynthesisBundle
from protoscope.logging.context import set_phase_context, set_run_context
from protoscope.synthesis.bridge import build_target_bridge
from protoscope.synthesis.canonical import canonical_results
from protoscope.synthesis.drafter import draft_sections
from protoscope.synthesis.errors import SynthesisPhaseError
from protoscope.synthesis.patterns import detect_patterns
from protoscope.synthesis.render import render_json, render_markdown
from protoscope.synthesis.selfcheck import run_selfcheck
from protoscope.synthesis.voice import apply_voice_enforcement

if TYPE_CHECKING:
    from protoscope.core.models import Entity, StepResult
    from protoscope.storage.base_repository import BaseRepository

logger = logging.getLogger(__name__)

NO_CANONICAL_DATA = "No canonical NB data found after normalization"

T = TypeVar("T")


class SynthesisEngine:
    """Build and persist the synthesis bundle of a run.

    Args:
        repository: Source of step results and entities, sink for the bundle.
        normalizer: Citation normalizer (deny/allow lists apply here too).
        scorer: Confidence and diversity scorer.
        resolver: Citation resolver (fingerprint ids, titles).
    """

    def __init__(
        self,
        repository: BaseRepository,
        normalizer: CitationNormalizer | None = None,
        scorer: CitationScorer | None = None,
        resolver: CitationResolver | None = None,
    ) -> None:
        self._repository = repository
        self._normalizer = normalizer or CitationNormalizer()
        self._scorer = scorer or CitationScorer()
        self._resolver = resolver or CitationResolver()

    async def build_report(self, run_id: str) -> SynthesisBundle:
        """Run every phase and save the bundle (replacing any previous one).

        Raises:
            SynthesisPhaseError: On the first failing phase.
        """
        set_run_context(run_id)
        try:
            return await self._build(run_id)
        finally:
            set_phase_context(None)

    async def _build(self, run_id: str) -> SynthesisBundle:
        results = await self._repository.get_step_results(run_id)
        canon, seen = canonical_results(results)
        keys = list(canon)

        if not canon:
            raise self._fail(run_id, "input_validation", "build_report", seen, keys, NO_CANONICAL_DATA)

        primary, secondary = await self._entities(run_id, seen, keys)
        payloads = {code: result.payload for code, result in canon.items()}

        def phase(name: str, method: str, fn: Callable[[], T]) -> T:
            set_phase_context(name)
            _diag(run_id, name, keys, "begin", level=logging.DEBUG)
            try:
                return fn()
            except Exception as e:
                raise self._fail(run_id, name, method, seen, keys, f"{type(e).__name__}: {e}") from e

        patterns = phase("patterns", "detect_patterns", lambda: detect_patterns(payloads, primary.name))
        bridge = phase(
            "bridge", "build_target_bridge",
            lambda: build_target_bridge(patterns, primary, secondary, payloads),
        )
        sections = phase(
            "sections", "draft_sections",
            lambda: draft_sections(patterns, bridge, primary, secondary),
        )
        sections, voice = phase("voice", "apply_voice_enforcement", lambda: apply_voice_enforcement(sections))
        selfcheck = phase("selfcheck", "run_selfcheck", lambda: run_selfcheck(sections))
        citations, diversity = phase("citations", "enrich_citations", lambda: self.enrich_citations(canon))
        rendered_text, rendered_json = phase(
            "render", "render_outputs",
            lambda: (
                render_markdown(sections, citations, primary, secondary),
                render_json(run_id, sections, patterns, bridge, citations, selfcheck.passed),
            ),
        )

        bundle = SynthesisBundle(
            run_id=run_id,
            sections=sections,
            voice_report=voice.model_dump(),
            selfcheck_report=selfcheck.model_dump(by_alias=True),
            citations=citations,
            diversity=diversity,
            rendered_text=rendered_text,
            rendered_json=rendered_json,
        )
        await self._repository.save_synthesis_bundle(run_id, bundle)

        set_phase_context("done")
        logger.info(
            "Synthesis built for run %s: %d steps, %d sources, selfcheck pass=%s, fallbacks=%s",
            run_id, len(canon), len(citations), selfcheck.passed,
            [n for n, s in sections.items() if s.fallback],
        )
        return bundle

    def enrich_citations(self, canon: dict[str, StepResult]) -> tuple[list[ResolvedCitation], dict[str, Any]]:
        """Normalize, resolve and score the citations of the canonical steps."""
        self._normalizer.reset_stats()
        pairs: list[tuple[str, dict[str, Any]]] = []
        for code, result in canon.items():
            raw = collect_step_citations(result.payload, result.citations)
            pairs.extend((code, c) for c in self._normalizer.normalize_many(raw))

        resolved = self._resolver.resolve(pairs)
        for citation in resolved:
            citation.confidence = self._scorer.confidence(
                citation.model_dump(),
                {"corroboration_count": len(citation.step_codes)},
            )

        metrics = self._scorer.diversity_metrics(c.model_dump() for c in resolved)
        diversity = metrics.model_dump()
        diversity["balance"] = validate_citation_balance(metrics.type_distribution)
        self._normalizer.stats.malformed += self._resolver.malformed
        diversity["normalization"] = self._normalizer.stats.model_dump()
        return resolved, diversity

    async def _entities(self, run_id: str, seen: list[str], keys: list[str]) -> tuple[Entity, Entity | None]:
        run = await self._repository.get_run(run_id)
        if run is None:
            raise self._fail(run_id, "input_validation", "build_report", seen, keys, f"Run not found: {run_id}")
        primary = await self._repository.get_entity(run.primary_entity_id)
        if primary is None:
            raise self._fail(
                run_id, "input_validation", "build_report", seen, keys,
                f"Primary entity not found: {run.primary_entity_id}",
            )
        secondary = None
        if run.secondary_entity_id:
            secondary = await self._repository.get_entity(run.secondary_entity_id)
        return primary, secondary

    @staticmethod
    def _fail(
        run_id: str, phase: str, method: str, seen: list[str], keys: list[str], note: str,
    ) -> SynthesisPhaseError:
        _diag(run_id, phase, keys, note, level=logging.ERROR)
        return SynthesisPhaseError(run_id, phase, method, seen, note)


def _diag(run_id: str, phase: str, keys: list[str], note: str, level: int = logging.INFO) -> None:
    logger.log(level, "SYNTH_PHASE run=%s phase=%s keys=[%s] note=%s", run_id, phase, ",".join(keys), note)
