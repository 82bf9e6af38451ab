# src/protocol/executor.py — v1
"""Step executor: one retrieval call + one generation call per attempt.

Retries on transport errors happen inside the adapters (llm.retry); the
executor only sequences the two calls, builds the user prompt and records
every call with the CallLogger.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from protoscope.protocol.prompts import append_validation_errors, build_user_prompt
from protoscope.schema.repair import fix_json_string

if TYPE_CHECKING:
    from protoscope.core.models import Entity
    from protoscope.llm.base_client import BaseGenerationClient, BaseRetrievalClient
    from protoscope.llm.models import GenerationResponse, RetrievalResponse
    from protoscope.protocol.steps import StepDefinition
    from protoscope.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


@dataclass
class StepPrompt:
    """Prompt material for one step attempt."""

    query: str
    system_prompt: str
    primary: Entity
    secondary: Entity | None = None
    validation_errors: list[str] = field(default_factory=list)


@dataclass
class StepExecution:
    """Raw output of one attempt, before parsing and validation."""

    content: str
    user_prompt: str
    retrieval: RetrievalResponse
    generation: GenerationResponse
    tokens_used: int = 0
    duration_ms: int = 0

    @property
    def retrieval_citations(self) -> list[Any]:
        return list(self.retrieval.citations)


class StepExecutor:
    """Run the retrieval and generation calls of a step.

    Args:
        retrieval: Search client (e.g. PerplexityAdapter).
        generation: Text generation client (e.g. OpenAIAdapter).
        call_logger: Optional tracker receiving one record per call.
        max_tokens: Generation token cap.
        temperature: Generation temperature.
    """

    def __init__(
        self,
        retrieval: BaseRetrievalClient,
        generation: BaseGenerationClient,
        call_logger: CallLogger | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ) -> None:
        self._retrieval = retrieval
        self._generation = generation
        self._call_logger = call_logger
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def run(
        self,
        step: StepDefinition,
        prompt: StepPrompt,
        context: list[dict[str, Any]],
        run_id: str = "",
        attempt: int = 1,
        retrieval: RetrievalResponse | None = None,
    ) -> StepExecution:
        """Execute one attempt.

        Pass the retrieval response of a previous attempt to regenerate
        without searching again.

        Raises:
            RetryExhausted: When either service call fails for good.
        """
        start_ms = time.monotonic_ns() // 1_000_000
        tokens = 0

        if retrieval is None:
            retrieval = await self._retrieval.search(prompt.query)
            tokens += retrieval.tokens_used
            if self._call_logger:
                self._call_logger.record_retrieval(run_id, step.code, retrieval, attempt)
            logger.debug(
                "%s retrieval: %d chars, %d citations",
                step.code, len(retrieval.content), len(retrieval.citations),
            )

        user_prompt = build_user_prompt(
            retrieval.content, context, prompt.primary, prompt.secondary,
        )
        if prompt.validation_errors:
            user_prompt = append_validation_errors(user_prompt, prompt.validation_errors)

        generation = await self._generation.generate(
            system_prompt=prompt.system_prompt,
            user_prompt=user_prompt,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        tokens += generation.tokens_used
        if self._call_logger:
            self._call_logger.record_generation(run_id, step.code, generation, attempt)

        return StepExecution(
            content=generation.content,
            user_prompt=user_prompt,
            retrieval=retrieval,
            generation=generation,
            tokens_used=tokens,
            duration_ms=(time.monotonic_ns() // 1_000_000) - start_ms,
        )


def parse_payload(content: str) -> Any:
    """Decode a generation response, handling markdown fences.

    Falls back to a light syntactic fix (trailing commas, bare keys).

    Raises:
        json.JSONDecodeError: If the text is not JSON even after fixing.
    """
    text = content.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return json.loads(fix_json_string(text))
