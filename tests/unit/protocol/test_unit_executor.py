# tests/unit/protocol/test_unit_executor.py — v1
"""Tests for protocol/executor.py."""

from __future__ import annotations

import json

import pytest

from protoscope.protocol.executor import StepExecutor, StepPrompt, parse_payload
from protoscope.protocol.prompts import VALIDATION_ERRORS_HEADER
from protoscope.protocol.steps import get_step
from protoscope.tracking.call_logger import CallLogger


@pytest.fixture
def prompt(primary_entity) -> StepPrompt:
    return StepPrompt(query="Acme Corp facts", system_prompt="system", primary=primary_entity)


class TestStepExecutor:
    @pytest.mark.asyncio
    async def test_runs_retrieval_then_generation(self, mock_retrieval, mock_generation, prompt):
        call_logger = CallLogger()
        executor = StepExecutor(mock_retrieval, mock_generation, call_logger=call_logger, max_tokens=2000)

        execution = await executor.run(get_step("NB1"), prompt, [], run_id="run_1")

        mock_retrieval.search.assert_awaited_once_with("Acme Corp facts")
        kwargs = mock_generation.generate.await_args.kwargs
        assert kwargs["system_prompt"] == "system"
        assert kwargs["max_tokens"] == 2000
        assert "Acme Corp reported 12% cost growth" in kwargs["user_prompt"]
        assert execution.tokens_used == 300 + 1400
        assert len(execution.retrieval_citations) == 2
        assert [r.kind for r in call_logger.records] == ["retrieval", "generation"]
        assert call_logger.records[0].step == "NB1"

    @pytest.mark.asyncio
    async def test_reuses_cached_retrieval(self, mock_retrieval, mock_generation, prompt, retrieval_response):
        executor = StepExecutor(mock_retrieval, mock_generation)
        execution = await executor.run(get_step("NB2"), prompt, [], retrieval=retrieval_response, attempt=2)
        mock_retrieval.search.assert_not_awaited()
        assert execution.tokens_used == 1400

    @pytest.mark.asyncio
    async def test_validation_feedback_in_prompt(self, mock_retrieval, mock_generation, prompt):
        prompt.validation_errors = ["Invalid JSON"]
        execution = await StepExecutor(mock_retrieval, mock_generation).run(get_step("NB1"), prompt, [])
        assert VALIDATION_ERRORS_HEADER in execution.user_prompt

    @pytest.mark.asyncio
    async def test_context_documents_in_prompt(self, mock_retrieval, mock_generation, prompt):
        context = [{"text": "Board minutes", "source": "minutes.pdf"}]
        execution = await StepExecutor(mock_retrieval, mock_generation).run(get_step("NB1"), prompt, context)
        assert "[Source ID: 1] minutes.pdf" in execution.user_prompt


class TestParsePayload:
    def test_plain(self):
        assert parse_payload('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert parse_payload('```json\n{"a": 1}\n```') == {"a": 1}

    def test_fixable(self):
        assert parse_payload('{summary: "x",}') == {"summary": "x"}

    def test_invalid(self):
        with pytest.raises(json.JSONDecodeError):
            parse_payload("Sorry, I cannot help with that.")
