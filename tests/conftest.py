# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides mock retrieval/generation clients, sample entities and payloads,
an in-memory repository and zero-backoff settings.
No external services: every network call is mocked.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from protoscope.config.settings import Settings
from protoscope.core.models import Entity, Run, StepResult
from protoscope.llm.models import GenerationResponse, RetrievalResponse
from protoscope.storage.memory_repository import InMemoryRepository


# === FIXTURES: Sample data ===


SAMPLE_PAYLOAD: dict[str, Any] = {
    "summary": "Acme Corp faces margin compression as input costs rose 12% during 2024.",
    "key_points": [
        "Revenue grew to $450 million while operating margins narrowed.",
        "The company is expanding into clinical logistics services.",
    ],
    "implications": ["Cost discipline is now a board-level priority."],
    "citations": [
        {
            "source_id": 1,
            "quote": "Input costs rose 12%",
            "url": "https://www.reuters.com/business/acme-margin-pressure",
        }
    ],
}


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Schema-valid step payload."""
    return json.loads(json.dumps(SAMPLE_PAYLOAD))


@pytest.fixture
def primary_entity() -> Entity:
    return Entity(
        id="acme",
        name="Acme Corp",
        website="https://acme.example.com",
        sector="Medical supply manufacturing",
    )


@pytest.fixture
def secondary_entity() -> Entity:
    return Entity(id="duke-health", name="Duke Health", sector="Academic healthcare")


@pytest.fixture
def sample_step_result(sample_payload: dict[str, Any]) -> StepResult:
    """Completed NB1 result with one payload and one retrieval citation."""
    return StepResult(
        run_id="run_001",
        step_code="NB1",
        status="completed",
        payload=sample_payload,
        citations=[
            *sample_payload["citations"],
            "https://www.bloomberg.com/news/acme-expands",
        ],
        attempts=1,
        tokens_used=1700,
    )


# === FIXTURES: Settings and storage ===


@pytest.fixture
def settings() -> Settings:
    """Settings without .env and without backoff sleeps."""
    return Settings(
        _env_file=None,
        backoff_base_s=0.0,
        backoff_cap_s=0.0,
        max_retries=1,
    )


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def seed_run(repository: InMemoryRepository, primary_entity: Entity, secondary_entity: Entity):
    """Async helper persisting entities and a run in the repository."""

    async def _seed(
        run_id: str = "run_001",
        comparative: bool = False,
        documents: list[dict[str, str]] | None = None,
    ) -> Run:
        await repository.save_entity(primary_entity)
        if comparative:
            await repository.save_entity(secondary_entity)
        for doc in documents or []:
            await repository.add_context_chunk(primary_entity.id, doc["text"], doc.get("source", ""))
        run = Run(
            id=run_id,
            primary_entity_id=primary_entity.id,
            secondary_entity_id=secondary_entity.id if comparative else None,
        )
        await repository.save_run(run)
        return run

    return _seed


# === FIXTURES: Mock services ===


@pytest.fixture
def retrieval_response() -> RetrievalResponse:
    """Standard mock retrieval response."""
    return RetrievalResponse(
        content="Acme Corp reported 12% cost growth and a new logistics partnership.",
        citations=[
            "https://www.bloomberg.com/news/acme-expands",
            {"url": "https://sec.gov/filings/acme-10k", "title": "Acme 10-K"},
        ],
        tokens_used=300,
        model="sonar-pro",
        provider="perplexity",
        latency_ms=400,
    )


@pytest.fixture
def generation_response(sample_payload: dict[str, Any]) -> GenerationResponse:
    """Standard mock generation response carrying a valid payload."""
    return GenerationResponse(
        content=json.dumps(sample_payload),
        input_tokens=1000,
        output_tokens=400,
        model="gpt-4-turbo",
        provider="openai",
        latency_ms=900,
    )


@pytest.fixture
def mock_retrieval(retrieval_response: RetrievalResponse) -> AsyncMock:
    """Mock BaseRetrievalClient with default response."""
    client = AsyncMock()
    client.search = AsyncMock(return_value=retrieval_response)
    client.provider_name = "mock"
    return client


@pytest.fixture
def mock_generation(generation_response: GenerationResponse) -> AsyncMock:
    """Mock BaseGenerationClient with default response."""
    client = AsyncMock()
    client.generate = AsyncMock(return_value=generation_response)
    client.provider_name = "mock"
    return client


def make_generation(content: str) -> GenerationResponse:
    return GenerationResponse(
        content=content, input_tokens=100, output_tokens=50,
        model="gpt-4-turbo", provider="openai",
    )


@pytest.fixture
def generation_factory():
    """Build GenerationResponse objects from raw content."""
    return make_generation


# === FIXTURES: Temp dirs ===


@pytest.fixture
def tmp_store_dir(tmp_path: Path) -> Path:
    """Temporary repository root."""
    store = tmp_path / "store"
    store.mkdir()
    return store
