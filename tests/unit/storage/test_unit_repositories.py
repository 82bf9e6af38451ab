# tests/unit/storage/test_unit_repositories.py — v1
"""Tests for storage/memory_repository.py and storage/json_repository.py.

Both backends run the same contract tests.
"""

from __future__ import annotations

import pytest

from protoscope.core.models import (
    Entity,
    Run,
    RunStateError,
    Section,
    StepResult,
    SynthesisBundle,
)
from protoscope.storage.json_repository import JsonFileRepository
from protoscope.storage.memory_repository import InMemoryRepository
from protoscope.storage.base_repository import RunNotFoundError


@pytest.fixture(params=["memory", "json"])
def repo(request, tmp_path):
    if request.param == "memory":
        return InMemoryRepository()
    return JsonFileRepository(tmp_path / "store")


def _result(step_code: str = "NB1", summary: str = "first") -> StepResult:
    return StepResult(
        run_id="run_1", step_code=step_code, status="completed",
        payload={"summary": summary}, attempts=1,
    )


class TestRuns:
    @pytest.mark.asyncio
    async def test_save_and_get(self, repo):
        await repo.save_run(Run(id="run_1", primary_entity_id="acme"))
        run = await repo.get_run("run_1")
        assert run.status == "pending"
        assert await repo.get_run("missing") is None

    @pytest.mark.asyncio
    async def test_status_transitions(self, repo):
        await repo.save_run(Run(id="run_1", primary_entity_id="acme"))
        await repo.set_run_status("run_1", "running")
        run = await repo.set_run_status("run_1", "completed")
        assert run.status == "completed"
        assert (await repo.get_run("run_1")).completed_at is not None

    @pytest.mark.asyncio
    async def test_terminal_status_is_final(self, repo):
        await repo.save_run(Run(id="run_1", primary_entity_id="acme"))
        await repo.set_run_status("run_1", "failed", error="setup")
        with pytest.raises(RunStateError):
            await repo.set_run_status("run_1", "running")
        assert (await repo.get_run("run_1")).error == "setup"

    @pytest.mark.asyncio
    async def test_metrics_on_terminal_run(self, repo):
        await repo.save_run(Run(id="run_1", primary_entity_id="acme", status="completed"))
        run = await repo.update_run_metrics("run_1", actual_tokens=1200, actual_cost=0.42)
        assert run.actual_tokens == 1200
        assert run.estimated_tokens == 0
        assert (await repo.get_run("run_1")).actual_cost == 0.42

    @pytest.mark.asyncio
    async def test_unknown_run(self, repo):
        with pytest.raises(RunNotFoundError):
            await repo.set_run_status("nope", "running")
        with pytest.raises(RunNotFoundError):
            await repo.update_run_metrics("nope", actual_tokens=1)

    @pytest.mark.asyncio
    async def test_terminal_run_accepts_cost_reconciliation(self, repo):
        await repo.save_run(Run(id="run_1", primary_entity_id="acme"))
        await repo.set_run_status("run_1", "running")
        done = await repo.set_run_status("run_1", "completed")

        await repo.save_run(done.model_copy(update={"actual_cost": 1.25, "actual_tokens": 900}))

        stored = await repo.get_run("run_1")
        assert stored.actual_cost == 1.25
        assert stored.status == "completed"

    @pytest.mark.asyncio
    async def test_terminal_run_rejects_other_changes(self, repo):
        await repo.save_run(Run(id="run_1", primary_entity_id="acme"))
        await repo.set_run_status("run_1", "running")
        done = await repo.set_run_status("run_1", "completed")

        with pytest.raises(RunStateError, match="primary_entity_id"):
            await repo.save_run(done.model_copy(update={"primary_entity_id": "other"}))
        assert (await repo.get_run("run_1")).primary_entity_id == "acme"

    @pytest.mark.asyncio
    async def test_open_run_replaced_freely(self, repo):
        await repo.save_run(Run(id="run_1", primary_entity_id="acme"))
        await repo.save_run(Run(id="run_1", primary_entity_id="acme", secondary_entity_id="duke"))
        assert (await repo.get_run("run_1")).secondary_entity_id == "duke"


class TestStepResults:
    @pytest.mark.asyncio
    async def test_upsert_replaces(self, repo):
        await repo.upsert_step_result("run_1", "NB1", _result(summary="first"))
        await repo.upsert_step_result("run_1", "NB1", _result(summary="second"))
        await repo.upsert_step_result("run_1", "NB2", _result("NB2"))
        results = await repo.get_step_results("run_1")
        assert len(results) == 2
        by_code = {r.step_code: r for r in results}
        assert by_code["NB1"].payload == {"summary": "second"}

    @pytest.mark.asyncio
    async def test_empty_run(self, repo):
        assert await repo.get_step_results("run_x") == []

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, repo):
        await repo.upsert_step_result("run_1", "NB1", _result())
        (await repo.get_step_results("run_1"))[0].payload["summary"] = "mutated"
        assert (await repo.get_step_results("run_1"))[0].payload["summary"] == "first"


class TestBundlesEntitiesContext:
    @pytest.mark.asyncio
    async def test_bundle_replaced(self, repo):
        await repo.save_synthesis_bundle("run_1", SynthesisBundle(run_id="run_1", rendered_text="v1"))
        await repo.save_synthesis_bundle("run_1", SynthesisBundle(
            run_id="run_1", rendered_text="v2",
            sections={"executive_summary": Section(name="executive_summary", content="x")},
        ))
        bundle = await repo.load_synthesis_bundle("run_1")
        assert bundle.rendered_text == "v2"
        assert bundle.sections["executive_summary"].content == "x"
        assert await repo.load_synthesis_bundle("other") is None

    @pytest.mark.asyncio
    async def test_entities(self, repo):
        await repo.save_entity(Entity(id="acme", name="Acme Corp"))
        assert (await repo.get_entity("acme")).name == "Acme Corp"
        assert await repo.get_entity("ghost") is None

    @pytest.mark.asyncio
    async def test_context_chunks_limit(self, repo):
        for i in range(4):
            await repo.add_context_chunk("acme", f"chunk {i}", source=f"doc{i}.pdf")
        chunks = await repo.get_context_chunks("acme", limit=3)
        assert chunks == [{"text": f"chunk {i}", "source": f"doc{i}.pdf"} for i in range(3)]
        assert await repo.get_context_chunks("other") == []


class TestJsonFileRepository:
    @pytest.mark.asyncio
    async def test_layout(self, tmp_store_dir):
        repo = JsonFileRepository(tmp_store_dir)
        await repo.save_run(Run(id="run_1", primary_entity_id="acme"))
        await repo.upsert_step_result("run_1", "NB3", _result("NB3"))
        assert (tmp_store_dir / "runs" / "run_1.json").exists()
        assert (tmp_store_dir / "results" / "run_1" / "NB3.json").exists()

    @pytest.mark.asyncio
    async def test_corrupt_record_is_skipped(self, tmp_store_dir):
        repo = JsonFileRepository(tmp_store_dir)
        await repo.upsert_step_result("run_1", "NB1", _result())
        (tmp_store_dir / "results" / "run_1" / "NB2.json").write_text("{broken")
        results = await repo.get_step_results("run_1")
        assert [r.step_code for r in results] == ["NB1"]

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_store_dir):
        await JsonFileRepository(tmp_store_dir).save_entity(Entity(id="acme", name="Acme"))
        assert (await JsonFileRepository(tmp_store_dir).get_entity("acme")).name == "Acme"

    @pytest.mark.asyncio
    async def test_upsert_keeps_one_file_per_step(self, tmp_store_dir):
        repo = JsonFileRepository(tmp_store_dir)
        await repo.upsert_step_result("run_1", "NB1", _result(summary="first"))
        await repo.upsert_step_result("run_1", "NB1", _result(summary="second"))

        files = sorted(p.name for p in (tmp_store_dir / "results" / "run_1").iterdir())
        assert files == ["NB1.json"]
        [result] = await repo.get_step_results("run_1")
        assert result.payload == {"summary": "second"}
