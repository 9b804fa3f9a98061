from __future__ import annotations

import pytest

from research_engine.jobs.models import utc_now
from research_engine.storage.memory_research_repo import InMemoryResearchRepository
from research_engine.storage.research_repo import ResearchQueryRecord


def _record(query_id: str = "q-1") -> ResearchQueryRecord:
  return ResearchQueryRecord(query_id=query_id, query="heat pumps", model_type="combined", status="initializing", created_at=utc_now())


@pytest.mark.anyio
async def test_point_updates_apply_to_the_stored_row() -> None:
  repo = InMemoryResearchRepository()
  await repo.create_query(_record())

  await repo.update_status("q-1", "in_progress")
  await repo.set_title("q-1", "Heat Pumps")
  finished = utc_now()
  await repo.complete_query("q-1", finished)

  stored = await repo.get_query("q-1")
  assert stored.status == "completed"
  assert stored.title == "Heat Pumps"
  assert stored.completed_at == finished
  assert stored.error is None


@pytest.mark.anyio
async def test_updates_for_unknown_rows_are_ignored() -> None:
  repo = InMemoryResearchRepository()
  await repo.update_status("missing", "error", error="boom")
  await repo.set_title("missing", "Title")
  assert await repo.get_query("missing") is None


@pytest.mark.anyio
async def test_steps_keep_emission_order_and_latest_report_wins() -> None:
  repo = InMemoryResearchRepository()
  await repo.add_step("q-1", event_kind="progress", step="init", status="completed", message="Starting", data={"message": "Starting"})
  await repo.add_step("q-1", event_kind="report", step="report", status="completed", message=None, data={"report": {"title": "Draft"}})
  await repo.add_step("q-1", event_kind="report", step="report", status="completed", message=None, data={"report": {"title": "Final"}})

  steps = await repo.list_steps("q-1")
  assert [step.id for step in steps] == [1, 2, 3]
  assert steps[0].event_kind == "progress"
  assert await repo.get_report("q-1") == {"title": "Final"}
  assert await repo.get_report("q-2") is None
