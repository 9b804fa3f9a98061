"""In-process research repository used when no database is configured."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from research_engine.jobs.models import EventKind, utc_now
from research_engine.storage.research_repo import ResearchQueryRecord, ResearchRepository, ResearchStepRecord


class InMemoryResearchRepository(ResearchRepository):
  """Keep research rows in dictionaries for the lifetime of the process."""

  def __init__(self) -> None:
    self._queries: dict[str, ResearchQueryRecord] = {}
    self._steps: dict[str, list[ResearchStepRecord]] = {}
    self._next_step_id = 1

  async def create_query(self, record: ResearchQueryRecord) -> None:
    self._queries[record.query_id] = record

  async def get_query(self, query_id: str) -> ResearchQueryRecord | None:
    return self._queries.get(query_id)

  async def update_status(self, query_id: str, status: str, *, error: str | None = None) -> None:
    record = self._queries.get(query_id)
    if record is None:
      return
    self._queries[query_id] = replace(record, status=status, error=error if error is not None else record.error)

  async def set_title(self, query_id: str, title: str) -> None:
    record = self._queries.get(query_id)
    if record is not None:
      self._queries[query_id] = replace(record, title=title)

  async def complete_query(self, query_id: str, completed_at: datetime) -> None:
    record = self._queries.get(query_id)
    if record is not None:
      self._queries[query_id] = replace(record, status="completed", completed_at=completed_at)

  async def add_step(self, query_id: str, *, event_kind: str, step: str, status: str, message: str | None, data: dict[str, Any] | None) -> None:
    step_record = ResearchStepRecord(id=self._next_step_id, query_id=query_id, event_kind=event_kind, step=step, status=status, message=message, data=data, created_at=utc_now())
    self._next_step_id += 1
    self._steps.setdefault(query_id, []).append(step_record)

  async def list_steps(self, query_id: str) -> list[ResearchStepRecord]:
    return list(self._steps.get(query_id, []))

  async def get_report(self, query_id: str) -> dict[str, Any] | None:
    for step_record in reversed(self._steps.get(query_id, [])):
      if step_record.event_kind == EventKind.REPORT.value and step_record.data:
        return step_record.data.get("report")
    return None
