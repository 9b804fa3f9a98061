"""Postgres-backed repository for research sessions using SQLAlchemy."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select, update

from research_engine.core.database import get_session_factory
from research_engine.jobs.models import EventKind
from research_engine.schema.research import ResearchQuery, ResearchStep
from research_engine.storage.research_repo import ResearchQueryRecord, ResearchRepository, ResearchStepRecord


class PostgresResearchRepository(ResearchRepository):
  """Persist research queries and their step log to Postgres."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_query(self, record: ResearchQueryRecord) -> None:
    async with self._session_factory() as session:
      row = ResearchQuery(query_id=record.query_id, query=record.query, model_type=record.model_type, status=record.status, title=record.title, error=record.error, created_at=record.created_at, completed_at=record.completed_at)
      session.add(row)
      await session.commit()

  async def get_query(self, query_id: str) -> ResearchQueryRecord | None:
    async with self._session_factory() as session:
      result = await session.execute(select(ResearchQuery).where(ResearchQuery.query_id == query_id))
      row = result.scalar_one_or_none()
      if row is None:
        return None
      return ResearchQueryRecord(query_id=row.query_id, query=row.query, model_type=row.model_type, status=row.status, created_at=row.created_at, title=row.title, error=row.error, completed_at=row.completed_at)

  async def update_status(self, query_id: str, status: str, *, error: str | None = None) -> None:
    values: dict[str, Any] = {"status": status}
    if error is not None:
      values["error"] = error
    await self._update(query_id, values)

  async def set_title(self, query_id: str, title: str) -> None:
    await self._update(query_id, {"title": title})

  async def complete_query(self, query_id: str, completed_at: datetime) -> None:
    await self._update(query_id, {"status": "completed", "completed_at": completed_at})

  async def add_step(self, query_id: str, *, event_kind: str, step: str, status: str, message: str | None, data: dict[str, Any] | None) -> None:
    async with self._session_factory() as session:
      session.add(ResearchStep(query_id=query_id, event_kind=event_kind, step=step, status=status, message=message, data=data))
      await session.commit()

  async def list_steps(self, query_id: str) -> list[ResearchStepRecord]:
    async with self._session_factory() as session:
      result = await session.execute(select(ResearchStep).where(ResearchStep.query_id == query_id).order_by(ResearchStep.id))
      return [self._step_to_record(row) for row in result.scalars().all()]

  async def get_report(self, query_id: str) -> dict[str, Any] | None:
    async with self._session_factory() as session:
      stmt = select(ResearchStep).where(ResearchStep.query_id == query_id, ResearchStep.event_kind == EventKind.REPORT.value).order_by(ResearchStep.id.desc()).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None or not row.data:
        return None
      return row.data.get("report")

  async def _update(self, query_id: str, values: dict[str, Any]) -> None:
    async with self._session_factory() as session:
      await session.execute(update(ResearchQuery).where(ResearchQuery.query_id == query_id).values(**values))
      await session.commit()

  @staticmethod
  def _step_to_record(row: ResearchStep) -> ResearchStepRecord:
    return ResearchStepRecord(id=row.id, query_id=row.query_id, event_kind=row.event_kind, step=row.step, status=row.status, message=row.message, data=row.data, created_at=row.created_at)
