"""Storage interfaces for research sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class ResearchQueryRecord:
  """Durable row describing one research session."""

  query_id: str
  query: str
  model_type: str
  status: str
  created_at: datetime
  title: str | None = None
  error: str | None = None
  completed_at: datetime | None = None


@dataclass(frozen=True)
class ResearchStepRecord:
  """Durable row for one emitted pipeline event."""

  query_id: str
  event_kind: str
  step: str
  status: str
  message: str | None
  data: dict[str, Any] | None
  created_at: datetime
  id: int | None = field(default=None)


class ResearchRepository(Protocol):
  """Repository contract for research persistence."""

  async def create_query(self, record: ResearchQueryRecord) -> None:
    """Persist the initial session row."""

  async def get_query(self, query_id: str) -> ResearchQueryRecord | None:
    """Fetch a session row by identifier."""

  async def update_status(self, query_id: str, status: str, *, error: str | None = None) -> None:
    """Set the session status and optional error message."""

  async def set_title(self, query_id: str, title: str) -> None:
    """Record the generated report title."""

  async def complete_query(self, query_id: str, completed_at: datetime) -> None:
    """Mark the session completed."""

  async def add_step(self, query_id: str, *, event_kind: str, step: str, status: str, message: str | None, data: dict[str, Any] | None) -> None:
    """Append one event record."""

  async def list_steps(self, query_id: str) -> list[ResearchStepRecord]:
    """Return event records in emission order."""

  async def get_report(self, query_id: str) -> dict[str, Any] | None:
    """Return the latest stored report payload, if any."""
