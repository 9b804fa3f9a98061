"""Domain models for research sessions and their event stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utc_now() -> datetime:
  return datetime.now(UTC)


class ModelVariant(str, Enum):
  """Model selection offered to callers."""

  COMBINED = "combined"
  COMPOUND = "compound"
  LLAMA = "llama"


class SessionStatus(str, Enum):
  """Lifecycle of a research session."""

  IDLE = "idle"
  INITIALIZING = "initializing"
  IN_PROGRESS = "in_progress"
  COMPLETED = "completed"
  ERROR = "error"

  @property
  def is_terminal(self) -> bool:
    return self in (SessionStatus.COMPLETED, SessionStatus.ERROR)


_STATUS_ORDER = {SessionStatus.IDLE: 0, SessionStatus.INITIALIZING: 1, SessionStatus.IN_PROGRESS: 2, SessionStatus.COMPLETED: 3, SessionStatus.ERROR: 3}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
  """Return True when moving from ``current`` to ``target`` keeps status monotone."""

  if current.is_terminal:
    return False
  return _STATUS_ORDER[target] > _STATUS_ORDER[current]


class EventKind(str, Enum):
  """Closed set of events emitted by the pipeline."""

  PROGRESS = "progress"
  QUESTIONS = "questions"
  QA = "qa"
  TITLE = "title"
  OUTLINE = "outline"
  SECTION = "section"
  REPORT = "report"
  COMPLETE = "complete"
  ERROR = "error"

  @property
  def is_terminal(self) -> bool:
    return self in (EventKind.COMPLETE, EventKind.ERROR)


@dataclass(frozen=True)
class SectionDescriptor:
  """One main section parsed from a model outline."""

  title: str
  description: str = ""
  level: int = 2


@dataclass(frozen=True)
class ReportSection:
  """Generated content for a single report section."""

  title: str
  content: str

  def as_dict(self) -> dict[str, str]:
    return {"title": self.title, "content": self.content}


@dataclass(frozen=True)
class Report:
  """Final assembled research report."""

  title: str
  executive_summary: str
  sections: tuple[ReportSection, ...]
  conclusion: str
  references: tuple[str, ...] | None = None

  def as_dict(self) -> dict[str, Any]:
    """Serialize the report using the wire field names."""
    payload: dict[str, Any] = {"title": self.title, "executiveSummary": self.executive_summary, "sections": [section.as_dict() for section in self.sections], "conclusion": self.conclusion}
    if self.references:
      payload["references"] = list(self.references)
    return payload


@dataclass(frozen=True)
class StageEvent:
  """Structured event emitted during a research run."""

  kind: EventKind
  message: str = ""
  is_completed: bool = False
  step: str | None = None
  progress: float | None = None
  data: dict[str, Any] = field(default_factory=dict)
  timestamp: datetime = field(default_factory=utc_now)

  def as_payload(self) -> dict[str, Any]:
    """Serialize the event body sent to observers."""
    if self.kind is EventKind.PROGRESS:
      payload: dict[str, Any] = {"message": self.message, "isCompleted": self.is_completed}
      if self.step is not None:
        payload["step"] = self.step
      if self.progress is not None:
        payload["progress"] = self.progress
      return payload

    if self.kind in (EventKind.COMPLETE, EventKind.ERROR):
      return {"message": self.message, **self.data}

    return dict(self.data)


@dataclass
class ResearchSession:
  """Mutable record tracking one query's end-to-end job."""

  session_id: str
  query: str
  model_variant: ModelVariant
  created_at: datetime
  status: SessionStatus = SessionStatus.INITIALIZING
  completed_at: datetime | None = None
  error: str | None = None
  title: str | None = None
  events: list[StageEvent] = field(default_factory=list)
  questions: list[str] = field(default_factory=list)
  answers: list[tuple[str, str]] = field(default_factory=list)
  report: dict[str, Any] | None = None

  def snapshot(self) -> dict[str, Any]:
    """Return a point-in-time view of the session for status queries."""
    progress = next((event.progress for event in reversed(self.events) if event.progress is not None), None)
    return {
      "queryId": self.session_id,
      "status": self.status.value,
      "query": self.query,
      "modelType": self.model_variant.value,
      "title": self.title,
      "createdAt": self.created_at.isoformat(),
      "completedAt": self.completed_at.isoformat() if self.completed_at else None,
      "error": self.error,
      "progress": progress,
    }
