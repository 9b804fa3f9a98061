"""In-memory registry of research sessions and their live observers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from research_engine.ai.orchestrator import ResearchOrchestrator
from research_engine.ai.providers.groq import GroqCompletionClient
from research_engine.ai.router import coerce_variant
from research_engine.config import Settings
from research_engine.jobs.models import EventKind, ModelVariant, ResearchSession, SessionStatus, StageEvent, can_transition, utc_now
from research_engine.storage.research_repo import ResearchQueryRecord, ResearchRepository, ResearchStepRecord
from research_engine.utils.ids import generate_session_id

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[str | None], ResearchOrchestrator]
Clock = Callable[[], float]

_CLOSED = object()


class SessionNotFoundError(LookupError):
  """Raised when a session identifier is unknown to memory and storage."""

  def __init__(self, session_id: str) -> None:
    super().__init__(f"Research query {session_id} not found")
    self.session_id = session_id


class ResearchValidationError(ValueError):
  """Raised when a research request fails input validation."""


class SessionObserver:
  """Async iterator over the events of one session.

  Iteration ends after a terminal event, on detach, or when the session
  is evicted. Events published before the observer attached are not
  replayed.
  """

  def __init__(self, session_id: str) -> None:
    self.session_id = session_id
    self._queue: asyncio.Queue[Any] = asyncio.Queue()
    self._closed = False

  @property
  def closed(self) -> bool:
    return self._closed

  def publish(self, event: StageEvent) -> None:
    if self._closed:
      return
    self._queue.put_nowait(event)
    if event.kind.is_terminal:
      self.close()

  def close(self) -> None:
    if self._closed:
      return
    self._closed = True
    self._queue.put_nowait(_CLOSED)

  def __aiter__(self) -> SessionObserver:
    return self

  async def __anext__(self) -> StageEvent:
    item = await self._queue.get()
    if item is _CLOSED:
      raise StopAsyncIteration
    return item


@dataclass
class _SessionEntry:
  session: ResearchSession
  api_key: str | None = None
  observers: list[SessionObserver] = field(default_factory=list)
  task: asyncio.Task[None] | None = None
  evict_at: float | None = None


def persisted_status(event: StageEvent) -> str:
  """Map an event to the status tag stored with its step record."""
  if event.kind is EventKind.PROGRESS:
    return "completed" if event.is_completed else "in_progress"
  if event.kind is EventKind.ERROR:
    return "error"
  return "completed"


class SessionRegistry:
  """Owns every live session, starts pipelines lazily and evicts finished ones."""

  def __init__(self, *, settings: Settings, repo: ResearchRepository, orchestrator_factory: OrchestratorFactory, clock: Clock = time.monotonic) -> None:
    self._settings = settings
    self._repo = repo
    self._orchestrator_factory = orchestrator_factory
    self._clock = clock
    self._entries: dict[str, _SessionEntry] = {}
    self._sweeper: asyncio.Task[None] | None = None

  def __contains__(self, session_id: object) -> bool:
    return session_id in self._entries

  def __len__(self) -> int:
    return len(self._entries)

  def session(self, session_id: str) -> ResearchSession | None:
    """Return the live session object, if it is still held in memory."""
    entry = self._entries.get(session_id)
    return entry.session if entry else None

  async def create(self, query: str, variant: ModelVariant | str | None = None, *, api_key: str | None = None) -> str:
    """Register a new session without starting its pipeline."""
    if not isinstance(query, str) or not query.strip():
      raise ResearchValidationError("Query is required and must be a non-empty string")
    try:
      model_variant = coerce_variant(variant if variant is not None else ModelVariant.COMBINED)
    except ValueError as exc:
      raise ResearchValidationError(str(exc)) from exc

    session_id = generate_session_id()
    while session_id in self._entries:
      session_id = generate_session_id()

    session = ResearchSession(session_id=session_id, query=query, model_variant=model_variant, created_at=utc_now())
    # Sessions nobody streams expire too; attaching clears the deadline.
    self._entries[session_id] = _SessionEntry(session=session, api_key=api_key, evict_at=self._clock() + self._settings.unattached_ttl_seconds)
    logger.info("Research session created id=%s model=%s", session_id, model_variant.value)

    record = ResearchQueryRecord(query_id=session_id, query=query, model_type=model_variant.value, status=session.status.value, created_at=session.created_at)
    await self._persist("create_query", self._repo.create_query(record), session_id)
    return session_id

  def attach(self, session_id: str) -> SessionObserver:
    """Subscribe to a session's future events, starting its pipeline on first attach."""
    entry = self._entries.get(session_id)
    if entry is None:
      raise SessionNotFoundError(session_id)

    observer = SessionObserver(session_id)
    if entry.session.status.is_terminal:
      observer.close()
      return observer

    entry.observers.append(observer)
    if entry.task is None:
      entry.task = asyncio.create_task(self._run(entry), name=f"research-{session_id}")
      entry.evict_at = None
      logger.info("Research pipeline started id=%s", session_id)
    return observer

  def detach(self, session_id: str, observer: SessionObserver) -> None:
    """Remove an observer; the pipeline keeps running."""
    entry = self._entries.get(session_id)
    if entry is not None and observer in entry.observers:
      entry.observers.remove(observer)
    observer.close()

  async def get(self, session_id: str) -> dict[str, Any]:
    """Return a status snapshot from memory, falling back to storage."""
    entry = self._entries.get(session_id)
    if entry is not None:
      return entry.session.snapshot()

    record = await self._repo.get_query(session_id)
    if record is None:
      raise SessionNotFoundError(session_id)
    return _record_snapshot(record)

  async def get_report(self, session_id: str) -> dict[str, Any] | None:
    """Return the final report payload, or None while it is not yet available."""
    entry = self._entries.get(session_id)
    if entry is not None and entry.session.report is not None:
      return entry.session.report
    if entry is None and await self._repo.get_query(session_id) is None:
      raise SessionNotFoundError(session_id)
    return await self._repo.get_report(session_id)

  async def list_steps(self, session_id: str) -> list[ResearchStepRecord]:
    """Return the durable step log of a session."""
    if session_id not in self._entries and await self._repo.get_query(session_id) is None:
      raise SessionNotFoundError(session_id)
    return await self._repo.list_steps(session_id)

  def sweep(self, now: float | None = None) -> list[str]:
    """Evict sessions whose retention window has elapsed."""
    current = self._clock() if now is None else now
    evicted: list[str] = []
    for session_id, entry in list(self._entries.items()):
      if entry.evict_at is None or entry.evict_at > current:
        continue
      for observer in entry.observers:
        observer.close()
      entry.observers.clear()
      del self._entries[session_id]
      evicted.append(session_id)

    if evicted:
      logger.info("Evicted %s research sessions", len(evicted))
    return evicted

  def start_sweeper(self) -> None:
    """Start the periodic eviction task once."""
    if self._sweeper is None or self._sweeper.done():
      self._sweeper = asyncio.create_task(self._sweep_loop(), name="research-sweeper")

  async def aclose(self) -> None:
    """Stop the sweeper and cancel pipelines that are still running."""
    tasks = [entry.task for entry in self._entries.values() if entry.task is not None and not entry.task.done()]
    if self._sweeper is not None:
      tasks.append(self._sweeper)
      self._sweeper = None

    for task in tasks:
      task.cancel()
    for task in tasks:
      with contextlib.suppress(asyncio.CancelledError):
        await task

    for entry in self._entries.values():
      for observer in entry.observers:
        observer.close()
      entry.observers.clear()

  async def _sweep_loop(self) -> None:
    while True:
      await asyncio.sleep(self._settings.sweep_interval_seconds)
      self.sweep()

  async def _run(self, entry: _SessionEntry) -> None:
    session = entry.session
    session.status = SessionStatus.IN_PROGRESS
    await self._persist("update_status", self._repo.update_status(session.session_id, session.status.value), session.session_id)

    async def emit(event: StageEvent) -> None:
      await self._dispatch(entry, event)

    try:
      orchestrator = self._orchestrator_factory(entry.api_key)
    except Exception as exc:
      logger.error("Could not build orchestrator for session %s: %s", session.session_id, exc)
      await emit(StageEvent(kind=EventKind.ERROR, message=str(exc) or type(exc).__name__))
      return

    try:
      await orchestrator.run(session.query, session.model_variant, emit)
    except asyncio.CancelledError:
      logger.warning("Research pipeline cancelled id=%s", session.session_id)
      await emit(StageEvent(kind=EventKind.ERROR, message="Research pipeline cancelled"))
      raise
    finally:
      try:
        await orchestrator.aclose()
      except Exception as exc:
        logger.warning("Failed to close completion client for session %s: %s", session.session_id, exc)

    if not session.status.is_terminal:
      await emit(StageEvent(kind=EventKind.ERROR, message="Research pipeline ended without a result"))

  async def _dispatch(self, entry: _SessionEntry, event: StageEvent) -> None:
    session = entry.session
    if session.status.is_terminal:
      logger.warning("Dropping %s event for finished session %s", event.kind.value, session.session_id)
      return

    self._apply(entry, event)
    for observer in list(entry.observers):
      observer.publish(event)
    if event.kind.is_terminal:
      entry.observers.clear()

    await self._record(session, event)

  def _apply(self, entry: _SessionEntry, event: StageEvent) -> None:
    session = entry.session
    session.events.append(event)

    if event.kind is EventKind.QUESTIONS:
      session.questions = list(event.data.get("questions", []))
    elif event.kind is EventKind.QA:
      session.answers.append((event.data.get("question", ""), event.data.get("answer", "")))
    elif event.kind is EventKind.TITLE:
      session.title = event.data.get("title")
    elif event.kind is EventKind.REPORT:
      session.report = event.data.get("report")
    elif event.kind is EventKind.COMPLETE:
      self._finish(entry, SessionStatus.COMPLETED, self._settings.completed_ttl_seconds)
      session.completed_at = utc_now()
    elif event.kind is EventKind.ERROR:
      self._finish(entry, SessionStatus.ERROR, self._settings.error_ttl_seconds)
      session.error = event.message

  def _finish(self, entry: _SessionEntry, status: SessionStatus, ttl_seconds: float) -> None:
    if can_transition(entry.session.status, status):
      entry.session.status = status
    entry.evict_at = self._clock() + ttl_seconds
    logger.info("Research session %s finished status=%s", entry.session.session_id, status.value)

  async def _record(self, session: ResearchSession, event: StageEvent) -> None:
    session_id = session.session_id
    payload = event.as_payload()
    step = event.step or event.kind.value
    await self._persist("add_step", self._repo.add_step(session_id, event_kind=event.kind.value, step=step, status=persisted_status(event), message=event.message or None, data=payload), session_id)

    if event.kind is EventKind.TITLE and session.title:
      await self._persist("set_title", self._repo.set_title(session_id, session.title), session_id)
    elif event.kind is EventKind.COMPLETE and session.completed_at is not None:
      await self._persist("complete_query", self._repo.complete_query(session_id, session.completed_at), session_id)
    elif event.kind is EventKind.ERROR:
      await self._persist("update_status", self._repo.update_status(session_id, SessionStatus.ERROR.value, error=event.message), session_id)

  async def _persist(self, operation: str, pending: Any, session_id: str) -> None:
    # Storage is best effort; a failed write never aborts the pipeline.
    try:
      await pending
    except Exception as exc:
      logger.warning("Research persistence %s failed for session %s: %s", operation, session_id, exc, exc_info=True)


def _record_snapshot(record: ResearchQueryRecord) -> dict[str, Any]:
  return {
    "queryId": record.query_id,
    "status": record.status,
    "query": record.query,
    "modelType": record.model_type,
    "title": record.title,
    "createdAt": record.created_at.isoformat(),
    "completedAt": record.completed_at.isoformat() if record.completed_at else None,
    "error": record.error,
    "progress": None,
  }


def build_orchestrator_factory(settings: Settings) -> OrchestratorFactory:
  """Return a factory creating one Groq-backed orchestrator per session.

  A caller-supplied API key takes precedence over the configured one.
  """

  def _factory(api_key: str | None) -> ResearchOrchestrator:
    client = GroqCompletionClient(api_key or settings.groq_api_key, base_url=settings.groq_base_url, timeout=settings.completion_timeout_seconds)
    return ResearchOrchestrator(client=client, settings=settings)

  return _factory
