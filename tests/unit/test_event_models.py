from __future__ import annotations

import msgspec

from research_engine.api.sse import encode_sse_frame
from research_engine.jobs.models import EventKind, ModelVariant, Report, ReportSection, ResearchSession, SessionStatus, StageEvent, can_transition, utc_now


def test_report_payload_uses_camel_case_and_omits_missing_references() -> None:
  report = Report(title="T", executive_summary="S", sections=(ReportSection(title="A", content="a"),), conclusion="C")
  assert report.as_dict() == {"title": "T", "executiveSummary": "S", "sections": [{"title": "A", "content": "a"}], "conclusion": "C"}

  cited = Report(title="T", executive_summary="S", sections=(), conclusion="C", references=("Ref 1",))
  assert cited.as_dict()["references"] == ["Ref 1"]


def test_event_payload_shapes() -> None:
  assert StageEvent(kind=EventKind.TITLE, data={"title": "T"}).as_payload() == {"title": "T"}
  assert StageEvent(kind=EventKind.ERROR, message="boom").as_payload() == {"message": "boom"}
  assert StageEvent(kind=EventKind.PROGRESS, message="m").as_payload() == {"message": "m", "isCompleted": False}


def test_terminal_statuses_are_sticky() -> None:
  assert can_transition(SessionStatus.INITIALIZING, SessionStatus.IN_PROGRESS)
  assert can_transition(SessionStatus.IN_PROGRESS, SessionStatus.ERROR)
  assert not can_transition(SessionStatus.IN_PROGRESS, SessionStatus.INITIALIZING)
  assert not can_transition(SessionStatus.COMPLETED, SessionStatus.ERROR)
  assert not can_transition(SessionStatus.ERROR, SessionStatus.COMPLETED)


def test_snapshot_reports_latest_progress() -> None:
  session = ResearchSession(session_id="s-1", query="q", model_variant=ModelVariant.LLAMA, created_at=utc_now())
  session.events.append(StageEvent(kind=EventKind.PROGRESS, progress=15.0))
  session.events.append(StageEvent(kind=EventKind.QA, data={"question": "a", "answer": "b"}))

  snapshot = session.snapshot()
  assert snapshot["progress"] == 15.0
  assert snapshot["modelType"] == "llama"
  assert snapshot["status"] == "initializing"
  assert snapshot["completedAt"] is None


def test_sse_frame_format() -> None:
  frame = encode_sse_frame(StageEvent(kind=EventKind.SECTION, data={"section": {"title": "A", "content": "a"}}))
  header, data, trailer = frame.split(b"\n", 2)
  assert header == b"event: section"
  assert msgspec.json.decode(data.removeprefix(b"data: ")) == {"section": {"title": "A", "content": "a"}}
  assert trailer == b"\n"
