"""Progress checkpoints and monotone progress tracking for research runs."""

from __future__ import annotations

from research_engine.jobs.models import EventKind, StageEvent

INIT = 0.0
QUESTIONS_START = 5.0
QUESTIONS_DONE = 15.0
ANSWERS_DONE = 30.0
RESEARCH_DONE = 45.0
TITLE_DONE = 50.0
OUTLINE_DONE = 55.0
SECTIONS_DONE = 90.0
SUMMARY_DONE = 95.0
COMPLETE = 100.0

SECTIONS_SPAN = SECTIONS_DONE - OUTLINE_DONE
ANSWERS_SPAN = ANSWERS_DONE - QUESTIONS_DONE


def section_checkpoint(index: int, count: int) -> float:
  """Return the progress value reached after finishing section ``index`` of ``count``."""

  if count <= 0:
    return SECTIONS_DONE
  # The last section lands exactly on the checkpoint, never past it.
  if index + 1 >= count:
    return SECTIONS_DONE
  return min(OUTLINE_DONE + SECTIONS_SPAN * (index + 1) / count, SECTIONS_DONE)


def answer_checkpoint(index: int, count: int) -> float:
  """Return the progress value while answering question ``index`` of ``count``."""

  if count <= 0:
    return QUESTIONS_DONE
  return min(QUESTIONS_DONE + ANSWERS_SPAN * index / count, ANSWERS_DONE)


class ProgressTracker:
  """Build progress events while keeping the reported value non-decreasing."""

  def __init__(self) -> None:
    self._value = INIT

  @property
  def value(self) -> float:
    return self._value

  def advance(self, value: float) -> float:
    """Move the running value forward; lower values are ignored."""
    self._value = min(max(self._value, value), COMPLETE)
    return self._value

  def event(self, *, message: str, step: str, is_completed: bool, progress: float | None = None) -> StageEvent:
    """Create a progress event at ``progress`` (or the current value)."""
    value = self.advance(progress) if progress is not None else self._value
    return StageEvent(kind=EventKind.PROGRESS, message=message, is_completed=is_completed, step=step, progress=round(value, 4))
