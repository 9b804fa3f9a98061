"""Tolerant parsing helpers for free-text model output."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 5
TRUNCATION_MARKER = "..."

QuestionSource = Literal["json", "json_substring", "numbered_lines", "synthesized"]

_NUMBERED_LINE_RE = re.compile(r"^\s*\d+[.)]\s*(.+?)\s*$")
_REFERENCES_HEADING_RE = re.compile(r"^\s*(?:#+\s*)?(?:\*\*)?\s*(references|sources|bibliography|works cited)\s*(?:\*\*)?\s*:?\s*(?:\*\*)?\s*$", re.IGNORECASE)
_HEADING_RE = re.compile(r"^\s*#+\s+\S")
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*•]\s+|\d+[.)]\s+)")


@dataclass(frozen=True)
class ParsedQuestions:
  """Follow-up questions together with the parsing path that produced them."""

  questions: tuple[str, ...]
  source: QuestionSource


def truncate_text(text: str, limit: int) -> str:
  """Cut ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
  if len(text) <= limit:
    return text
  return text[:limit] + TRUNCATION_MARKER


def _string_items(value: object) -> list[str] | None:
  if not isinstance(value, list):
    return None
  items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
  return items or None


def questions_from_json(text: str) -> list[str] | None:
  """Parse the whole response as a JSON array of strings."""
  try:
    return _string_items(json.loads(text.strip()))
  except json.JSONDecodeError:
    return None


def questions_from_json_substring(text: str) -> list[str] | None:
  """Parse the span between the first ``[`` and the last ``]`` as a JSON array."""
  start = text.find("[")
  end = text.rfind("]")
  if start == -1 or end <= start:
    return None
  try:
    return _string_items(json.loads(text[start : end + 1]))
  except json.JSONDecodeError:
    return None


def questions_from_numbered_lines(text: str) -> list[str] | None:
  """Keep lines shaped like ``1. question`` and drop their numbering."""
  questions: list[str] = []
  for line in text.splitlines():
    match = _NUMBERED_LINE_RE.match(line)
    if not match:
      continue
    question = match.group(1).strip().strip("*").strip()
    if question:
      questions.append(question)
  return questions or None


def synthesize_questions(query: str) -> list[str]:
  """Deterministic follow-up questions used when nothing could be parsed."""
  topic = query.strip()
  return [
    f"What are the key concepts and definitions related to {topic}?",
    f"What is the current state of research or development regarding {topic}?",
    f"What are the main challenges, risks, or debates surrounding {topic}?",
    f"What practical applications or real-world examples exist for {topic}?",
    f"What future trends or developments are expected for {topic}?",
  ]


_QUESTION_ATTEMPTS: tuple[tuple[QuestionSource, Callable[[str], list[str] | None]], ...] = (
  ("json", questions_from_json),
  ("json_substring", questions_from_json_substring),
  ("numbered_lines", questions_from_numbered_lines),
)


def parse_questions(text: str, query: str) -> ParsedQuestions:
  """Extract at most five follow-up questions from a model response.

  Attempts run in order (whole-text JSON, bracketed JSON substring,
  numbered lines) and the first one yielding questions wins. When every
  attempt comes back empty the questions are synthesized from ``query``.
  """
  for source, attempt in _QUESTION_ATTEMPTS:
    questions = attempt(text)
    if questions:
      return ParsedQuestions(questions=tuple(questions[:MAX_QUESTIONS]), source=source)

  logger.warning("Could not parse follow-up questions; using synthesized defaults.")
  return ParsedQuestions(questions=tuple(synthesize_questions(query)), source="synthesized")


def extract_references(research_data: str) -> list[str]:
  """Collect list entries under the last References/Sources heading."""
  lines = research_data.splitlines()
  heading_index: int | None = None
  for index, line in enumerate(lines):
    if _REFERENCES_HEADING_RE.match(line):
      heading_index = index

  if heading_index is None:
    return []

  references: list[str] = []
  for line in lines[heading_index + 1 :]:
    stripped = line.strip()
    if not stripped:
      continue
    if _HEADING_RE.match(stripped):
      break
    entry = _LIST_MARKER_RE.sub("", stripped).strip()
    if entry:
      references.append(entry)
  return references
