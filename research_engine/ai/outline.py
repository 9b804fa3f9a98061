"""Outline parsing for the section generation loop."""

from __future__ import annotations

import re

from research_engine.jobs.models import SectionDescriptor

EXCLUDED_TITLES = ("executive summary", "conclusion")

DEFAULT_SECTIONS: tuple[SectionDescriptor, ...] = (
  SectionDescriptor(title="Introduction", description="Background, scope, and significance of the topic."),
  SectionDescriptor(title="Key Findings", description="The most important facts, evidence, and perspectives gathered during research."),
  SectionDescriptor(title="Analysis and Implications", description="Interpretation of the findings and what they mean in practice."),
)

_MAIN_HEADER_RE = re.compile(r"^##(?!#)\s*(.*)$")
_SUB_HEADER_RE = re.compile(r"^#{3,}\s*(.*)$")
_NUMBERING_RE = re.compile(r"^\d+\.(?:\d+\.?)*\s+")
_TITLE_HEADER_RE = re.compile(r"^#(?!#)")


def _clean_title(raw: str) -> str:
  title = raw.strip().rstrip("#").strip()
  title = title.strip("*_").strip()
  title = _NUMBERING_RE.sub("", title).strip()
  # "1. **Title**" still carries the opening emphasis after the number is gone.
  return title.strip("*_").strip()


def _is_excluded(title: str) -> bool:
  lowered = title.lower()
  return any(excluded in lowered for excluded in EXCLUDED_TITLES)


def parse_outline(text: str) -> list[SectionDescriptor]:
  """Convert a markdown outline into main section descriptors.

  ``##`` headers open sections. Text lines and deeper headers that follow
  are folded into the open section's description. Anything before the
  first ``##`` header is dropped, as are executive summary and conclusion
  sections. Returns the default sections when nothing usable remains.
  """
  parsed: list[tuple[str, list[str]]] = []
  current: list[str] | None = None

  for line in text.splitlines():
    stripped = line.strip()
    if not stripped:
      continue

    main = _MAIN_HEADER_RE.match(stripped)
    if main:
      title = _clean_title(main.group(1))
      # An empty "##" header closes the open section.
      current = [] if title else None
      if title:
        parsed.append((title, current))
      continue

    # Lines before the first main header carry no section; a lone "#" line is the document title.
    if current is None or _TITLE_HEADER_RE.match(stripped):
      continue

    sub = _SUB_HEADER_RE.match(stripped)
    fragment = _clean_title(sub.group(1)) if sub else stripped
    if fragment:
      current.append(fragment)

  sections = [SectionDescriptor(title=title, description=" ".join(parts), level=2) for title, parts in parsed if not _is_excluded(title)]
  if not sections:
    return list(DEFAULT_SECTIONS)
  return sections
