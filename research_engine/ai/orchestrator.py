"""Orchestration for the multi-stage research report pipeline."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

from research_engine.ai.outline import parse_outline
from research_engine.ai.parsing import extract_references, parse_questions, truncate_text
from research_engine.ai.prompts import PROMPT_TEMPLATES, render_prompt
from research_engine.ai.providers.base import ChatMessage, CompletionClient
from research_engine.ai.router import SYSTEM_PROMPT, ModelProfile, resolve_model_profile
from research_engine.config import ContextBudgets, Settings
from research_engine.jobs import progress as checkpoints
from research_engine.jobs.models import EventKind, ModelVariant, Report, ReportSection, SectionDescriptor, StageEvent
from research_engine.jobs.progress import ProgressTracker

logger = logging.getLogger(__name__)

EventSink = Callable[[StageEvent], Awaitable[None]]


@dataclass
class _ResearchContext:
  """Mutable state threaded through the stages of one run."""

  query: str
  profile: ModelProfile
  emit: EventSink
  tracker: ProgressTracker = field(default_factory=ProgressTracker)
  questions: list[str] = field(default_factory=list)
  qa_context: str = ""
  research_data: str = ""
  title: str = ""
  outline: str = ""
  sections: list[SectionDescriptor] = field(default_factory=list)
  previous_content: str = ""
  content_sections: list[ReportSection] = field(default_factory=list)
  executive_summary: str = ""
  conclusion: str = ""


class ResearchOrchestrator:
  """Runs the ordered research stages for a single query."""

  def __init__(self, *, client: CompletionClient, settings: Settings, templates: Mapping[str, str] = PROMPT_TEMPLATES) -> None:
    self._client = client
    self._settings = settings
    self._budgets: ContextBudgets = settings.budgets
    self._templates = templates

  async def run(self, query: str, variant: ModelVariant | str, emit: EventSink) -> Report | None:
    """Execute every stage in order, emitting events through ``emit``.

    Returns the assembled report, or ``None`` when a stage failed. A
    failure ends the run with exactly one ``error`` event; nothing is
    retried.
    """
    ctx = _ResearchContext(query=query, profile=resolve_model_profile(variant, self._settings), emit=emit)
    logger.info("Starting research run model=%s query='%s'", ctx.profile.model_id, _preview(query))

    try:
      await self._progress(ctx, "Starting research process...", "init", True, checkpoints.INIT)
      await self._run_questions_stage(ctx)
      await self._run_answers_stage(ctx)
      await self._run_research_data_stage(ctx)
      await self._run_title_stage(ctx)
      await self._run_outline_stage(ctx)
      await self._run_sections_stage(ctx)
      await self._run_summary_stage(ctx)
      await self._run_conclusion_stage(ctx)
      report = await self._assemble_report(ctx)
    except Exception as exc:
      message = str(exc) or type(exc).__name__
      logger.error("Research run failed at progress=%s: %s", ctx.tracker.value, message, exc_info=True)
      await ctx.emit(StageEvent(kind=EventKind.ERROR, message=message))
      return None

    logger.info("Research run complete title='%s' sections=%s", _preview(report.title), len(report.sections))
    return report

  async def aclose(self) -> None:
    """Release the completion client."""
    await self._client.aclose()

  async def _progress(self, ctx: _ResearchContext, message: str, step: str, is_completed: bool, value: float | None = None) -> None:
    await ctx.emit(ctx.tracker.event(message=message, step=step, is_completed=is_completed, progress=value))

  async def _complete(self, ctx: _ResearchContext, stage: str, **values: str) -> str:
    """Render the stage prompt and issue one completion call."""
    prompt = render_prompt(stage, self._templates, **values)
    messages = [ChatMessage(role="system", content=SYSTEM_PROMPT), ChatMessage(role="user", content=prompt)]
    logger.debug("Stage %s prompt_chars=%s", stage, len(prompt))
    return await self._client.complete(messages, ctx.profile.model_id, ctx.profile.temperature, ctx.profile.max_tokens)

  async def _run_questions_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Generating follow-up questions...", "questions", False, checkpoints.QUESTIONS_START)
    response = await self._complete(ctx, "questions", query=ctx.query)
    parsed = parse_questions(response, ctx.query)
    logger.info("Follow-up questions parsed via %s (%s questions)", parsed.source, len(parsed.questions))
    ctx.questions = list(parsed.questions)
    await ctx.emit(StageEvent(kind=EventKind.QUESTIONS, data={"questions": list(ctx.questions)}))
    await self._progress(ctx, "Follow-up questions generated", "questions", True, checkpoints.QUESTIONS_DONE)

  async def _run_answers_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Answering follow-up questions...", "answers", False, checkpoints.QUESTIONS_DONE)
    total = len(ctx.questions)
    qa_blocks: list[str] = []

    # Sequential on purpose: the QA block must follow question order.
    for index, question in enumerate(ctx.questions):
      await self._progress(ctx, f"Answering question {index + 1}/{total}...", "answers", False, checkpoints.answer_checkpoint(index, total))
      answer = await self._complete(ctx, "answer", query=ctx.query, question=question)
      qa_blocks.append(f"Question: {question}\nAnswer: {answer}\n\n")
      await ctx.emit(StageEvent(kind=EventKind.QA, data={"question": question, "answer": answer}))

    ctx.qa_context = "".join(qa_blocks)
    await self._progress(ctx, "All questions answered", "answers", True, checkpoints.ANSWERS_DONE)

  async def _run_research_data_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Gathering research data with sources...", "research_data", False, checkpoints.ANSWERS_DONE)
    ctx.research_data = await self._complete(ctx, "research_data", query=ctx.query, qa_context=truncate_text(ctx.qa_context, self._budgets.research_qa))
    await self._progress(ctx, "Research data gathered", "research_data", True, checkpoints.RESEARCH_DONE)

  async def _run_title_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Generating report title...", "title", False, checkpoints.RESEARCH_DONE)
    response = await self._complete(ctx, "title", query=ctx.query, research_data=truncate_text(ctx.research_data, self._budgets.title_research))
    ctx.title = clean_title(response) or f"Research Report: {ctx.query.strip()}"
    await ctx.emit(StageEvent(kind=EventKind.TITLE, data={"title": ctx.title}))
    await self._progress(ctx, f'Report title generated: "{ctx.title}"', "title", True, checkpoints.TITLE_DONE)

  async def _run_outline_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Creating research outline...", "outline", False, checkpoints.TITLE_DONE)
    questions_formatted = "\n".join(f"{index + 1}. {question}" for index, question in enumerate(ctx.questions))
    ctx.outline = await self._complete(ctx, "outline", query=ctx.query, title=ctx.title, questions=questions_formatted, research_data=truncate_text(ctx.research_data, self._budgets.outline_research))
    await ctx.emit(StageEvent(kind=EventKind.OUTLINE, data={"outline": ctx.outline}))
    ctx.sections = parse_outline(ctx.outline)
    logger.info("Outline parsed into %s sections", len(ctx.sections))
    await self._progress(ctx, "Research outline created", "outline", True, checkpoints.OUTLINE_DONE)

  async def _run_sections_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Generating content section by section...", "sections", False, checkpoints.OUTLINE_DONE)
    total = len(ctx.sections)

    for index, section in enumerate(ctx.sections):
      await self._progress(ctx, f"Writing section {index + 1}/{total}: {section.title}...", "sections", False)
      content = await self._complete(
        ctx,
        "section",
        query=ctx.query,
        section_title=section.title,
        previous_content=truncate_text(ctx.previous_content, self._budgets.section_previous),
        research_data=truncate_text(ctx.research_data, self._budgets.section_research),
        qa_context=truncate_text(ctx.qa_context, self._budgets.section_qa),
      )
      ctx.content_sections.append(ReportSection(title=section.title, content=content))
      await ctx.emit(StageEvent(kind=EventKind.SECTION, data={"section": {"title": section.title, "content": content}}))
      ctx.previous_content += f"\n\n## {section.title}\n\n{content}"
      await self._progress(ctx, f"Completed section {index + 1}/{total}: {section.title}", "sections", True, checkpoints.section_checkpoint(index, total))

  async def _run_summary_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Generating executive summary...", "summary", False, checkpoints.SECTIONS_DONE)
    ctx.executive_summary = await self._complete(ctx, "executive_summary", query=ctx.query, report_content=truncate_text(ctx.previous_content, self._budgets.summary_report))
    await self._progress(ctx, "Executive summary completed", "summary", True, checkpoints.SUMMARY_DONE)

  async def _run_conclusion_stage(self, ctx: _ResearchContext) -> None:
    await self._progress(ctx, "Generating conclusion...", "conclusion", False, checkpoints.SUMMARY_DONE)
    ctx.conclusion = await self._complete(ctx, "conclusion", query=ctx.query, report_content=truncate_text(ctx.previous_content, self._budgets.conclusion_report))
    await self._progress(ctx, "Conclusion completed", "conclusion", True, checkpoints.COMPLETE)

  async def _assemble_report(self, ctx: _ResearchContext) -> Report:
    references = extract_references(ctx.research_data)
    report = Report(title=ctx.title, executive_summary=ctx.executive_summary, sections=tuple(ctx.content_sections), conclusion=ctx.conclusion, references=tuple(references) or None)
    await ctx.emit(StageEvent(kind=EventKind.REPORT, data={"report": report.as_dict()}))
    await self._progress(ctx, "Research report completed", "complete", True, checkpoints.COMPLETE)
    await ctx.emit(StageEvent(kind=EventKind.COMPLETE, message=f'Research report "{report.title}" has been successfully generated.'))
    return report


def clean_title(raw: str) -> str:
  """Strip quoting and markdown decoration models like to wrap titles in."""
  first_line = next((line for line in raw.strip().splitlines() if line.strip()), "")
  title = first_line.strip().lstrip("#").strip().strip("*").strip()
  if title.lower().startswith("title:"):
    title = title[len("title:") :].strip()
  return title.strip("\"'“”").strip()


def _preview(text: str, limit: int = 50) -> str:
  return text[:limit] + "..." if len(text) > limit else text
