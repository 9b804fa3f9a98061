from __future__ import annotations

import pytest

from research_engine.ai.prompts import PROMPT_TEMPLATES, render_prompt


def test_every_stage_has_a_template() -> None:
  assert set(PROMPT_TEMPLATES) == {"questions", "answer", "research_data", "title", "outline", "section", "executive_summary", "conclusion"}


def test_render_prompt_substitutes_placeholders() -> None:
  prompt = render_prompt("answer", query="grid storage", question="Which chemistries dominate?")
  assert "grid storage" in prompt
  assert "Which chemistries dominate?" in prompt
  assert "{query}" not in prompt


def test_render_prompt_leaves_braces_in_values_alone() -> None:
  prompt = render_prompt("questions", query="what does {question} mean in {x}?")
  assert "what does {question} mean in {x}?" in prompt


def test_render_prompt_unknown_stage() -> None:
  with pytest.raises(KeyError):
    render_prompt("poem", query="x")


def test_render_prompt_accepts_custom_templates() -> None:
  assert render_prompt("greet", {"greet": "Hello {name}"}, name="Ada") == "Hello Ada"
