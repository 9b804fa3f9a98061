from __future__ import annotations

import pytest

from research_engine.config import load_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
  for name in ("RESEARCH_ALLOWED_ORIGINS", "RESEARCH_COMPOUND_MODEL", "RESEARCH_LLAMA_MODEL", "RESEARCH_COMPLETED_TTL_SECONDS", "RESEARCH_ERROR_TTL_SECONDS", "RESEARCH_UNATTACHED_TTL_SECONDS", "RESEARCH_BUDGET_RESEARCH_QA"):
    monkeypatch.delenv(name, raising=False)

  settings = load_settings()

  assert settings.allowed_origins == ("http://localhost:5173",)
  assert settings.compound_model == "compound-beta"
  assert settings.completed_ttl_seconds == 3600
  assert settings.error_ttl_seconds == 300
  assert settings.unattached_ttl_seconds == 600
  assert settings.budgets.research_qa == 6000
  assert settings.budgets.section_previous == 1500


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("RESEARCH_ALLOWED_ORIGINS", "https://a.example, https://b.example")
  monkeypatch.setenv("RESEARCH_LLAMA_MODEL", "meta-llama/llama-4-maverick-17b-128e-instruct")
  monkeypatch.setenv("RESEARCH_BUDGET_SECTION_QA", "900")
  monkeypatch.setenv("RESEARCH_DEBUG", "yes")

  settings = load_settings()

  assert settings.allowed_origins == ("https://a.example", "https://b.example")
  assert settings.llama_model == "meta-llama/llama-4-maverick-17b-128e-instruct"
  assert settings.budgets.section_qa == 900
  assert settings.debug is True


def test_blank_api_key_is_treated_as_missing(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.setenv("GROQ_API_KEY", "   ")
  assert load_settings().groq_api_key is None


@pytest.mark.parametrize(
  ("name", "value"),
  [
    ("RESEARCH_ALLOWED_ORIGINS", "*"),
    ("RESEARCH_COMPOUND_TEMPERATURE", "2.5"),
    ("RESEARCH_MAX_TOKENS", "0"),
    ("RESEARCH_BUDGET_TITLE_RESEARCH", "-1"),
    ("RESEARCH_ERROR_TTL_SECONDS", "7200"),
    ("RESEARCH_UNATTACHED_TTL_SECONDS", "0"),
  ],
)
def test_invalid_values_are_rejected(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
  monkeypatch.setenv(name, value)
  with pytest.raises(ValueError):
    load_settings()
