"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class ContextBudgets:
  """Character budgets applied when forwarding bulk text between stages."""

  research_qa: int = 6000
  title_research: int = 2000
  outline_research: int = 2000
  section_previous: int = 1500
  section_research: int = 2000
  section_qa: int = 1500
  summary_report: int = 3000
  conclusion_report: int = 3000


@dataclass(frozen=True)
class Settings:
  """Typed settings for the research service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  groq_api_key: str | None
  groq_base_url: str
  completion_timeout_seconds: float
  compound_model: str
  compound_temperature: float
  llama_model: str
  llama_temperature: float
  max_tokens: int
  budgets: ContextBudgets
  completed_ttl_seconds: float
  error_ttl_seconds: float
  unattached_ttl_seconds: float
  sweep_interval_seconds: float
  pg_dsn: str | None
  pg_connect_timeout: int
  log_dir: str
  log_max_bytes: int
  log_backup_count: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:5173",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("RESEARCH_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("RESEARCH_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _load_budgets() -> ContextBudgets:
  """Read per-consumer truncation budgets."""

  return ContextBudgets(
    research_qa=_positive_int("RESEARCH_BUDGET_RESEARCH_QA", "6000"),
    title_research=_positive_int("RESEARCH_BUDGET_TITLE_RESEARCH", "2000"),
    outline_research=_positive_int("RESEARCH_BUDGET_OUTLINE_RESEARCH", "2000"),
    section_previous=_positive_int("RESEARCH_BUDGET_SECTION_PREVIOUS", "1500"),
    section_research=_positive_int("RESEARCH_BUDGET_SECTION_RESEARCH", "2000"),
    section_qa=_positive_int("RESEARCH_BUDGET_SECTION_QA", "1500"),
    summary_report=_positive_int("RESEARCH_BUDGET_SUMMARY_REPORT", "3000"),
    conclusion_report=_positive_int("RESEARCH_BUDGET_CONCLUSION_REPORT", "3000"),
  )


def load_settings() -> Settings:
  """Build settings from the current environment without caching."""

  environment = os.getenv("RESEARCH_ENV", "development").lower()
  debug = _parse_bool(os.getenv("RESEARCH_DEBUG"))

  compound_temperature = float(os.getenv("RESEARCH_COMPOUND_TEMPERATURE", "0.5"))
  llama_temperature = float(os.getenv("RESEARCH_LLAMA_TEMPERATURE", "0.7"))
  for name, value in (("RESEARCH_COMPOUND_TEMPERATURE", compound_temperature), ("RESEARCH_LLAMA_TEMPERATURE", llama_temperature)):
    if not 0.0 <= value <= 2.0:
      raise ValueError(f"{name} must be between 0 and 2.")

  completed_ttl_seconds = _positive_float("RESEARCH_COMPLETED_TTL_SECONDS", "3600")
  error_ttl_seconds = _positive_float("RESEARCH_ERROR_TTL_SECONDS", "300")
  # Finished reports stay around for slow observers; failures are dropped sooner.
  if completed_ttl_seconds < error_ttl_seconds:
    raise ValueError("RESEARCH_COMPLETED_TTL_SECONDS must not be shorter than RESEARCH_ERROR_TTL_SECONDS.")

  log_backup_count = int(os.getenv("RESEARCH_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("RESEARCH_LOG_BACKUP_COUNT must be zero or a positive integer.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("RESEARCH_ALLOWED_ORIGINS")),
    groq_api_key=_optional_str(os.getenv("GROQ_API_KEY")),
    groq_base_url=(os.getenv("RESEARCH_GROQ_BASE_URL") or "https://api.groq.com/openai/v1").strip(),
    completion_timeout_seconds=_positive_float("RESEARCH_COMPLETION_TIMEOUT_SECONDS", "120"),
    compound_model=(os.getenv("RESEARCH_COMPOUND_MODEL") or "compound-beta").strip(),
    compound_temperature=compound_temperature,
    llama_model=(os.getenv("RESEARCH_LLAMA_MODEL") or "llama-4-maverick").strip(),
    llama_temperature=llama_temperature,
    max_tokens=_positive_int("RESEARCH_MAX_TOKENS", "4000"),
    budgets=_load_budgets(),
    completed_ttl_seconds=completed_ttl_seconds,
    error_ttl_seconds=error_ttl_seconds,
    unattached_ttl_seconds=_positive_float("RESEARCH_UNATTACHED_TTL_SECONDS", "600"),
    sweep_interval_seconds=_positive_float("RESEARCH_SWEEP_INTERVAL_SECONDS", "30"),
    pg_dsn=_optional_str(os.getenv("RESEARCH_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("RESEARCH_PG_CONNECT_TIMEOUT", "5"),
    log_dir=(os.getenv("RESEARCH_LOG_DIR") or "./logs").strip(),
    log_max_bytes=_positive_int("RESEARCH_LOG_MAX_BYTES", "5242880"),
    log_backup_count=log_backup_count,
  )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  return load_settings()


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the web-runtime configuration."""
  debug = _parse_bool(os.getenv("RESEARCH_DEBUG"))
  pg_connect_timeout = _positive_int("RESEARCH_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("RESEARCH_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
