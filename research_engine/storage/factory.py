"""Repository selection based on configuration."""

from __future__ import annotations

import logging

from research_engine.config import Settings
from research_engine.storage.memory_research_repo import InMemoryResearchRepository
from research_engine.storage.research_repo import ResearchRepository

logger = logging.getLogger(__name__)


def build_research_repo(settings: Settings) -> ResearchRepository:
  """Return the Postgres repository when a DSN is configured, else an in-memory one."""
  if settings.pg_dsn:
    from research_engine.storage.postgres_research_repo import PostgresResearchRepository

    return PostgresResearchRepository()

  logger.warning("No database DSN configured; research history is kept in memory only.")
  return InMemoryResearchRepository()
