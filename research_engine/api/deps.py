"""Shared FastAPI dependencies for the research API."""

from __future__ import annotations

from functools import lru_cache

from research_engine.config import get_settings
from research_engine.services.sessions import SessionRegistry, build_orchestrator_factory
from research_engine.storage.factory import build_research_repo


@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
  """Return the process-wide session registry."""
  settings = get_settings()
  return SessionRegistry(settings=settings, repo=build_research_repo(settings), orchestrator_factory=build_orchestrator_factory(settings))
