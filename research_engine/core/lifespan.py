import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from research_engine.api.deps import get_session_registry
from research_engine.core.database import create_tables, dispose_engine
from research_engine.core.logging import initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and storage, run the eviction sweeper, and tear down on exit."""
  from research_engine.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("research_engine.core.lifespan")

  initialize_logging(settings)
  logger.info("Startup complete - logging verified.")

  if settings.pg_dsn:
    logger.info("Using Postgres research storage at %s", _redact_dsn(settings.pg_dsn))
    try:
      await create_tables()
    except Exception:
      logger.warning("Failed to ensure research tables at startup; persistence writes will be skipped on error.", exc_info=True)

  if not settings.groq_api_key:
    logger.warning("GROQ_API_KEY is not set; requests must supply an X-API-Key header.")

  registry = get_session_registry()
  registry.start_sweeper()

  try:
    yield
  finally:
    await registry.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
