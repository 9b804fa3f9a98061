from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from research_engine import __version__
from research_engine.api.routes import research
from research_engine.config import get_settings
from research_engine.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler, research_validation_handler, session_not_found_handler
from research_engine.core.lifespan import lifespan
from research_engine.core.middleware import RequestLoggingMiddleware
from research_engine.services.sessions import ResearchValidationError, SessionNotFoundError

settings = get_settings()

app = FastAPI(title="Research Engine", version=__version__, lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "x-api-key"], expose_headers=["x-request-id"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(SessionNotFoundError, session_not_found_handler)
app.add_exception_handler(ResearchValidationError, research_validation_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(research.router, prefix="/api/research", tags=["research"])
