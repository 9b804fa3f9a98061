from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import StreamingResponse

from research_engine.api.deps import get_session_registry
from research_engine.api.models import ResearchSnapshot, ResearchStep, StartResearchRequest, StartResearchResponse
from research_engine.api.sse import SSE_HEADERS, stream_frames
from research_engine.services.sessions import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

Registry = Annotated[SessionRegistry, Depends(get_session_registry)]


@router.post("", response_model=StartResearchResponse, status_code=status.HTTP_201_CREATED)
async def start_research(request: StartResearchRequest, registry: Registry, x_api_key: Annotated[str | None, Header()] = None) -> StartResearchResponse:
  """Register a research session; the pipeline starts when a client opens its stream."""
  query_id = await registry.create(request.query, request.model_type, api_key=x_api_key or None)
  return StartResearchResponse(query_id=query_id)


@router.get("/{query_id}/stream")
async def stream_research(query_id: str, registry: Registry) -> StreamingResponse:
  """Stream the session's events as server-sent events."""
  observer = registry.attach(query_id)

  async def event_stream() -> AsyncIterator[bytes]:
    try:
      async for frame in stream_frames(observer):
        yield frame
    finally:
      # Disconnecting only drops this observer; the pipeline keeps running.
      registry.detach(query_id, observer)
      logger.info("Research stream closed query_id=%s", query_id)

  return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/{query_id}", response_model=ResearchSnapshot)
async def get_research(query_id: str, registry: Registry) -> dict[str, Any]:
  """Return the current status of a research session."""
  return await registry.get(query_id)


@router.get("/{query_id}/steps", response_model=list[ResearchStep])
async def get_research_steps(query_id: str, registry: Registry) -> list[ResearchStep]:
  """Return the persisted event log of a research session."""
  records = await registry.list_steps(query_id)
  return [ResearchStep(event_kind=record.event_kind, step=record.step, status=record.status, message=record.message, data=record.data, created_at=record.created_at) for record in records]


@router.get("/{query_id}/report")
async def get_research_report(query_id: str, registry: Registry) -> dict[str, Any]:
  """Return the final report once the session has produced one."""
  report = await registry.get_report(query_id)
  if report is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not available yet")
  return report
