"""Server-sent event framing for research event streams."""

from __future__ import annotations

from collections.abc import AsyncIterator

import msgspec

from research_engine.jobs.models import StageEvent
from research_engine.services.sessions import SessionObserver

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}


def encode_sse_frame(event: StageEvent) -> bytes:
  """Encode one event as an ``event:``/``data:`` frame."""
  data = msgspec.json.encode(event.as_payload())
  return b"event: " + event.kind.value.encode("utf-8") + b"\ndata: " + data + b"\n\n"


async def stream_frames(observer: SessionObserver) -> AsyncIterator[bytes]:
  async for event in observer:
    yield encode_sse_frame(event)
