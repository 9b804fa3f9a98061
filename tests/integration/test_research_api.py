from __future__ import annotations

import msgspec
import pytest


def _parse_sse(body: str) -> list[tuple[str, dict]]:
  frames = []
  for block in body.strip().split("\n\n"):
    event_line, data_line = block.split("\n", 1)
    frames.append((event_line.removeprefix("event: "), msgspec.json.decode(data_line.removeprefix("data: "))))
  return frames


@pytest.mark.anyio
async def test_start_stream_and_fetch_report(async_client) -> None:
  created = await async_client.post("/api/research", json={"query": "Heat pumps and grid demand", "modelType": "combined"})
  assert created.status_code == 201
  query_id = created.json()["queryId"]
  assert created.headers["x-request-id"]

  pending = await async_client.get(f"/api/research/{query_id}")
  assert pending.json()["status"] == "initializing"
  not_ready = await async_client.get(f"/api/research/{query_id}/report")
  assert not_ready.status_code == 404

  streamed = await async_client.get(f"/api/research/{query_id}/stream")
  assert streamed.status_code == 200
  assert streamed.headers["content-type"].startswith("text/event-stream")
  assert streamed.headers["cache-control"] == "no-cache"

  frames = _parse_sse(streamed.text)
  names = [name for name, _ in frames]
  assert names[0] == "progress"
  assert names[-1] == "complete"
  assert names.count("qa") == 5
  assert names.index("title") < names.index("outline") < names.index("section") < names.index("report")
  progress = [payload["progress"] for name, payload in frames if name == "progress"]
  assert progress == sorted(progress)
  assert progress[-1] == 100

  snapshot = (await async_client.get(f"/api/research/{query_id}")).json()
  assert snapshot["status"] == "completed"
  assert snapshot["title"] == "Heat Pumps and the Grid"
  assert snapshot["modelType"] == "combined"

  report = (await async_client.get(f"/api/research/{query_id}/report")).json()
  assert report["executiveSummary"] == "Summary text."
  assert [section["title"] for section in report["sections"]] == ["Market Growth", "Grid Impact"]
  assert report["references"]

  steps = (await async_client.get(f"/api/research/{query_id}/steps")).json()
  assert len(steps) == len(frames)
  assert steps[-1]["eventKind"] == "complete"


@pytest.mark.anyio
async def test_model_variant_alias_is_accepted(async_client) -> None:
  response = await async_client.post("/api/research", json={"query": "Tidal power", "modelVariant": "llama"})
  assert response.status_code == 201
  snapshot = (await async_client.get(f"/api/research/{response.json()['queryId']}")).json()
  assert snapshot["modelType"] == "llama"


@pytest.mark.anyio
async def test_model_type_defaults_to_combined(async_client) -> None:
  response = await async_client.post("/api/research", json={"query": "Tidal power"})
  snapshot = (await async_client.get(f"/api/research/{response.json()['queryId']}")).json()
  assert snapshot["modelType"] == "combined"


@pytest.mark.anyio
@pytest.mark.parametrize("body", [{"query": ""}, {"query": "   "}, {"query": "x", "modelType": "gpt"}, {"modelType": "llama"}, {"query": 42}])
async def test_invalid_submissions_are_rejected(async_client, registry, body) -> None:
  response = await async_client.post("/api/research", json=body)
  assert response.status_code == 422
  assert "detail" in response.json()
  assert len(registry) == 0


@pytest.mark.anyio
async def test_unknown_query_returns_404(async_client) -> None:
  for path in ("/api/research/missing", "/api/research/missing/stream", "/api/research/missing/report", "/api/research/missing/steps"):
    response = await async_client.get(path)
    assert response.status_code == 404, path
    assert response.json()["requestId"]


@pytest.mark.anyio
async def test_failed_run_streams_single_error(async_client, completion_client) -> None:
  from research_engine.ai.providers.base import CompletionTransportError

  completion_client.responses[:] = ['["Only question?"]', CompletionTransportError("No response received from Groq API")]
  query_id = (await async_client.post("/api/research", json={"query": "Fusion"})).json()["queryId"]

  frames = _parse_sse((await async_client.get(f"/api/research/{query_id}/stream")).text)
  names = [name for name, _ in frames]
  assert names.count("error") == 1
  assert frames[-1] == ("error", {"message": "No response received from Groq API"})
  assert not {"title", "outline", "section", "report"} & set(names)

  snapshot = (await async_client.get(f"/api/research/{query_id}")).json()
  assert snapshot["status"] == "error"
  assert snapshot["error"] == "No response received from Groq API"


@pytest.mark.anyio
async def test_health(async_client) -> None:
  response = await async_client.get("/health")
  assert response.status_code == 200
  assert response.json()["status"] == "ok"
