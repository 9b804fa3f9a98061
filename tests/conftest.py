"""Shared fixtures for research engine tests."""

from __future__ import annotations

import asyncio
import os

# Keep tests on the in-memory repository regardless of the caller's shell.
os.environ.pop("RESEARCH_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("GROQ_API_KEY", "test-key")

from collections.abc import Sequence  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from research_engine.ai.orchestrator import ResearchOrchestrator  # noqa: E402
from research_engine.ai.providers.base import ChatMessage, CompletionClient  # noqa: E402
from research_engine.api.deps import get_session_registry  # noqa: E402
from research_engine.config import Settings, load_settings  # noqa: E402
from research_engine.main import app  # noqa: E402
from research_engine.services.sessions import SessionRegistry  # noqa: E402
from research_engine.storage.memory_research_repo import InMemoryResearchRepository  # noqa: E402

QUESTIONS_RESPONSE = '["What is driving adoption?", "Who are the main vendors?", "What does it cost?", "What are the risks?", "What comes next?"]'
RESEARCH_DATA_RESPONSE = "Heat pumps are spreading quickly.\n\n## References\n- IEA, The Future of Heat Pumps (2022)\n- EHPA Market Report 2023\n"
OUTLINE_RESPONSE = "# Heat Pumps and the Grid\n## Executive Summary\nOverview.\n## Market Growth\nSales figures.\n### Regional split\n## Grid Impact\nPeak demand.\n## Conclusion\nWrap-up."


class ScriptedCompletionClient(CompletionClient):
  """Completion client that replays scripted responses in call order.

  An ``Exception`` instance in the script is raised instead of returned.
  Once the script runs out every call returns ``default``.
  """

  def __init__(self, responses: Sequence[str | Exception] = (), default: str = "Generated content.") -> None:
    self.responses = list(responses)
    self._default = default
    self.calls: list[tuple[list[ChatMessage], str, float, int]] = []
    self.closed = False

  async def complete(self, messages: Sequence[ChatMessage], model_id: str, temperature: float, max_tokens: int) -> str:
    self.calls.append((list(messages), model_id, temperature, max_tokens))
    # Yield like a network call so observers interleave with the pipeline.
    await asyncio.sleep(0)
    if not self.responses:
      return self._default
    response = self.responses.pop(0)
    if isinstance(response, Exception):
      raise response
    return response

  async def aclose(self) -> None:
    self.closed = True


def research_script(*, outline: str = OUTLINE_RESPONSE, section_count: int = 2) -> list[str]:
  """Responses for one full run in stage order."""
  answers = [f"Answer {index + 1}." for index in range(5)]
  sections = [f"Body of section {index + 1}." for index in range(section_count)]
  return [QUESTIONS_RESPONSE, *answers, RESEARCH_DATA_RESPONSE, '"Heat Pumps and the Grid"', outline, *sections, "Summary text.", "Conclusion text."]


class FakeClock:
  """Manually advanced monotonic clock."""

  def __init__(self, start: float = 1000.0) -> None:
    self.now = start

  def __call__(self) -> float:
    return self.now

  def advance(self, seconds: float) -> None:
    self.now += seconds


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def settings() -> Settings:
  return load_settings()


@pytest.fixture
def repo() -> InMemoryResearchRepository:
  return InMemoryResearchRepository()


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def completion_client() -> ScriptedCompletionClient:
  return ScriptedCompletionClient(research_script())


@pytest.fixture
def registry(make_registry, completion_client: ScriptedCompletionClient) -> SessionRegistry:
  return make_registry(completion_client)


@pytest.fixture
async def async_client(registry: SessionRegistry):
  app.dependency_overrides[get_session_registry] = lambda: registry
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
  await registry.aclose()


@pytest.fixture
def script_for():
  """Expose the stage-ordered script builder to tests."""
  return research_script


@pytest.fixture
def make_client():
  def _make(responses: Sequence[str | Exception] | None = None, default: str = "Generated content.") -> ScriptedCompletionClient:
    return ScriptedCompletionClient(research_script() if responses is None else responses, default=default)

  return _make


@pytest.fixture
def make_registry(settings: Settings, repo: InMemoryResearchRepository, clock: FakeClock):
  def _make(client: CompletionClient) -> SessionRegistry:
    def _factory(_api_key: str | None) -> ResearchOrchestrator:
      return ResearchOrchestrator(client=client, settings=settings)

    return SessionRegistry(settings=settings, repo=repo, orchestrator_factory=_factory, clock=clock)

  return _make
