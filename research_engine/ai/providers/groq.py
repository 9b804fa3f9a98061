"""Groq completion client using the OpenAI-compatible SDK."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from typing import Any

import openai
from openai import AsyncOpenAI

from research_engine.ai.providers.base import ChatMessage, CompletionClient, CompletionRejectedError, CompletionTransportError, MalformedCompletionError, validate_messages

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"


class GroqCompletionClient(CompletionClient):
  """Chat completions against Groq's OpenAI-compatible endpoint."""

  def __init__(self, api_key: str | None, *, base_url: str | None = None, timeout: float = 120.0, client: AsyncOpenAI | None = None) -> None:
    self.name = "groq"
    if client is None:
      if not api_key:
        raise ValueError("A Groq API key is required (GROQ_API_KEY or X-API-Key header).")
      # Retries are disabled so a failing stage surfaces immediately.
      client = AsyncOpenAI(api_key=api_key, base_url=base_url or DEFAULT_BASE_URL, timeout=timeout, max_retries=0)
    self._client = client

  async def complete(self, messages: Sequence[ChatMessage], model_id: str, temperature: float, max_tokens: int) -> str:
    """Send one chat completion request and return the first choice's content."""
    payload = validate_messages(messages)
    started = time.monotonic()

    try:
      response = await self._client.chat.completions.create(model=model_id, messages=payload, temperature=temperature, max_tokens=max_tokens)
    except openai.APIConnectionError as exc:
      logger.error("Groq API error: no response received (model=%s): %s", model_id, exc)
      raise CompletionTransportError("No response received from Groq API") from exc
    except openai.APIStatusError as exc:
      body = _error_body(exc)
      logger.error("Groq API error: status=%s body=%s", exc.status_code, body)
      raise CompletionRejectedError(f"Groq API Error: {exc.status_code} - {json.dumps(body, default=str)}", status_code=exc.status_code, body=body) from exc
    except openai.APIResponseValidationError as exc:
      logger.error("Groq API returned an unexpected payload (model=%s): %s", model_id, exc)
      raise MalformedCompletionError(f"Unexpected response from Groq API: {exc}") from exc

    content = _first_choice_content(response)
    elapsed_ms = int((time.monotonic() - started) * 1000)
    usage = getattr(response, "usage", None)
    if usage is not None:
      logger.debug("Groq completion model=%s took=%sms prompt_tokens=%s completion_tokens=%s", model_id, elapsed_ms, usage.prompt_tokens, usage.completion_tokens)
    else:
      logger.debug("Groq completion model=%s took=%sms", model_id, elapsed_ms)
    return content

  async def aclose(self) -> None:
    await self._client.close()


def _first_choice_content(response: Any) -> str:
  choices = getattr(response, "choices", None)
  if not choices:
    raise MalformedCompletionError("Groq API response contained no choices.")

  message = getattr(choices[0], "message", None)
  content = getattr(message, "content", None) if message is not None else None
  if not isinstance(content, str):
    raise MalformedCompletionError("Groq API response is missing message content.")
  return content


def _error_body(exc: openai.APIStatusError) -> Any:
  """Prefer the structured body; fall back to the raw response text."""
  if exc.body is not None:
    return exc.body
  try:
    return exc.response.json()
  except ValueError:
    return exc.response.text
