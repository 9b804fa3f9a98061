"""Base interfaces and error taxonomy for completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

Role = Literal["system", "user", "assistant"]
_ROLES: frozenset[str] = frozenset({"system", "user", "assistant"})


@dataclass(frozen=True)
class ChatMessage:
  """One role-tagged message sent to a completion model."""

  role: Role
  content: str

  def __post_init__(self) -> None:
    if self.role not in _ROLES:
      raise ValueError(f"Unsupported message role '{self.role}'.")

  def as_dict(self) -> dict[str, str]:
    return {"role": self.role, "content": self.content}


class CompletionError(RuntimeError):
  """Base class for failures raised by a completion client."""


class CompletionTransportError(CompletionError):
  """No response was received from the completion service."""


class CompletionRejectedError(CompletionError):
  """The completion service answered with an error status."""

  def __init__(self, message: str, *, status_code: int, body: Any = None) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.body = body


class MalformedCompletionError(CompletionError):
  """The completion service answered with an unexpected payload shape."""


class CompletionClient(ABC):
  """Abstract text-completion capability."""

  name: str

  @abstractmethod
  async def complete(self, messages: Sequence[ChatMessage], model_id: str, temperature: float, max_tokens: int) -> str:
    """Return the first generated choice's text for ``messages``."""

  async def aclose(self) -> None:
    """Release network resources held by the client."""


def validate_messages(messages: Sequence[ChatMessage]) -> list[dict[str, str]]:
  """Check the message list and convert it to the wire shape."""
  if not messages:
    raise ValueError("At least one message is required.")
  return [message.as_dict() for message in messages]
