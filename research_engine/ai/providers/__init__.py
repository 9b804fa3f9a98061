"""Provider implementations."""

from research_engine.ai.providers.base import ChatMessage, CompletionClient, CompletionError, CompletionRejectedError, CompletionTransportError, MalformedCompletionError
from research_engine.ai.providers.groq import GroqCompletionClient

__all__ = ["ChatMessage", "CompletionClient", "CompletionError", "CompletionRejectedError", "CompletionTransportError", "MalformedCompletionError", "GroqCompletionClient"]
