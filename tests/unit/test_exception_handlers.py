"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from research_engine.core.exceptions import _error_payload, _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Validation errors stay JSON-serializable and never echo the request body."""
  errors = [{"type": "value_error", "loc": ("body", "query"), "msg": "Value error, Query must not be blank.", "input": "   ", "ctx": {"error": ValueError("Query must not be blank."), "input": "   "}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: Query must not be blank."
  assert "input" not in sanitized[0]["ctx"]
  assert sanitized[0]["loc"] == ["body", "query"]


def test_error_payload_includes_request_id_when_known() -> None:
  assert _error_payload("nope", request_id="req-1") == {"detail": "nope", "requestId": "req-1"}
  assert _error_payload("nope") == {"detail": "nope"}
