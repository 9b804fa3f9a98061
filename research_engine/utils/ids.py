"""Identifier utilities."""

from __future__ import annotations

import uuid


def generate_session_id() -> str:
  """Return a new research session identifier."""
  return str(uuid.uuid4())
