"""Routing utilities for model variant selection."""

from __future__ import annotations

from dataclasses import dataclass

from research_engine.config import Settings
from research_engine.jobs.models import ModelVariant

SYSTEM_PROMPT = "You are a helpful research assistant."


@dataclass(frozen=True)
class ModelProfile:
  """Model id and sampling parameters used for every stage of a session."""

  model_id: str
  temperature: float
  max_tokens: int


def coerce_variant(raw: str | ModelVariant) -> ModelVariant:
  """Return the variant enum for ``raw`` or raise ``ValueError``."""
  if isinstance(raw, ModelVariant):
    return raw
  try:
    return ModelVariant(str(raw).strip().lower())
  except ValueError as exc:
    allowed = ", ".join(variant.value for variant in ModelVariant)
    raise ValueError(f"Invalid model type. Must be one of: {allowed}") from exc


def resolve_model_profile(variant: str | ModelVariant, settings: Settings) -> ModelProfile:
  """Map a variant onto a single model profile for the whole session.

  ``combined`` runs every stage on the compound model; stages never switch
  models mid-session.
  """
  resolved = coerce_variant(variant)
  if resolved is ModelVariant.LLAMA:
    return ModelProfile(model_id=settings.llama_model, temperature=settings.llama_temperature, max_tokens=settings.max_tokens)
  return ModelProfile(model_id=settings.compound_model, temperature=settings.compound_temperature, max_tokens=settings.max_tokens)
