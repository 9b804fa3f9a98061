"""Request and response models for the research API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictStr, field_validator

from research_engine.jobs.models import ModelVariant


class StartResearchRequest(BaseModel):
  """Payload for starting a research session."""

  query: StrictStr = Field(min_length=1, description="Topic or question to research.", examples=["Impact of heat pumps on grid demand"])
  model_type: ModelVariant = Field(default=ModelVariant.COMBINED, validation_alias=AliasChoices("modelType", "modelVariant", "model_type"), description="Model selection for every stage of the session.")
  model_config = ConfigDict(extra="forbid")

  @field_validator("query")
  @classmethod
  def _query_not_blank(cls, value: str) -> str:
    if not value.strip():
      raise ValueError("Query must not be blank.")
    return value


class StartResearchResponse(BaseModel):
  """Identifier of the newly created session."""

  query_id: StrictStr = Field(alias="queryId")
  model_config = ConfigDict(populate_by_name=True)


class ResearchSnapshot(BaseModel):
  """Point-in-time status of a research session."""

  query_id: StrictStr = Field(alias="queryId")
  status: StrictStr
  query: StrictStr
  model_type: StrictStr = Field(alias="modelType")
  title: StrictStr | None = None
  created_at: StrictStr = Field(alias="createdAt")
  completed_at: StrictStr | None = Field(default=None, alias="completedAt")
  error: StrictStr | None = None
  progress: float | None = None
  model_config = ConfigDict(populate_by_name=True)


class ResearchStep(BaseModel):
  """One persisted pipeline event."""

  event_kind: StrictStr = Field(alias="eventKind")
  step: StrictStr
  status: StrictStr
  message: StrictStr | None = None
  data: dict[str, Any] | None = None
  created_at: datetime = Field(alias="createdAt")
  model_config = ConfigDict(populate_by_name=True)
