from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from research_engine.core.database import Base


class ResearchQuery(Base):
  __tablename__ = "research_queries"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  query_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  query: Mapped[str] = mapped_column(Text, nullable=False)
  model_type: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="initializing")
  title: Mapped[str | None] = mapped_column(Text, nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ResearchStep(Base):
  __tablename__ = "research_steps"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  query_id: Mapped[str] = mapped_column(ForeignKey("research_queries.query_id", ondelete="CASCADE"), nullable=False, index=True)
  event_kind: Mapped[str] = mapped_column(String, nullable=False, index=True)
  step: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False)
  message: Mapped[str | None] = mapped_column(Text, nullable=True)
  data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
