from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from quizforge.core.database import Base

# JSONB on Postgres; plain JSON keeps the model usable on other dialects.
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AITask(Base):
  __tablename__ = "ai_tasks"
  __table_args__ = (
    Index("ix_ai_tasks_owner_created", "owner_id", "created_at"),
    Index("ix_ai_tasks_status", "status"),
  )

  task_id: Mapped[str] = mapped_column("id", String, primary_key=True)
  owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  kind: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
  title: Mapped[str] = mapped_column(Text, nullable=False)
  progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  input_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
  result: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  metadata_json: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False)
  started_at: Mapped[str | None] = mapped_column(String, nullable=True)
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)
