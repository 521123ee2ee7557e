"""Repository interface for durable task storage."""

from __future__ import annotations

from typing import Protocol

from quizforge.tasks.models import TaskRecord


class TasksRepository(Protocol):
  """Durable store for task records, keyed by task id and listable by owner."""

  async def upsert_task(self, record: TaskRecord) -> None:
    """Insert the record or replace the stored row with the same id."""

  async def get_task(self, task_id: str) -> TaskRecord | None:
    """Fetch a task by id."""

  async def list_tasks(self, owner_id: str, *, status: str | None = None, limit: int = 20) -> list[TaskRecord]:
    """List an owner's tasks, newest first, optionally filtered by status."""
