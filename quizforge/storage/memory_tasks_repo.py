"""Process-local task repository used when no database is configured."""

from __future__ import annotations

import asyncio

from quizforge.storage.tasks_repo import TasksRepository
from quizforge.tasks.models import TaskRecord


class InMemoryTasksRepository(TasksRepository):
  """Keep task rows in a dict; contents are lost on restart."""

  def __init__(self) -> None:
    self._rows: dict[str, TaskRecord] = {}
    self._lock = asyncio.Lock()

  async def upsert_task(self, record: TaskRecord) -> None:
    async with self._lock:
      self._rows[record.task_id] = record

  async def get_task(self, task_id: str) -> TaskRecord | None:
    return self._rows.get(task_id)

  async def list_tasks(self, owner_id: str, *, status: str | None = None, limit: int = 20) -> list[TaskRecord]:
    rows = [row for row in self._rows.values() if row.owner_id == owner_id and (status is None or row.status == status)]
    rows.sort(key=lambda row: row.created_at, reverse=True)
    return rows[:limit]
