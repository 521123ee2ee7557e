"""Cooperative cancellation and progress checkpoints for running tasks."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
  from quizforge.tasks.models import TaskRecord
  from quizforge.tasks.registry import TaskRegistry


class TaskCanceledError(Exception):
  """Raised when a unit of work observes that its task is no longer active."""

  def __init__(self, task_id: str, status: str = "cancelled") -> None:
    super().__init__(f"Task {task_id} is no longer active (status={status}).")
    self.task_id = task_id
    self.status = status


class CancellationToken:
  """Flag shared between the registry and the unit of work running a task."""

  def __init__(self) -> None:
    self._event = asyncio.Event()

  @property
  def cancelled(self) -> bool:
    return self._event.is_set()

  def cancel(self) -> None:
    self._event.set()

  def raise_if_cancelled(self, task_id: str) -> None:
    if self._event.is_set():
      raise TaskCanceledError(task_id)


class TaskProgressTracker:
  """Advance one task through its checkpoints, refusing to write once it is cancelled."""

  def __init__(self, *, task_id: str, registry: TaskRegistry, token: CancellationToken) -> None:
    self._task_id = task_id
    self._registry = registry
    self._token = token

  @property
  def task_id(self) -> str:
    return self._task_id

  def check(self) -> None:
    """Raise TaskCanceledError when cancellation has been requested."""
    self._token.raise_if_cancelled(self._task_id)

  async def _update_task(self, **changes: Any) -> TaskRecord:
    self.check()
    # The registry re-checks under the task lock so a racing cancel still wins.
    record = await self._registry.update(self._task_id, require_active=True, **changes)
    if record is None:
      raise TaskCanceledError(self._task_id, status="missing")
    return record

  async def start(self, progress: int) -> TaskRecord:
    return await self._update_task(status="running", progress=progress)

  async def checkpoint(self, progress: int) -> TaskRecord:
    return await self._update_task(progress=progress)

  async def complete(self, result: dict[str, Any]) -> TaskRecord:
    return await self._update_task(status="completed", progress=100, result=result)

  async def fail(self, message: str) -> TaskRecord:
    return await self._update_task(status="failed", error=message)
