"""Task registry: a fast in-process view written through to a durable store.

The durable store is the source of truth. The in-process view holds the
freshest copy of in-flight tasks and wins over stored rows with the same id,
so ``get`` and ``list`` are eventually consistent across the two. Mutations of
one task id are serialized by a per-task lock; different ids never contend.
Terminal tasks stay in the fast view for a grace window so pollers can observe
the final state, then a periodic sweep evicts them. Active rows read back from
the store get the same window, since no local worker is driving them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from quizforge.storage.tasks_repo import TasksRepository
from quizforge.tasks.models import ACTIVE_STATUSES, TaskKind, TaskRecord, TaskStatus, is_terminal, status_rank
from quizforge.tasks.progress import CancellationToken, TaskCanceledError
from quizforge.utils.ids import generate_task_id, now_iso

logger = logging.getLogger(__name__)


class TaskRegistry:
  """Track task lifecycle state and mirror every mutation to the durable store."""

  def __init__(self, repo: TasksRepository, *, eviction_grace_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
    self._repo = repo
    self._grace = eviction_grace_seconds
    self._clock = clock
    self._tasks: dict[str, TaskRecord] = {}
    self._locks: dict[str, asyncio.Lock] = {}
    self._tokens: dict[str, CancellationToken] = {}
    self._evict_at: dict[str, float] = {}

  def _lock_for(self, task_id: str) -> asyncio.Lock:
    lock = self._locks.get(task_id)
    if lock is None:
      lock = asyncio.Lock()
      self._locks[task_id] = lock
    return lock

  def is_cached(self, task_id: str) -> bool:
    """Return whether the task is currently held in the fast view."""
    return task_id in self._tasks

  def token_for(self, task_id: str) -> CancellationToken:
    """Return the cancellation token shared by everyone working on ``task_id``."""
    token = self._tokens.get(task_id)
    if token is None:
      token = CancellationToken()
      record = self._tasks.get(task_id)
      if record is not None and record.status == "cancelled":
        token.cancel()
      self._tokens[task_id] = token
    return token

  async def create(self, owner_id: str, kind: TaskKind, title: str, input_summary: str | None = None, metadata: dict[str, Any] | None = None) -> TaskRecord:
    """Register a pending task and persist it; the job itself is not started here."""
    record = TaskRecord(
      task_id=generate_task_id(),
      owner_id=owner_id,
      kind=kind,
      status="pending",
      title=title,
      created_at=now_iso(),
      progress=0,
      input_summary=input_summary,
      metadata=dict(metadata or {}),
    )
    async with self._lock_for(record.task_id):
      self._tasks[record.task_id] = record
      try:
        await self._repo.upsert_task(record)
      except Exception:
        # Never leave a task visible that the store does not know about.
        self._tasks.pop(record.task_id, None)
        self._locks.pop(record.task_id, None)
        raise

    logger.info("Task created task_id=%s owner_id=%s kind=%s", record.task_id, owner_id, kind)
    return record

  async def update(
    self,
    task_id: str,
    *,
    status: TaskStatus | None = None,
    progress: int | None = None,
    result: Any = None,
    error: str | None = None,
    metadata: dict[str, Any] | None = None,
    require_active: bool = False,
  ) -> TaskRecord | None:
    """Merge changes into a task and write it through to the store.

    Returns None when the task exists in neither the fast view nor the store.
    Status only moves forward and never leaves a terminal state; ``started_at``
    and ``completed_at`` are stamped on first entry and never again. With
    ``require_active`` the call raises TaskCanceledError instead of writing to
    a task that has already reached a terminal state.
    """
    lock = self._lock_for(task_id)
    async with lock:
      current = self._tasks.get(task_id)
      rehydrated = current is None
      if current is None:
        current = await self._repo.get_task(task_id)
        if current is None:
          self._forget_lock(task_id, lock)
          return None

      if require_active and current.is_terminal:
        raise TaskCanceledError(task_id, status=current.status)

      changes = self._merge_changes(current, status=status, progress=progress, result=result, error=error, metadata=metadata)
      updated = replace(current, **changes)

      # The fast view only reflects writes the store has accepted.
      await self._repo.upsert_task(updated)
      self._tasks[task_id] = updated

      if updated.is_terminal and not current.is_terminal:
        self._evict_at[task_id] = self._clock() + self._grace
        if updated.status == "cancelled":
          self.token_for(task_id).cancel()
        logger.info("Task finished task_id=%s status=%s", task_id, updated.status)
      elif rehydrated and task_id not in self._evict_at:
        # Rows read back from the store have no local worker; they only visit the fast view briefly.
        self._evict_at[task_id] = self._clock() + self._grace

    return updated

  def _forget_lock(self, task_id: str, lock: asyncio.Lock) -> None:
    if self._locks.get(task_id) is lock and task_id not in self._tasks:
      del self._locks[task_id]

  def _merge_changes(self, current: TaskRecord, *, status: str | None, progress: int | None, result: Any, error: str | None, metadata: dict[str, Any] | None) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    stamp = now_iso()

    if status is not None and status != current.status:
      if current.is_terminal:
        logger.warning("Ignoring status change for terminal task task_id=%s status=%s requested=%s", current.task_id, current.status, status)
      elif status_rank(status) < status_rank(current.status):
        logger.warning("Ignoring backward status change task_id=%s status=%s requested=%s", current.task_id, current.status, status)
      else:
        changes["status"] = status

    next_status = changes.get("status", current.status)
    if next_status == "running" and current.started_at is None:
      changes["started_at"] = stamp
    if is_terminal(next_status) and current.completed_at is None:
      changes["completed_at"] = stamp

    if progress is not None and not current.is_terminal:
      clamped = max(0, min(100, int(progress)))
      if clamped >= current.progress:
        changes["progress"] = clamped

    if result is not None or error is not None:
      if current.is_terminal:
        logger.warning("Late result/error write on terminal task task_id=%s status=%s", current.task_id, current.status)
      if result is not None:
        changes["result"] = result
      if error is not None:
        changes["error"] = error

    if metadata:
      changes["metadata"] = {**current.metadata, **metadata}

    return changes

  async def get(self, task_id: str) -> TaskRecord | None:
    """Return the fast-view copy when present, else read through to the store."""
    record = self._tasks.get(task_id)
    if record is not None:
      return record
    return await self._repo.get_task(task_id)

  async def list(self, owner_id: str, *, status: str | None = None, limit: int = 20) -> list[TaskRecord]:
    """List an owner's tasks newest first, merging stored rows with the fast view."""
    stored = await self._repo.list_tasks(owner_id, status=status, limit=limit)
    merged = {record.task_id: record for record in stored}

    for record in list(self._tasks.values()):
      if record.owner_id != owner_id:
        continue
      if status is not None and record.status != status:
        # The stored row may predate a transition the fast view already saw.
        merged.pop(record.task_id, None)
        continue
      merged[record.task_id] = record

    ordered = sorted(merged.values(), key=lambda record: record.created_at, reverse=True)
    return ordered[:limit]

  async def cancel(self, task_id: str) -> TaskRecord | None:
    """Mark a task cancelled and signal its token; terminal tasks are left as they are."""
    return await self.update(task_id, status="cancelled")

  def count_running(self, owner_id: str) -> int:
    """Count pending or running tasks for an owner, from the fast view only."""
    return sum(1 for record in self._tasks.values() if record.owner_id == owner_id and record.status in ACTIVE_STATUSES)

  def sweep_evictions(self, now: float | None = None) -> int:
    """Drop tasks whose grace window has passed and return how many were evicted."""
    current_time = self._clock() if now is None else now
    expired = [task_id for task_id, deadline in self._evict_at.items() if deadline <= current_time]
    for task_id in expired:
      del self._evict_at[task_id]
      self._tasks.pop(task_id, None)

    # Locks and tokens of ids outside the fast view, including ones a previous sweep found busy.
    for task_id in [task_id for task_id in self._tokens if task_id not in self._tasks]:
      del self._tokens[task_id]
    for task_id in [task_id for task_id, lock in self._locks.items() if task_id not in self._tasks and not lock.locked()]:
      del self._locks[task_id]

    if expired:
      logger.debug("Evicted %d task(s) from the fast view", len(expired))
    return len(expired)


async def run_eviction_sweeper(registry: TaskRegistry, interval_seconds: float) -> None:
  """Run ``sweep_evictions`` forever at a fixed interval."""
  while True:
    await asyncio.sleep(interval_seconds)
    try:
      registry.sweep_evictions()
    except Exception:  # noqa: BLE001
      logger.exception("Task eviction sweep failed")
