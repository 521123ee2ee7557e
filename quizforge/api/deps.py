"""Shared FastAPI dependencies for the task pipeline singletons."""

from __future__ import annotations

from functools import lru_cache

from quizforge.config import get_settings
from quizforge.storage.factory import build_tasks_repo
from quizforge.tasks.executor import TaskExecutor
from quizforge.tasks.registry import TaskRegistry


@lru_cache(maxsize=1)
def get_task_registry() -> TaskRegistry:
  """Return the process-wide task registry."""
  settings = get_settings()
  return TaskRegistry(build_tasks_repo(settings), eviction_grace_seconds=settings.task_eviction_seconds)


@lru_cache(maxsize=1)
def get_task_executor() -> TaskExecutor:
  """Return the process-wide executor bound to the registry."""
  settings = get_settings()
  return TaskExecutor(get_task_registry(), provider_timeout_seconds=settings.provider_timeout_seconds)
