"""Select the durable task store for the running process."""

from __future__ import annotations

import logging

from quizforge.config import Settings
from quizforge.storage.memory_tasks_repo import InMemoryTasksRepository
from quizforge.storage.postgres_tasks_repo import PostgresTasksRepository
from quizforge.storage.tasks_repo import TasksRepository

logger = logging.getLogger(__name__)


def build_tasks_repo(settings: Settings) -> TasksRepository:
  """Return the Postgres store when a DSN is configured, else the in-process one."""
  if settings.pg_dsn:
    return PostgresTasksRepository()

  logger.warning("QUIZFORGE_PG_DSN is not set; task records will not survive a restart.")
  return InMemoryTasksRepository()
