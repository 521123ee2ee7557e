"""Postgres-backed task repository using SQLAlchemy."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quizforge.core.database import get_session_factory
from quizforge.schema.tasks import AITask
from quizforge.storage.tasks_repo import TasksRepository
from quizforge.tasks.models import TaskRecord


class PostgresTasksRepository(TasksRepository):
  """Persist task records to the ``ai_tasks`` table."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def upsert_task(self, record: TaskRecord) -> None:
    async with self._session_factory() as session:
      row = await session.get(AITask, record.task_id)
      if row is None:
        session.add(_record_to_model(record))
      else:
        _apply_record(row, record)
      await session.commit()

  async def get_task(self, task_id: str) -> TaskRecord | None:
    async with self._session_factory() as session:
      row = await session.get(AITask, task_id)
      if row is None:
        return None
      return _model_to_record(row)

  async def list_tasks(self, owner_id: str, *, status: str | None = None, limit: int = 20) -> list[TaskRecord]:
    async with self._session_factory() as session:
      stmt = select(AITask).where(AITask.owner_id == owner_id)
      if status is not None:
        stmt = stmt.where(AITask.status == status)
      stmt = stmt.order_by(AITask.created_at.desc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [_model_to_record(row) for row in rows]


def _record_to_model(record: TaskRecord) -> AITask:
  row = AITask(task_id=record.task_id)
  _apply_record(row, record)
  return row


def _apply_record(row: AITask, record: TaskRecord) -> None:
  row.owner_id = record.owner_id
  row.kind = record.kind
  row.status = record.status
  row.title = record.title
  row.progress = record.progress
  row.input_summary = record.input_summary
  row.result = record.result
  row.error = record.error
  row.metadata_json = dict(record.metadata)
  row.created_at = record.created_at
  row.started_at = record.started_at
  row.completed_at = record.completed_at


def _model_to_record(row: AITask) -> TaskRecord:
  return TaskRecord(
    task_id=row.task_id,
    owner_id=row.owner_id,
    kind=row.kind,  # type: ignore[arg-type]
    status=row.status,  # type: ignore[arg-type]
    title=row.title,
    created_at=row.created_at,
    progress=row.progress or 0,
    input_summary=row.input_summary,
    result=row.result,
    error=row.error,
    started_at=row.started_at,
    completed_at=row.completed_at,
    metadata=dict(row.metadata_json or {}),
  )
