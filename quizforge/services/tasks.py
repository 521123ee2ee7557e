import logging

from fastapi import HTTPException, status

from quizforge.api.models import OkResponse, RunningCountResponse, TaskCreateRequest, TaskEnvelope, TaskListResponse, TaskUpdateRequest, TaskView
from quizforge.config import Settings
from quizforge.tasks.models import TaskRecord
from quizforge.tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)

_TASK_NOT_FOUND_MSG = "Task not found."


def _require(record: TaskRecord | None) -> TaskRecord:
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_TASK_NOT_FOUND_MSG)
  return record


async def create_task(request: TaskCreateRequest, registry: TaskRegistry) -> TaskEnvelope:
  """Register a task without starting any work for it."""
  record = await registry.create(request.owner_id, request.kind, request.title, input_summary=request.input_summary, metadata=request.metadata)
  return TaskEnvelope(task=TaskView.from_record(record))


async def list_tasks(owner_id: str, task_status: str | None, limit: int | None, registry: TaskRegistry, settings: Settings) -> TaskListResponse:
  """List an owner's tasks newest first."""
  effective_limit = min(limit or settings.task_list_default_limit, settings.task_list_max_limit)
  records = await registry.list(owner_id, status=task_status, limit=effective_limit)
  return TaskListResponse(tasks=[TaskView.from_record(record) for record in records])


async def get_task(task_id: str, registry: TaskRegistry) -> TaskEnvelope:
  record = _require(await registry.get(task_id))
  return TaskEnvelope(task=TaskView.from_record(record))


async def update_task(task_id: str, payload: TaskUpdateRequest, registry: TaskRegistry) -> TaskEnvelope:
  """Apply a partial update; status changes on finished tasks are ignored by the registry."""
  record = await registry.update(task_id, status=payload.status, progress=payload.progress, result=payload.result, error=payload.error, metadata=payload.metadata)
  return TaskEnvelope(task=TaskView.from_record(_require(record)))


async def cancel_task(task_id: str, registry: TaskRegistry) -> OkResponse:
  record = _require(await registry.cancel(task_id))
  logger.info("Cancel requested task_id=%s status=%s", task_id, record.status)
  return OkResponse(ok=True)


def count_running(owner_id: str, registry: TaskRegistry) -> RunningCountResponse:
  return RunningCountResponse(count=registry.count_running(owner_id))
