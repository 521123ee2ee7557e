import logging

from fastapi import APIRouter, Depends, Query

from quizforge.api.deps import get_task_registry
from quizforge.api.models import OkResponse, RunningCountResponse, TaskCreateRequest, TaskEnvelope, TaskListResponse, TaskUpdateRequest
from quizforge.config import Settings, get_settings
from quizforge.services import tasks as task_service
from quizforge.tasks.models import TaskStatus
from quizforge.tasks.registry import TaskRegistry

router = APIRouter()
logger = logging.getLogger("quizforge.api.routes.tasks")


@router.post("", response_model=TaskEnvelope)
async def create_task(  # noqa: B008
  request: TaskCreateRequest,
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
) -> TaskEnvelope:
  """Register a task record."""
  return await task_service.create_task(request, registry)


@router.get("", response_model=TaskListResponse)
async def list_tasks(  # noqa: B008
  owner_id: str = Query(alias="ownerId", min_length=1),
  task_status: TaskStatus | None = Query(default=None, alias="status"),
  limit: int | None = Query(default=None, ge=1),
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> TaskListResponse:
  """List an owner's tasks, newest first."""
  return await task_service.list_tasks(owner_id, task_status, limit, registry, settings)


# Declared before /{task_id} so "running" is not taken for an id.
@router.get("/running/count", response_model=RunningCountResponse)
async def count_running(  # noqa: B008
  owner_id: str = Query(alias="ownerId", min_length=1),
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
) -> RunningCountResponse:
  """Count the owner's pending and running tasks in this process."""
  return task_service.count_running(owner_id, registry)


@router.get("/{task_id}", response_model=TaskEnvelope)
async def get_task(  # noqa: B008
  task_id: str,
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
) -> TaskEnvelope:
  return await task_service.get_task(task_id, registry)


@router.patch("/{task_id}", response_model=TaskEnvelope)
async def update_task(  # noqa: B008
  task_id: str,
  payload: TaskUpdateRequest,
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
) -> TaskEnvelope:
  """Apply a partial update to a task."""
  return await task_service.update_task(task_id, payload, registry)


@router.delete("/{task_id}", response_model=OkResponse)
async def cancel_task(  # noqa: B008
  task_id: str,
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
) -> OkResponse:
  """Cancel a task; finished tasks are left as they are."""
  return await task_service.cancel_task(task_id, registry)
