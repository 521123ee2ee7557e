import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from quizforge.api.deps import get_task_executor, get_task_registry
from quizforge.api.models import GenerateOptionsRequest, GenerateOptionsResponse, GenerateRequest, GenerateSyncResponse, GenerateTaskResponse, ProviderTestRequest, ProviderTestResponse, StreamRequest
from quizforge.config import Settings, get_settings
from quizforge.services import generation as generation_service
from quizforge.tasks.executor import TaskExecutor
from quizforge.tasks.registry import TaskRegistry

router = APIRouter()
logger = logging.getLogger("quizforge.api.routes.generation")


@router.post("/generate", response_model=GenerateTaskResponse | GenerateSyncResponse)
async def generate_questions(  # noqa: B008
  request: GenerateRequest,
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
  executor: TaskExecutor = Depends(get_task_executor),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> GenerateTaskResponse | GenerateSyncResponse:
  """Generate quiz questions, in the background unless ``useTask`` is false."""
  return await generation_service.start_generation(request, "questions", registry=registry, executor=executor, settings=settings)


@router.post("/generate-structure", response_model=GenerateTaskResponse | GenerateSyncResponse)
async def generate_structure(  # noqa: B008
  request: GenerateRequest,
  registry: TaskRegistry = Depends(get_task_registry),  # noqa: B008
  executor: TaskExecutor = Depends(get_task_executor),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> GenerateTaskResponse | GenerateSyncResponse:
  """Generate a course outline of units and lessons."""
  return await generation_service.start_generation(request, "units", registry=registry, executor=executor, settings=settings)


@router.post("/test", response_model=ProviderTestResponse)
async def test_connection(  # noqa: B008
  request: ProviderTestRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> ProviderTestResponse:
  return await generation_service.check_provider(request.config, settings)


@router.post("/generate-options", response_model=GenerateOptionsResponse)
async def generate_options(  # noqa: B008
  request: GenerateOptionsRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> GenerateOptionsResponse:
  """Generate wrong-answer options for a question."""
  return await generation_service.generate_options(request, settings)


@router.post("/stream")
async def stream_text(  # noqa: B008
  request: StreamRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> StreamingResponse:
  """Stream generated text as server-sent events ending with ``[DONE]``."""
  events = await generation_service.stream_text(request, settings)
  return StreamingResponse(events, media_type="text/event-stream", headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"})
