"""Run generation jobs in the background and drive their task records."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from quizforge.ai.errors import ProviderTimeoutError
from quizforge.ai.extraction import extract_json_payload
from quizforge.ai.parsing import ItemShape, ParseOutcome, parse_generated_items
from quizforge.ai.providers import TextModel, TextResponse
from quizforge.ai.providers.base import GenerationParams
from quizforge.tasks.progress import TaskCanceledError, TaskProgressTracker
from quizforge.tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)

PROGRESS_STARTED = 10
PROGRESS_PROVIDER_RETURNED = 70
PROGRESS_PARSED = 90

# How many fragments a completed result carries for each shape.
FRAGMENT_SAMPLE_SIZE: dict[str, int] = {"questions": 5, "units": 3}


@dataclass(frozen=True)
class GenerationJob:
  """Everything one background generation needs."""

  shape: ItemShape
  model: TextModel
  system_prompt: str | None
  content: str
  params: GenerationParams


async def complete_with_deadline(model: TextModel, *, system: str | None, prompt: str, params: GenerationParams, timeout_seconds: float) -> TextResponse:
  """Call the provider, turning an expired deadline into ProviderTimeoutError."""
  try:
    return await asyncio.wait_for(model.complete(system=system, prompt=prompt, params=params), timeout=timeout_seconds)
  except TimeoutError as exc:
    raise ProviderTimeoutError(timeout_seconds) from exc


def build_generation_result(shape: ItemShape, outcome: ParseOutcome) -> dict[str, Any]:
  """Shape the task result for a parse outcome."""
  result: dict[str, Any] = {
    shape: outcome.valid_items,
    "rescuedCount": outcome.rescued_count,
    "invalidCount": outcome.invalid_count,
    "invalidItems": [fragment.to_dict() for fragment in outcome.fragments[: FRAGMENT_SAMPLE_SIZE[shape]]],
    "emptyResult": outcome.rescued_count == 0,
  }
  if outcome.parse_error:
    result["parseError"] = outcome.parse_error
  return result


class TaskExecutor:
  """Schedule one asyncio task per job and keep references until they finish."""

  def __init__(self, registry: TaskRegistry, *, provider_timeout_seconds: float = 300.0) -> None:
    self._registry = registry
    self._provider_timeout = provider_timeout_seconds
    self._running: set[asyncio.Task[None]] = set()

  @property
  def in_flight(self) -> int:
    return len(self._running)

  def submit(self, task_id: str, job: GenerationJob) -> asyncio.Task[None]:
    """Start ``job`` for an existing task and return immediately."""
    background = asyncio.create_task(self.run(task_id, job), name=f"generation-{task_id}")
    self._running.add(background)
    background.add_done_callback(self._running.discard)
    return background

  async def run(self, task_id: str, job: GenerationJob) -> None:
    """Drive a task from pending to a terminal state; never raises."""
    tracker = TaskProgressTracker(task_id=task_id, registry=self._registry, token=self._registry.token_for(task_id))
    try:
      await tracker.start(PROGRESS_STARTED)
      tracker.check()
      response = await self._call_provider(job)
      tracker.check()
      await tracker.checkpoint(PROGRESS_PROVIDER_RETURNED)

      payload = extract_json_payload(response)
      outcome = parse_generated_items(payload, job.shape)
      await tracker.checkpoint(PROGRESS_PARSED)

      result = build_generation_result(job.shape, outcome)
      if outcome.rescued_count == 0:
        logger.warning("Generation produced no usable %s task_id=%s fragments=%d", job.shape, task_id, outcome.invalid_count)
      tracker.check()
      await tracker.complete(result)
      logger.info("Generation completed task_id=%s shape=%s rescued=%d invalid=%d", task_id, job.shape, outcome.rescued_count, outcome.invalid_count)
    except TaskCanceledError as exc:
      logger.info("Generation stopped task_id=%s: %s", task_id, exc)
    except Exception as exc:  # noqa: BLE001
      await self._record_failure(tracker, exc)

  async def _call_provider(self, job: GenerationJob) -> str:
    response = await complete_with_deadline(job.model, system=job.system_prompt, prompt=job.content, params=job.params, timeout_seconds=self._provider_timeout)
    return response.text

  async def _record_failure(self, tracker: TaskProgressTracker, exc: Exception) -> None:
    message = str(exc) or type(exc).__name__
    logger.error("Generation failed task_id=%s error_type=%s error=%s", tracker.task_id, type(exc).__name__, message, exc_info=True)
    try:
      await tracker.fail(message)
    except TaskCanceledError:
      logger.info("Task %s was cancelled before its failure could be recorded", tracker.task_id)
    except Exception:  # noqa: BLE001
      logger.exception("Failed to record failure for task_id=%s", tracker.task_id)

  async def join(self) -> None:
    """Wait until every job submitted so far has finished."""
    pending = list(self._running)
    if pending:
      await asyncio.gather(*pending, return_exceptions=True)

  async def shutdown(self) -> None:
    """Cancel in-flight jobs on process shutdown."""
    pending = list(self._running)
    for background in pending:
      background.cancel()
    if pending:
      await asyncio.gather(*pending, return_exceptions=True)
