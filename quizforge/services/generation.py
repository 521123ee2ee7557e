"""Generation entry points: background tasks, inline generation and provider helpers."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

from fastapi import HTTPException, status

from quizforge.ai.errors import ProviderConfigError, ProviderError, ProviderTimeoutError
from quizforge.ai.extraction import extract_json_payload
from quizforge.ai.json_repair import loads_lenient
from quizforge.ai.normalization import coerce_options
from quizforge.ai.parsing import ItemShape, parse_generated_items
from quizforge.ai.providers import GenerationParams, ProviderConfig, build_text_model, resolve_provider_config
from quizforge.api.models import (
  GenerateOptionsRequest,
  GenerateOptionsResponse,
  GenerateRequest,
  GenerateSyncResponse,
  GenerateTaskResponse,
  ProviderConfigIn,
  ProviderTestResponse,
  StreamRequest,
)
from quizforge.config import Settings
from quizforge.tasks.executor import GenerationJob, TaskExecutor, build_generation_result, complete_with_deadline
from quizforge.tasks.models import TaskKind
from quizforge.tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)

_MISSING_FIELDS_MSG = "Missing required fields (content or API key)"
_MISSING_STREAM_FIELDS_MSG = "Missing required fields (prompt or API key)"
_MISSING_OWNER_MSG = "ownerId is required when useTask is true"
INPUT_SUMMARY_CHARS = 100
PROVIDER_TEST_PROMPT = 'Hello, respond with just "OK"'

_TASK_KINDS: dict[str, TaskKind] = {"questions": "generate_questions", "units": "generate_structure"}
_DEFAULT_TITLES: dict[str, str] = {"questions": "Generate questions", "units": "Generate course structure"}


def summarize_input(content: str) -> str:
  """Return the first characters of the request content for task listings."""
  text = content.strip()
  if len(text) <= INPUT_SUMMARY_CHARS:
    return text
  return text[:INPUT_SUMMARY_CHARS] + "..."


def _resolve_config(config: ProviderConfigIn | None, settings: Settings, *, missing_detail: str = _MISSING_FIELDS_MSG) -> ProviderConfig:
  overrides = config.model_dump(exclude_none=True) if config else None
  try:
    return resolve_provider_config(overrides, settings)
  except ProviderConfigError as exc:
    detail = missing_detail if str(exc) == "Missing API key" else str(exc)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc


async def start_generation(
  request: GenerateRequest,
  shape: ItemShape,
  *,
  registry: TaskRegistry,
  executor: TaskExecutor,
  settings: Settings,
) -> GenerateTaskResponse | GenerateSyncResponse:
  """Validate a generation request, then either start a background task or run it inline."""
  if not request.content.strip():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_MISSING_FIELDS_MSG)

  config = _resolve_config(request.config, settings)
  job = GenerationJob(shape=shape, model=build_text_model(config), system_prompt=request.system_prompt, content=request.content, params=config.params())

  if not request.use_task:
    return await _generate_inline(job, settings)

  if not request.owner_id:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_MISSING_OWNER_MSG)

  record = await registry.create(
    request.owner_id,
    _TASK_KINDS[shape],
    request.title or _DEFAULT_TITLES[shape],
    input_summary=summarize_input(request.content),
    metadata={"provider": config.provider, "model": config.text_model},
  )
  executor.submit(record.task_id, job)
  logger.info("Generation task submitted task_id=%s shape=%s provider=%s model=%s", record.task_id, shape, config.provider, config.text_model)
  return GenerateTaskResponse(task_id=record.task_id)


async def _generate_inline(job: GenerationJob, settings: Settings) -> GenerateSyncResponse:
  response = await complete_with_deadline(job.model, system=job.system_prompt, prompt=job.content, params=job.params, timeout_seconds=settings.provider_timeout_seconds)
  outcome = parse_generated_items(extract_json_payload(response.text), job.shape)
  if outcome.rescued_count == 0:
    logger.warning("Inline generation produced no usable %s fragments=%d", job.shape, outcome.invalid_count)

  result = build_generation_result(job.shape, outcome)
  return GenerateSyncResponse(
    data=result[job.shape],
    rescued_count=result["rescuedCount"],
    invalid_count=result["invalidCount"],
    invalid_items=result["invalidItems"],
    empty_result=result["emptyResult"],
    parse_error=result.get("parseError"),
    usage=response.usage,
  )


async def check_provider(config_in: ProviderConfigIn | None, settings: Settings) -> ProviderTestResponse:
  """Send a tiny prompt to check that credentials and model name work."""
  config = _resolve_config(config_in, settings)
  model = build_text_model(config)
  params = GenerationParams(temperature=config.temperature, top_p=config.top_p, top_k=config.top_k, max_output_tokens=10)
  response = await complete_with_deadline(model, system=None, prompt=PROVIDER_TEST_PROMPT, params=params, timeout_seconds=settings.provider_timeout_seconds)
  logger.info("Provider test succeeded provider=%s model=%s", config.provider, config.text_model)
  return ProviderTestResponse(ok=True, message="Connection successful", response=response.text.strip())


def _options_prompt(question: str, correct_answer: str, count: int) -> str:
  return (
    f"Write {count} plausible but incorrect answer options for the question below.\n"
    f"Question: {question}\n"
    f"Correct answer: {correct_answer}\n"
    "Do not repeat the correct answer. Respond with a JSON array of strings only."
  )


def _options_from_text(text: str, count: int) -> list[dict[str, Any]]:
  try:
    document = loads_lenient(extract_json_payload(text))
  except (ValueError, RecursionError) as exc:
    logger.warning("Could not parse generated options: %s", exc)
    return []

  if isinstance(document, dict):
    document = document.get("options", document)
  if not isinstance(document, list | dict):
    logger.warning("Generated options had unexpected type %s", type(document).__name__)
    return []
  return coerce_options(document)[:count]


async def generate_options(request: GenerateOptionsRequest, settings: Settings) -> GenerateOptionsResponse:
  """Ask the provider for distractors to a question's correct answer."""
  if not request.question.strip() or not request.correct_answer.strip():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields (question or correctAnswer)")

  config = _resolve_config(request.config, settings)
  model = build_text_model(config)
  prompt = _options_prompt(request.question, request.correct_answer, request.count)
  response = await complete_with_deadline(model, system=request.system_prompt, prompt=prompt, params=config.params(), timeout_seconds=settings.provider_timeout_seconds)
  return GenerateOptionsResponse(options=_options_from_text(response.text, request.count))


def _sse(payload: dict[str, Any] | str) -> str:
  data = payload if isinstance(payload, str) else json.dumps(payload)
  return f"data: {data}\n\n"


async def stream_text(request: StreamRequest, settings: Settings) -> AsyncIterator[str]:
  """Open a provider stream and return its server-sent events.

  The first chunk is awaited before returning so configuration and provider
  errors still surface as ordinary JSON error responses. Failures after that
  point end the stream with an ``error`` event instead of ``[DONE]``.
  """
  if not request.prompt.strip():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=_MISSING_STREAM_FIELDS_MSG)

  config = _resolve_config(request.config, settings, missing_detail=_MISSING_STREAM_FIELDS_MSG)
  model = build_text_model(config)
  chunks = model.complete_stream(system=request.system_prompt, prompt=request.prompt, params=config.params())
  try:
    first = await asyncio.wait_for(anext(chunks), timeout=settings.provider_timeout_seconds)
  except StopAsyncIteration:
    first = None
  except TimeoutError as exc:
    await chunks.aclose()
    raise ProviderTimeoutError(settings.provider_timeout_seconds) from exc

  logger.info("Text stream opened provider=%s model=%s", config.provider, config.text_model)
  return _stream_events(first, chunks)


async def _stream_events(first: str | None, chunks: AsyncGenerator[str, None]) -> AsyncIterator[str]:
  try:
    if first:
      yield _sse({"text": first})
    async for text in chunks:
      yield _sse({"text": text})
  except ProviderError as exc:
    logger.error("Text stream failed: %s", exc)
    yield _sse({"error": str(exc)})
    return
  finally:
    await chunks.aclose()
  yield _sse("[DONE]")
