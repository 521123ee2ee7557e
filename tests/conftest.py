"""Shared fixtures: an in-memory registry, an executor and an ASGI client wired to them."""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncIterator

# Keep the app independent of any developer .env or database before importing it.
os.environ["QUIZFORGE_ALLOWED_ORIGINS"] = "http://localhost"
os.environ["QUIZFORGE_AUTO_APPLY_MIGRATIONS"] = "0"
os.environ.pop("QUIZFORGE_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)
os.environ.pop("QUIZFORGE_OPENAI_API_KEY", None)
os.environ.pop("QUIZFORGE_GEMINI_API_KEY", None)

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from quizforge.ai.providers.base import GenerationParams, TextModel, TextResponse  # noqa: E402
from quizforge.api.deps import get_task_executor, get_task_registry  # noqa: E402
from quizforge.main import app  # noqa: E402
from quizforge.storage.memory_tasks_repo import InMemoryTasksRepository  # noqa: E402
from quizforge.tasks.executor import TaskExecutor  # noqa: E402
from quizforge.tasks.registry import TaskRegistry  # noqa: E402


class FakeTextModel(TextModel):
  """Scripted model: returns ``text``, raises ``error`` or waits for ``release``.

  Streaming yields ``chunks`` (or ``text`` whole) and then raises ``stream_error`` if set.
  """

  def __init__(
    self,
    text: str = "",
    *,
    error: Exception | None = None,
    delay: float = 0.0,
    gated: bool = False,
    chunks: list[str] | None = None,
    stream_error: Exception | None = None,
  ) -> None:
    self.name = "fake-model"
    self.text = text
    self.error = error
    self.delay = delay
    self.chunks = chunks
    self.stream_error = stream_error
    self.calls: list[dict[str, object]] = []
    self.started = asyncio.Event()
    self.release = asyncio.Event()
    self._gated = gated

  async def complete(self, *, system: str | None, prompt: str, params: GenerationParams) -> TextResponse:
    self.calls.append({"system": system, "prompt": prompt, "params": params})
    self.started.set()
    if self._gated:
      await self.release.wait()
    if self.delay:
      await asyncio.sleep(self.delay)
    if self.error is not None:
      raise self.error
    return TextResponse(text=self.text, usage={"prompt_tokens": 3, "completion_tokens": 5, "total_tokens": 8})

  async def complete_stream(self, *, system: str | None, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
    self.calls.append({"system": system, "prompt": prompt, "params": params})
    if self.error is not None:
      raise self.error
    for chunk in self.chunks if self.chunks is not None else [self.text]:
      yield chunk
    if self.stream_error is not None:
      raise self.stream_error


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def fake_model_cls() -> type[FakeTextModel]:
  return FakeTextModel


@pytest.fixture
def tasks_repo() -> InMemoryTasksRepository:
  return InMemoryTasksRepository()


@pytest.fixture
def registry(tasks_repo: InMemoryTasksRepository) -> TaskRegistry:
  return TaskRegistry(tasks_repo, eviction_grace_seconds=60.0)


@pytest.fixture
def executor(registry: TaskRegistry) -> TaskExecutor:
  return TaskExecutor(registry, provider_timeout_seconds=5.0)


@pytest.fixture
async def async_client(registry: TaskRegistry, executor: TaskExecutor):
  app.dependency_overrides[get_task_registry] = lambda: registry
  app.dependency_overrides[get_task_executor] = lambda: executor
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  await executor.shutdown()
  app.dependency_overrides.clear()
