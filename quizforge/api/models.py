"""Request and response models for the HTTP surface (camelCase on the wire)."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictStr

from quizforge.tasks.models import TaskKind, TaskRecord, TaskStatus


def _to_camel(string: str) -> str:
  """Convert snake_case to camelCase so the API accepts frontend-style payloads."""
  parts = string.split("_")
  return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


class ApiModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, extra="ignore", alias_generator=_to_camel)


class TaskCreateRequest(ApiModel):
  kind: TaskKind
  title: StrictStr = Field(min_length=1, max_length=200)
  input_summary: StrictStr | None = Field(default=None, max_length=2000)
  metadata: dict[str, Any] | None = None
  owner_id: StrictStr = Field(min_length=1)


class TaskUpdateRequest(ApiModel):
  status: TaskStatus | None = None
  progress: int | None = Field(default=None, ge=0, le=100)
  result: Any = None
  error: StrictStr | None = None
  metadata: dict[str, Any] | None = None


class TaskView(ApiModel):
  """Task as returned to clients."""

  id: str
  owner_id: str
  kind: TaskKind
  status: TaskStatus
  title: str
  progress: int
  input_summary: str | None = None
  result: Any = None
  error: str | None = None
  metadata: dict[str, Any] = Field(default_factory=dict)
  created_at: str
  started_at: str | None = None
  completed_at: str | None = None

  @classmethod
  def from_record(cls, record: TaskRecord) -> TaskView:
    return cls(
      id=record.task_id,
      owner_id=record.owner_id,
      kind=record.kind,
      status=record.status,
      title=record.title,
      progress=record.progress,
      input_summary=record.input_summary,
      result=record.result,
      error=record.error,
      metadata=dict(record.metadata),
      created_at=record.created_at,
      started_at=record.started_at,
      completed_at=record.completed_at,
    )


class TaskEnvelope(ApiModel):
  task: TaskView


class TaskListResponse(ApiModel):
  tasks: list[TaskView]


class RunningCountResponse(ApiModel):
  count: int


class OkResponse(ApiModel):
  ok: bool = True


class ProviderConfigIn(ApiModel):
  """Caller overrides for the provider; blanks fall back to server defaults."""

  provider: Literal["google", "openai"] | None = None
  api_key: str | None = None
  base_url: str | None = None
  text_model: str | None = None
  temperature: float | None = Field(default=None, ge=0, le=2)
  top_p: float | None = Field(default=None, gt=0, le=1)
  top_k: int | None = Field(default=None, ge=1)
  max_output_tokens: int | None = Field(default=None, ge=1)


class GenerateRequest(ApiModel):
  content: str = ""
  system_prompt: str | None = None
  config: ProviderConfigIn | None = Field(default=None, validation_alias=AliasChoices("providerConfig", "provider_config", "config"))
  owner_id: str | None = None
  title: str | None = Field(default=None, max_length=200)
  use_task: bool = True


class GenerateTaskResponse(ApiModel):
  task_id: str
  message: str = "Task created, generation started in background"


class GenerateSyncResponse(ApiModel):
  """Inline generation result returned when ``useTask`` is false."""

  data: list[dict[str, Any]]
  rescued_count: int
  invalid_count: int
  invalid_items: list[dict[str, Any]]
  empty_result: bool
  parse_error: str | None = None
  usage: dict[str, int] | None = None


class ProviderTestRequest(ApiModel):
  config: ProviderConfigIn | None = Field(default=None, validation_alias=AliasChoices("providerConfig", "provider_config", "config"))


class ProviderTestResponse(ApiModel):
  ok: bool
  message: str
  response: str


class GenerateOptionsRequest(ApiModel):
  question: str = ""
  correct_answer: str = ""
  count: int = Field(default=3, ge=1, le=10)
  system_prompt: str | None = None
  config: ProviderConfigIn | None = Field(default=None, validation_alias=AliasChoices("providerConfig", "provider_config", "config"))


class GenerateOptionsResponse(ApiModel):
  options: list[dict[str, Any]]


class StreamRequest(ApiModel):
  prompt: str = ""
  system_prompt: str | None = None
  config: ProviderConfigIn | None = Field(default=None, validation_alias=AliasChoices("providerConfig", "provider_config", "config"))
