"""Task record types shared by the registry, the stores and the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

TaskStatus = Literal["pending", "running", "completed", "failed", "cancelled"]
TaskKind = Literal["generate_questions", "generate_structure", "generate_image", "batch_generate"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed", "cancelled"})
ACTIVE_STATUSES: frozenset[str] = frozenset({"pending", "running"})

# Status moves only forward along this rank; terminal states share the top rank.
_STATUS_RANK: dict[str, int] = {"pending": 0, "running": 1, "completed": 2, "failed": 2, "cancelled": 2}


def is_terminal(status: str) -> bool:
  return status in TERMINAL_STATUSES


def status_rank(status: str) -> int:
  return _STATUS_RANK[status]


@dataclass(frozen=True)
class TaskRecord:
  """Persisted task state for a background generation job."""

  task_id: str
  owner_id: str
  kind: TaskKind
  status: TaskStatus
  title: str
  created_at: str
  progress: int = 0
  input_summary: str | None = None
  result: Any = None
  error: str | None = None
  started_at: str | None = None
  completed_at: str | None = None
  metadata: dict[str, Any] = field(default_factory=dict)

  @property
  def is_terminal(self) -> bool:
    return is_terminal(self.status)
