"""Identifier and timestamp helpers."""

from __future__ import annotations

import time
import uuid
from datetime import UTC, datetime


def generate_task_id() -> str:
  """Return a new task identifier."""
  return str(uuid.uuid4())


def now_millis() -> int:
  """Return the current wall clock in epoch milliseconds."""
  return time.time_ns() // 1_000_000


def now_iso() -> str:
  """Return the current UTC time as ISO-8601 with millisecond precision."""
  # Fixed width keeps lexicographic order equal to chronological order.
  current = datetime.now(UTC)
  return current.strftime("%Y-%m-%dT%H:%M:%S.") + f"{current.microsecond // 1000:03d}Z"
