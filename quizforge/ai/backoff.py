"""Retry logic for rate-limited provider calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from quizforge.ai.errors import is_rate_limit_error

T = TypeVar("T")
logger = logging.getLogger(__name__)

DEFAULT_DELAYS: tuple[float, ...] = (5, 20, 50)


async def retry_with_backoff(func: Callable[..., Awaitable[T]], *args, delays: Sequence[float] = DEFAULT_DELAYS, **kwargs) -> T:
  """
  Execute an async call, retrying only 429/quota failures.

  Delays default to 5s, 20s, 50s; the final attempt's error propagates.
  """
  for attempt, delay in enumerate(delays):
    try:
      return await func(*args, **kwargs)
    except Exception as exc:
      if not is_rate_limit_error(exc):
        raise
      logger.warning("Provider rate limited (attempt %d/%d): %s. Retrying in %ss", attempt + 1, len(delays) + 1, exc, delay)
      await asyncio.sleep(delay)

  return await func(*args, **kwargs)
