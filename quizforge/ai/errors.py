"""Provider error types and classification helpers."""

from __future__ import annotations

from collections.abc import Iterable

_RATE_LIMIT_HINTS: tuple[str, ...] = (
  "429",
  "too many requests",
  "rate limit",
  "resource exhausted",
  "resource_exhausted",
  "quota exceeded",
)


class ProviderError(RuntimeError):
  """A generative provider call failed; the message is reported verbatim."""


class ProviderTimeoutError(ProviderError):
  """A provider call did not return before its deadline."""

  def __init__(self, timeout_seconds: float) -> None:
    super().__init__(f"Provider call timed out after {timeout_seconds:g}s")
    self.timeout_seconds = timeout_seconds


class ProviderConfigError(ValueError):
  """Provider configuration is incomplete or names an unknown vendor."""


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  return any(hint in message for hint in hints)


def is_rate_limit_error(exc: BaseException) -> bool:
  """Return True when an exception looks like a 429 or quota rejection."""
  status_code = getattr(exc, "status_code", None) or getattr(exc, "code", None)
  if status_code == 429:
    return True
  return _match_hint(str(exc).lower(), _RATE_LIMIT_HINTS)
