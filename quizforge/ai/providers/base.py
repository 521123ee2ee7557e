"""Base interfaces for generative text providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationParams:
  """Sampling parameters forwarded to the provider."""

  temperature: float = 0.3
  top_p: float = 0.95
  top_k: int | None = 40
  max_output_tokens: int = 32000


@dataclass
class TextResponse:
  """Raw provider text plus token usage when the vendor reports it."""

  text: str
  usage: dict[str, int] | None = None


class TextModel(ABC):
  """One configured model that can complete text."""

  name: str

  @abstractmethod
  async def complete(self, *, system: str | None, prompt: str, params: GenerationParams) -> TextResponse:
    """Return the raw completion for a system instruction and a user prompt."""

  async def complete_stream(self, *, system: str | None, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
    """Yield completion text as it arrives; models without streaming yield it in one piece."""
    response = await self.complete(system=system, prompt=prompt, params=params)
    if response.text:
      yield response.text
