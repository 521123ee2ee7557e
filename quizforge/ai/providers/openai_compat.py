"""OpenAI-compatible chat completions provider using the openai SDK."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from openai import AsyncOpenAI

from quizforge.ai.backoff import retry_with_backoff
from quizforge.ai.errors import ProviderError
from quizforge.ai.providers.base import GenerationParams, TextModel, TextResponse

logger = logging.getLogger(__name__)


def _messages(system: str | None, prompt: str) -> list[dict[str, str]]:
  messages = []
  if system:
    messages.append({"role": "system", "content": system})
  messages.append({"role": "user", "content": prompt})
  return messages


class OpenAICompatModel(TextModel):
  """Chat-completions model; ``base_url`` points it at any OpenAI-compatible vendor."""

  def __init__(self, name: str, *, api_key: str, base_url: str | None = None) -> None:
    if not api_key:
      raise ValueError("An OpenAI API key is required")
    self.name = name
    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or None)

  async def complete(self, *, system: str | None, prompt: str, params: GenerationParams) -> TextResponse:
    # Chat completions has no top_k parameter.
    try:
      response = await retry_with_backoff(
        self._client.chat.completions.create,
        model=self.name,
        messages=_messages(system, prompt),
        temperature=params.temperature,
        top_p=params.top_p,
        max_tokens=params.max_output_tokens,
      )
    except Exception as exc:
      raise ProviderError(str(exc) or type(exc).__name__) from exc

    content = response.choices[0].message.content if response.choices else None
    text = content or ""
    logger.debug("OpenAI-compatible response model=%s chars=%d", self.name, len(text))
    usage = None
    if response.usage:
      usage = {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}
    return TextResponse(text=text, usage=usage)

  async def complete_stream(self, *, system: str | None, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
    try:
      stream = await retry_with_backoff(
        self._client.chat.completions.create,
        model=self.name,
        messages=_messages(system, prompt),
        temperature=params.temperature,
        top_p=params.top_p,
        max_tokens=params.max_output_tokens,
        stream=True,
      )
      async for chunk in stream:
        # Usage-only chunks carry no choices.
        delta = chunk.choices[0].delta.content if chunk.choices else None
        if delta:
          yield delta
    except Exception as exc:
      raise ProviderError(str(exc) or type(exc).__name__) from exc
