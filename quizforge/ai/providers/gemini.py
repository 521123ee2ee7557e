"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from google import genai
from google.genai import types

from quizforge.ai.backoff import retry_with_backoff
from quizforge.ai.errors import ProviderError
from quizforge.ai.providers.base import GenerationParams, TextModel, TextResponse

logger = logging.getLogger(__name__)


class GeminiModel(TextModel):
  """Gemini text model served through the async google-genai client."""

  def __init__(self, name: str, *, api_key: str, base_url: str | None = None) -> None:
    if not api_key:
      raise ValueError("A Gemini API key is required")
    self.name = name
    http_options = types.HttpOptions(base_url=base_url) if base_url else None
    self._client = genai.Client(api_key=api_key, http_options=http_options)

  def _config(self, system: str | None, params: GenerationParams) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
      system_instruction=system or None,
      temperature=params.temperature,
      top_p=params.top_p,
      top_k=params.top_k,
      max_output_tokens=params.max_output_tokens,
    )

  async def complete(self, *, system: str | None, prompt: str, params: GenerationParams) -> TextResponse:
    try:
      # Use the async client to avoid blocking the event loop.
      response = await retry_with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=self._config(system, params))
    except Exception as exc:
      raise ProviderError(str(exc) or type(exc).__name__) from exc

    text = response.text or ""
    logger.debug("Gemini response model=%s chars=%d", self.name, len(text))
    usage = None
    if response.usage_metadata:
      usage = {
        "prompt_tokens": response.usage_metadata.prompt_token_count or 0,
        "completion_tokens": response.usage_metadata.candidates_token_count or 0,
        "total_tokens": response.usage_metadata.total_token_count or 0,
      }
    return TextResponse(text=text, usage=usage)

  async def complete_stream(self, *, system: str | None, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
    try:
      stream = await retry_with_backoff(self._client.aio.models.generate_content_stream, model=self.name, contents=prompt, config=self._config(system, params))
      async for chunk in stream:
        if chunk.text:
          yield chunk.text
    except Exception as exc:
      raise ProviderError(str(exc) or type(exc).__name__) from exc
