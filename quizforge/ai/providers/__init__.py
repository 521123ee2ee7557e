"""Provider factory."""

from __future__ import annotations

from quizforge.ai.errors import ProviderConfigError
from quizforge.ai.providers.base import GenerationParams, TextModel, TextResponse
from quizforge.ai.providers.config import ProviderConfig, resolve_provider_config
from quizforge.ai.providers.gemini import GeminiModel
from quizforge.ai.providers.openai_compat import OpenAICompatModel


def build_text_model(config: ProviderConfig) -> TextModel:
  """Instantiate the model client for a resolved provider configuration."""
  if config.provider == "google":
    return GeminiModel(config.text_model, api_key=config.api_key, base_url=config.base_url)
  if config.provider == "openai":
    return OpenAICompatModel(config.text_model, api_key=config.api_key, base_url=config.base_url)
  raise ProviderConfigError(f"Unsupported provider '{config.provider}'.")


__all__ = ["GenerationParams", "ProviderConfig", "TextModel", "TextResponse", "build_text_model", "resolve_provider_config"]
