"""Provider configuration merged from caller values and server defaults."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from quizforge.ai.errors import ProviderConfigError
from quizforge.ai.providers.base import GenerationParams
from quizforge.config import Settings

SUPPORTED_PROVIDERS = ("google", "openai")


@dataclass(frozen=True)
class ProviderConfig:
  """Resolved vendor, credentials and sampling parameters for one request."""

  provider: str
  api_key: str
  text_model: str
  base_url: str | None = None
  temperature: float = 0.3
  top_p: float = 0.95
  top_k: int | None = 40
  max_output_tokens: int = 32000

  def params(self) -> GenerationParams:
    return GenerationParams(temperature=self.temperature, top_p=self.top_p, top_k=self.top_k, max_output_tokens=self.max_output_tokens)

  def __repr__(self) -> str:
    # Keep credentials out of logs and tracebacks.
    return f"ProviderConfig(provider={self.provider!r}, text_model={self.text_model!r}, base_url={self.base_url!r})"


def _clean(value: Any) -> Any:
  if isinstance(value, str):
    value = value.strip()
    return value or None
  return value


def resolve_provider_config(overrides: Mapping[str, Any] | None, settings: Settings) -> ProviderConfig:
  """Overlay caller-supplied values on the server defaults.

  Empty strings count as missing, so a blank client API key falls back to the
  server key for the resolved provider. Raises ProviderConfigError when no key
  is available or the provider is unknown.
  """
  values = {key: _clean(value) for key, value in (overrides or {}).items()}

  provider = (values.get("provider") or settings.ai_provider).lower()
  if provider not in SUPPORTED_PROVIDERS:
    raise ProviderConfigError(f"Unsupported provider '{provider}'. Expected one of {', '.join(SUPPORTED_PROVIDERS)}.")

  api_key = values.get("api_key") or settings.server_api_key(provider)
  if not api_key:
    raise ProviderConfigError("Missing API key")

  def pick(key: str, default: Any) -> Any:
    value = values.get(key)
    return default if value is None else value

  return ProviderConfig(
    provider=provider,
    api_key=api_key,
    text_model=pick("text_model", settings.ai_text_model),
    base_url=pick("base_url", settings.ai_base_url),
    temperature=float(pick("temperature", settings.ai_temperature)),
    top_p=float(pick("top_p", settings.ai_top_p)),
    top_k=int(pick("top_k", settings.ai_top_k)),
    max_output_tokens=int(pick("max_output_tokens", settings.ai_max_output_tokens)),
  )
