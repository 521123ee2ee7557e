"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from quizforge.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_SUPPORTED_PROVIDERS = {"google", "openai"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the quizforge service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  auto_apply_migrations: bool
  task_eviction_seconds: float
  task_sweep_interval_seconds: float
  task_list_default_limit: int
  task_list_max_limit: int
  provider_timeout_seconds: float
  ai_provider: str
  openai_api_key: str | None
  gemini_api_key: str | None
  ai_base_url: str | None
  ai_text_model: str
  ai_temperature: float
  ai_top_p: float
  ai_top_k: int
  ai_max_output_tokens: int

  def server_api_key(self, provider: str) -> str | None:
    """Return the server-side key configured for a provider."""
    if provider == "google":
      return self.gemini_api_key
    return self.openai_api_key


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = [origin.strip() for origin in (raw or "").split(",") if origin.strip()]

  if not origins:
    raise ValueError("QUIZFORGE_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("QUIZFORGE_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _resolve_pg_dsn() -> str | None:
  return _optional_str(os.getenv("QUIZFORGE_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("QUIZFORGE_ENV", "development").strip().lower()
  # Toggle SQL echo and verbose diagnostics outside production.
  debug = _parse_bool(os.getenv("QUIZFORGE_DEBUG"))

  log_backup_count = int(os.getenv("QUIZFORGE_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("QUIZFORGE_LOG_BACKUP_COUNT must be zero or a positive integer.")

  task_list_default_limit = _positive_int("QUIZFORGE_TASK_LIST_DEFAULT_LIMIT", "20")
  task_list_max_limit = _positive_int("QUIZFORGE_TASK_LIST_MAX_LIMIT", "200")
  if task_list_default_limit > task_list_max_limit:
    raise ValueError("QUIZFORGE_TASK_LIST_DEFAULT_LIMIT must not exceed QUIZFORGE_TASK_LIST_MAX_LIMIT.")

  ai_provider = (os.getenv("QUIZFORGE_AI_PROVIDER") or "openai").strip().lower()
  if ai_provider not in _SUPPORTED_PROVIDERS:
    raise ValueError(f"QUIZFORGE_AI_PROVIDER must be one of {sorted(_SUPPORTED_PROVIDERS)}.")

  ai_temperature = float(os.getenv("QUIZFORGE_AI_TEMPERATURE", "0.3"))
  ai_top_p = float(os.getenv("QUIZFORGE_AI_TOP_P", "0.95"))
  if not 0 < ai_top_p <= 1:
    raise ValueError("QUIZFORGE_AI_TOP_P must be within (0, 1].")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("QUIZFORGE_ALLOWED_ORIGINS", "http://localhost:5173")),
    log_dir=(os.getenv("QUIZFORGE_LOG_DIR") or "./logs").strip(),
    log_max_bytes=_positive_int("QUIZFORGE_LOG_MAX_BYTES", "5242880"),  # 5MB default
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("QUIZFORGE_LOG_HTTP_4XX")),
    pg_dsn=_resolve_pg_dsn(),
    pg_connect_timeout=_positive_int("QUIZFORGE_PG_CONNECT_TIMEOUT", "5"),
    auto_apply_migrations=_parse_bool(os.getenv("QUIZFORGE_AUTO_APPLY_MIGRATIONS")),
    task_eviction_seconds=_positive_float("QUIZFORGE_TASK_EVICTION_SECONDS", "60"),
    task_sweep_interval_seconds=_positive_float("QUIZFORGE_TASK_SWEEP_INTERVAL_SECONDS", "15"),
    task_list_default_limit=task_list_default_limit,
    task_list_max_limit=task_list_max_limit,
    provider_timeout_seconds=_positive_float("QUIZFORGE_PROVIDER_TIMEOUT_SECONDS", "300"),
    ai_provider=ai_provider,
    openai_api_key=_optional_str(os.getenv("QUIZFORGE_OPENAI_API_KEY")),
    gemini_api_key=_optional_str(os.getenv("QUIZFORGE_GEMINI_API_KEY")),
    ai_base_url=_optional_str(os.getenv("QUIZFORGE_AI_BASE_URL")),
    ai_text_model=(os.getenv("QUIZFORGE_AI_TEXT_MODEL") or "gpt-4").strip(),
    ai_temperature=ai_temperature,
    ai_top_p=ai_top_p,
    ai_top_k=_positive_int("QUIZFORGE_AI_TOP_K", "40"),
    ai_max_output_tokens=_positive_int("QUIZFORGE_AI_MAX_OUTPUT_TOKENS", "32000"),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without validating the rest of the service config."""

  return DatabaseSettings(
    debug=_parse_bool(os.getenv("QUIZFORGE_DEBUG")),
    pg_dsn=_resolve_pg_dsn(),
    pg_connect_timeout=_positive_int("QUIZFORGE_PG_CONNECT_TIMEOUT", "5"),
  )
