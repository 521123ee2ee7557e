import asyncio
import contextlib
import logging
import subprocess
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import urlparse

from fastapi import FastAPI

from quizforge.api.deps import get_task_executor, get_task_registry
from quizforge.config import Settings, get_settings
from quizforge.core.database import dispose_engine
from quizforge.core.logging import initialize_logging
from quizforge.tasks.registry import run_eviction_sweeper

_PRODUCTION_ENVIRONMENTS = {"production", "prod", "stage", "staging"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and migrations, then run the eviction sweeper for the app's lifetime."""
  settings = get_settings()
  logger = logging.getLogger("quizforge.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except Exception:  # noqa: BLE001
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  if settings.auto_apply_migrations:
    _apply_migrations(settings, logger=logger)

  registry = get_task_registry()
  executor = get_task_executor()
  sweeper = asyncio.create_task(run_eviction_sweeper(registry, settings.task_sweep_interval_seconds), name="task-eviction-sweeper")
  logger.info("Task eviction sweeper started interval=%ss grace=%ss", settings.task_sweep_interval_seconds, settings.task_eviction_seconds)

  try:
    yield
  finally:
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
      await sweeper
    await executor.shutdown()
    await dispose_engine()
    logger.info("Shutdown complete.")


def _apply_migrations(settings: Settings, *, logger: logging.Logger) -> None:
  """Run ``alembic upgrade head`` unless the environment is production-like."""
  if settings.environment in _PRODUCTION_ENVIRONMENTS:
    logger.info("Skipping startup migrations for environment=%s", settings.environment)
    return
  if not settings.pg_dsn:
    logger.info("Skipping startup migrations; no database configured.")
    return

  logger.info("Applying migrations; QUIZFORGE_PG_DSN=%s", _redact_dsn(settings.pg_dsn))
  repo_root = Path(__file__).resolve().parents[2]
  try:
    subprocess.run([sys.executable, "-m", "alembic", "upgrade", "head"], check=True, cwd=repo_root)
  except (subprocess.CalledProcessError, OSError):
    logger.warning("Startup migrations failed.", exc_info=True)


def _redact_dsn(raw: str | None) -> str:
  """Strip credentials from a DSN while keeping host and database visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
