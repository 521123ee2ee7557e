from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from quizforge import __version__
from quizforge.ai.errors import ProviderError
from quizforge.api.routes import generation, tasks
from quizforge.config import get_settings
from quizforge.core.exceptions import global_exception_handler, http_exception_handler, provider_exception_handler, request_validation_exception_handler
from quizforge.core.lifespan import lifespan
from quizforge.core.middleware import RequestLoggingMiddleware

settings = get_settings()

app = FastAPI(title="quizforge", version=__version__, lifespan=lifespan, debug=settings.debug)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["x-request-id"])


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(ProviderError, provider_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(generation.router, prefix="/api/ai", tags=["generation"])
