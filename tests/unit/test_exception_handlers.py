"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

import json

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from quizforge.ai.errors import ProviderError, ProviderTimeoutError
from quizforge.core.exceptions import _sanitize_validation_errors, global_exception_handler, http_exception_handler, provider_exception_handler


def _request(path: str = "/api/tasks/abc") -> Request:
  return Request({"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b"", "state": {"request_id": "req-1"}})


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  errors = [{"type": "value_error", "loc": ("body",), "msg": "Value error, bad kind.", "input": {"kind": "nope"}, "ctx": {"error": ValueError("bad kind."), "input": {"kind": "nope"}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: bad kind."
  assert "input" not in sanitized[0]["ctx"]


@pytest.mark.anyio
async def test_not_found_detail_is_returned_with_request_id() -> None:
  response = await http_exception_handler(_request(), HTTPException(status_code=404, detail="Task not found."))
  assert response.status_code == 404
  assert json.loads(response.body) == {"detail": "Task not found.", "requestId": "req-1"}


@pytest.mark.anyio
async def test_server_errors_are_masked() -> None:
  response = await http_exception_handler(_request(), HTTPException(status_code=503, detail="db password wrong"))
  assert response.status_code == 503
  assert json.loads(response.body)["detail"] == "Internal Server Error"

  response = await global_exception_handler(_request(), RuntimeError("secret"))
  assert response.status_code == 500
  assert "secret" not in response.body.decode()


@pytest.mark.anyio
async def test_provider_errors_become_bad_gateway() -> None:
  response = await provider_exception_handler(_request("/api/ai/generate"), ProviderError("Invalid API key"))
  assert response.status_code == 502
  assert json.loads(response.body)["detail"] == "Invalid API key"

  response = await provider_exception_handler(_request("/api/ai/generate"), ProviderTimeoutError(30))
  assert json.loads(response.body)["detail"] == "Provider call timed out after 30s"
