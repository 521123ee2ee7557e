from __future__ import annotations

import pytest
from httpx import AsyncClient

from quizforge.tasks.registry import TaskRegistry


async def _create(client: AsyncClient, owner_id: str = "owner-1", **extra) -> dict:
  response = await client.post("/api/tasks", json={"kind": "generate_questions", "title": "Biology quiz", "ownerId": owner_id, **extra})
  assert response.status_code == 200
  return response.json()["task"]


@pytest.mark.anyio
async def test_health(async_client: AsyncClient) -> None:
  response = await async_client.get("/health")
  assert response.status_code == 200
  assert response.json()["status"] == "ok"
  assert response.headers["x-request-id"]


@pytest.mark.anyio
async def test_create_and_get_task_uses_camel_case(async_client: AsyncClient) -> None:
  task = await _create(async_client, inputSummary="Cells and membranes", metadata={"source": "manual"})
  assert task["status"] == "pending"
  assert task["progress"] == 0
  assert task["ownerId"] == "owner-1"
  assert task["inputSummary"] == "Cells and membranes"
  assert task["startedAt"] is None

  response = await async_client.get(f"/api/tasks/{task['id']}")
  assert response.status_code == 200
  assert response.json()["task"] == task


@pytest.mark.anyio
async def test_snake_case_input_is_accepted(async_client: AsyncClient) -> None:
  response = await async_client.post("/api/tasks", json={"kind": "generate_structure", "title": "Course", "owner_id": "owner-2", "input_summary": "x"})
  assert response.status_code == 200
  assert response.json()["task"]["kind"] == "generate_structure"


@pytest.mark.anyio
@pytest.mark.parametrize(
  "payload",
  [
    {"kind": "generate_questions", "title": "Quiz"},
    {"kind": "write_poem", "title": "Quiz", "ownerId": "o"},
    {"kind": "generate_questions", "title": "", "ownerId": "o"},
  ],
)
async def test_invalid_create_requests_are_rejected(async_client: AsyncClient, payload: dict) -> None:
  response = await async_client.post("/api/tasks", json=payload)
  assert response.status_code == 422
  assert "requestId" in response.json()


@pytest.mark.anyio
async def test_unknown_task_is_404(async_client: AsyncClient) -> None:
  for method in ("get", "delete"):
    response = await getattr(async_client, method)("/api/tasks/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Task not found."

  response = await async_client.patch("/api/tasks/does-not-exist", json={"progress": 5})
  assert response.status_code == 404


@pytest.mark.anyio
async def test_patch_applies_partial_updates(async_client: AsyncClient) -> None:
  task = await _create(async_client)
  response = await async_client.patch(f"/api/tasks/{task['id']}", json={"status": "running", "progress": 40})
  assert response.status_code == 200
  updated = response.json()["task"]
  assert updated["status"] == "running"
  assert updated["progress"] == 40
  assert updated["startedAt"] is not None

  response = await async_client.patch(f"/api/tasks/{task['id']}", json={"status": "completed", "result": {"questions": []}})
  completed = response.json()["task"]
  assert completed["status"] == "completed"
  assert completed["result"] == {"questions": []}

  response = await async_client.patch(f"/api/tasks/{task['id']}", json={"status": "running"})
  assert response.json()["task"]["status"] == "completed"


@pytest.mark.anyio
async def test_patch_rejects_out_of_range_progress(async_client: AsyncClient) -> None:
  task = await _create(async_client)
  response = await async_client.patch(f"/api/tasks/{task['id']}", json={"progress": 101})
  assert response.status_code == 422


@pytest.mark.anyio
async def test_cancel_marks_task_cancelled(async_client: AsyncClient) -> None:
  task = await _create(async_client)
  response = await async_client.delete(f"/api/tasks/{task['id']}")
  assert response.status_code == 200
  assert response.json() == {"ok": True}

  cancelled = (await async_client.get(f"/api/tasks/{task['id']}")).json()["task"]
  assert cancelled["status"] == "cancelled"
  assert cancelled["completedAt"] is not None


@pytest.mark.anyio
async def test_cancel_after_completion_is_a_no_op(async_client: AsyncClient, registry: TaskRegistry) -> None:
  task = await _create(async_client)
  await registry.update(task["id"], status="completed", result={"questions": []})

  response = await async_client.delete(f"/api/tasks/{task['id']}")
  assert response.status_code == 200
  assert (await async_client.get(f"/api/tasks/{task['id']}")).json()["task"]["status"] == "completed"


@pytest.mark.anyio
async def test_list_and_running_count(async_client: AsyncClient) -> None:
  first = await _create(async_client)
  second = await _create(async_client)
  await _create(async_client, owner_id="owner-2")
  await async_client.delete(f"/api/tasks/{first['id']}")

  response = await async_client.get("/api/tasks", params={"ownerId": "owner-1"})
  assert response.status_code == 200
  assert {task["id"] for task in response.json()["tasks"]} == {first["id"], second["id"]}

  response = await async_client.get("/api/tasks", params={"ownerId": "owner-1", "status": "cancelled"})
  assert [task["id"] for task in response.json()["tasks"]] == [first["id"]]

  response = await async_client.get("/api/tasks", params={"ownerId": "owner-1", "limit": 1})
  assert len(response.json()["tasks"]) == 1

  response = await async_client.get("/api/tasks/running/count", params={"ownerId": "owner-1"})
  assert response.status_code == 200
  assert response.json() == {"count": 1}


@pytest.mark.anyio
async def test_list_requires_owner(async_client: AsyncClient) -> None:
  response = await async_client.get("/api/tasks")
  assert response.status_code == 422
