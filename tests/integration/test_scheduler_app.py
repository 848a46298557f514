"""
Integration tests for the scheduler API.

Runs the real app, services and repository against an in-memory database.
"""

from datetime import timedelta

import httpx
import pytest

from main import create_app
from taskaway.core.config import get_settings
from taskaway.models.enums import TaskStatus
from taskaway.services.composition import build_scheduler_services


@pytest.fixture
async def services(task_repo, clock):
    services = build_scheduler_services(get_settings(), task_repo=task_repo, clock=clock)
    yield services
    await services.driver.stop()


@pytest.fixture
async def client(services):
    app = create_app()
    app.state.scheduler_services = services
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["environment"] == "test"


@pytest.mark.asyncio
async def test_status_start_stop(client):
    response = await client.get("/api/scheduler/status")
    assert response.status_code == 200
    body = response.json()
    assert body["isRunning"] is False
    assert body["cronExpression"] == "0 2 * * *"
    assert body["timezone"] == "UTC"

    response = await client.post("/api/scheduler/start")
    assert response.json() == {
        "success": True,
        "message": "Scheduler started successfully",
        "result": None,
    }
    # Starting twice is allowed
    assert (await client.post("/api/scheduler/start")).status_code == 200

    body = (await client.get("/api/scheduler/status")).json()
    assert body["isRunning"] is True
    assert body["nextRun"] == "Daily at 2 AM UTC"
    assert body["nextRunTime"] is not None

    response = await client.post("/api/scheduler/stop")
    assert response.json()["success"] is True
    assert (await client.get("/api/scheduler/status")).json()["isRunning"] is False


@pytest.mark.asyncio
async def test_trigger_runs_both_sweeps(client, task_repo, make_template, make_task, clock):
    template = await make_template("Weekly", weekly_days=["Monday"])
    completed = await make_task(TaskStatus.COMPLETED, clock.now() - timedelta(days=2))

    response = await client.post("/api/scheduler/trigger")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["recurring"]["created"] == 1
    assert body["result"]["autoClose"]["closed"] == 1
    assert await task_repo.count_instances(template.id) == 1
    assert (await task_repo.get(completed.id)).status == TaskStatus.CLOSED

    # Second trigger on the same day is a no-op
    body = (await client.post("/api/scheduler/trigger")).json()
    assert body["result"]["recurring"]["created"] == 0
    assert body["result"]["autoClose"]["processed"] == 0

    status = (await client.get("/api/scheduler/status")).json()
    assert status["lastResult"]["recurring"]["skipped"] == 1


@pytest.mark.asyncio
async def test_trigger_failure_returns_500(client, services):
    async def broken(now=None):
        raise RuntimeError("database unavailable")

    services.auto_close_sweep.run = broken

    response = await client.post("/api/scheduler/trigger")

    assert response.status_code == 500
    assert "database unavailable" in response.json()["detail"]


@pytest.mark.asyncio
async def test_preview(client, make_template, make_task, clock):
    template = await make_template("Weekly", weekly_days=["Tuesday"])

    response = await client.get(f"/api/scheduler/templates/{template.id}/preview")
    assert response.status_code == 200
    body = response.json()
    assert body["templateId"] == str(template.id)
    assert body["shouldGenerate"] is False
    assert body["reason"] == "weekday not scheduled"

    clock.advance(timedelta(days=1))
    body = (await client.get(f"/api/scheduler/templates/{template.id}/preview")).json()
    assert body["shouldGenerate"] is True
    assert body["periodBucket"] == "D2025-03-11"

    plain = await make_task(TaskStatus.SUBMITTED, clock.now())
    response = await client.get(f"/api/scheduler/templates/{plain.id}/preview")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_preview_reports_invalid_config(client, make_template):
    template = await make_template("Monthly")

    body = (await client.get(f"/api/scheduler/templates/{template.id}/preview")).json()

    assert body["shouldGenerate"] is False
    assert body["invalidConfig"] is True
