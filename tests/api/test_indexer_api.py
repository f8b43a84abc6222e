"""
API tests for the indexer trigger and status endpoints.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from charity_indexer.api.dependencies import get_event_client, get_orchestrator
from charity_indexer.api.main import create_app
from charity_indexer.core.config import settings
from charity_indexer.core.exceptions import IndexerError
from charity_indexer.indexer.checkpoint import CheckpointStore

from helpers import campaign_created, donation


@pytest.fixture
def app(session_maker, event_source):
    app = create_app()
    app.dependency_overrides[get_event_client] = lambda: event_source
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_run_reports_synced_version(async_client, session_maker, event_source):
    await CheckpointStore(session_maker).write(settings.indexer_processor_name, 100)
    event_source.add(campaign_created(101), donation(102, amount=10), donation(103, amount=20))

    response = await async_client.post("/api/v1/indexer/run")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Indexer run complete"
    assert body["syncedToVersion"] == "103"
    assert body["previousVersion"] == "100"
    assert body["checkpointAdvanced"] is True
    assert body["stats"]["events_applied"] == 3


async def test_run_accepts_get(async_client):
    response = await async_client.get("/api/v1/indexer/run")

    assert response.status_code == 200
    assert response.json()["syncedToVersion"] == "0"


async def test_run_failure_returns_500(app, async_client):
    class Broken:
        async def run_pass(self):
            raise IndexerError("Sync pass failed: database gone")

    app.dependency_overrides[get_orchestrator] = lambda: Broken()

    response = await async_client.post("/api/v1/indexer/run")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Sync pass failed: database gone",
        "error_code": "INDEXER_ERROR",
    }


async def test_trigger_token_required_when_configured(async_client, monkeypatch):
    monkeypatch.setattr(settings, "trigger_token", "s3cret")

    missing = await async_client.post("/api/v1/indexer/run")
    wrong = await async_client.post(
        "/api/v1/indexer/run", headers={"Authorization": "Bearer nope"}
    )
    right = await async_client.post(
        "/api/v1/indexer/run", headers={"Authorization": "Bearer s3cret"}
    )

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert right.status_code == 200


async def test_status_before_first_run(async_client):
    response = await async_client.get("/api/v1/indexer/status")

    assert response.status_code == 200
    body = response.json()
    assert body["processorName"] == settings.indexer_processor_name
    assert body["lastProcessedVersion"] == "0"
    assert body["state"] == "not_started"


async def test_status_after_run(async_client, event_source):
    event_source.add(campaign_created(42))
    await async_client.post("/api/v1/indexer/run")

    body = (await async_client.get("/api/v1/indexer/status")).json()

    assert body["lastProcessedVersion"] == "42"
    assert body["state"] == "active"


async def test_health(async_client):
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json()["services"]["database"] == "healthy"
