"""HTTP-level tests of the FastAPI application."""

import httpx
import pytest
import pytest_asyncio

from faultline.config import Settings
from faultline.database import init_db
from faultline.main import create_app

PROJECT_ID = "7d4f6f0e-3b7a-4c55-9a59-3c1b0f2d9e11"
INGEST_ERRORS = f"/ingest/{PROJECT_ID}:public-key/errors"
INGEST_LOGS = f"/ingest/{PROJECT_ID}:public-key/logs"


@pytest_asyncio.fixture
async def client(tmp_path):
    settings = Settings()
    settings.DATABASE_URL = f"sqlite+aiosqlite:///{tmp_path}/api.db"
    settings.DEFAULT_PAGE_LIMIT = 2
    app = create_app(settings)
    await init_db(app.state.engine)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.engine.dispose()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_ingest_and_read_error(client, error_payload):
    response = await client.post(INGEST_ERRORS, json=error_payload)
    assert response.status_code == 201
    created = response.json()
    assert created["project_id"] == PROJECT_ID
    assert created["context"] == {"userId": 42, "action": "calculate"}

    response = await client.get(f"/v1/errors/{created['id']}")
    assert response.status_code == 200
    assert response.json()["fingerprint"] == created["fingerprint"]

    response = await client.get("/v1/errors", params={"projectId": PROJECT_ID, "groupId": created["fingerprint"]})
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["items"][0]["id"] == created["id"]

    response = await client.get(f"/v1/error-groups/{created['fingerprint']}")
    assert response.status_code == 200
    assert response.json()["counter"] == 1


@pytest.mark.asyncio
async def test_ingest_validation(client, error_payload):
    payload = {k: v for k, v in error_payload.items() if k != "stacktrace"}
    response = await client.post(INGEST_ERRORS, json=payload)
    assert response.status_code == 422

    response = await client.post(INGEST_LOGS, json={"time": 1, "level": "LOUD", "message": "m"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_pagination_defaults(client, log_payload):
    for i in range(3):
        response = await client.post(INGEST_LOGS, json={**log_payload, "time": 1704067200000 + i * 1000})
        assert response.status_code == 201

    response = await client.get("/v1/logs", params={"projectId": PROJECT_ID, "sort": "bogus", "limit": -1})
    body = response.json()
    assert body["count"] == 3
    assert len(body["items"]) == 2
    # Invalid sort falls back to descending
    assert body["items"][0]["time"] > body["items"][1]["time"]

    response = await client.get("/v1/logs", params={"timeFrom": 1704067201, "timeTo": 1704067202, "sort": "asc"})
    assert [item["time"] for item in response.json()["items"]] == [1704067201000, 1704067202000]


@pytest.mark.asyncio
async def test_update_and_delete(client, error_payload):
    created = (await client.post(INGEST_ERRORS, json=error_payload)).json()

    response = await client.put(f"/v1/errors/{created['id']}", json={"message": "renamed"})
    assert response.status_code == 200
    assert response.json()["message"] == "renamed"
    assert response.json()["file"] == error_payload["file"]

    response = await client.delete(f"/v1/errors/{created['id']}")
    assert response.status_code == 204

    response = await client.get(f"/v1/errors/{created['id']}")
    assert response.status_code == 404
    response = await client.delete(f"/v1/errors/{created['id']}")
    assert response.status_code == 404
    response = await client.put(f"/v1/errors/{created['id']}", json={"message": "x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_stats(client, error_payload):
    response = await client.get("/v1/errors/stats")
    assert response.status_code == 400

    response = await client.get("/v1/errors/stats", params={"projectId": PROJECT_ID})
    assert response.status_code == 200
    assert response.json() == {"last24h": 0, "last7d": 0, "last30d": 0}


@pytest.mark.asyncio
async def test_group_triage(client, log_payload):
    created = (await client.post(INGEST_LOGS, json=log_payload)).json()

    response = await client.patch(f"/v1/log-groups/{created['fingerprint']}/status", json={"status": "ignored"})
    assert response.status_code == 200
    assert response.json()["status"] == "ignored"

    response = await client.get("/v1/log-groups", params={"projectId": PROJECT_ID, "level": "ERROR"})
    assert response.json()["count"] == 1
    assert response.json()["items"][0]["status"] == "ignored"

    response = await client.patch(f"/v1/log-groups/{'0' * 64}/status", json={"status": "resolved"})
    assert response.status_code == 404
