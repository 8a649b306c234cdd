"""
HTTP layer tests for POST /api/composite.

The composite service dependency is overridden with one whose downstream
client runs on httpx.MockTransport.
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from composite.downstream import HttpxDownstreamClient
from composite.orchestrator import CompositeService
from server.app import app, get_composite_service


@pytest.fixture
def downstream_client(downstream):
    client = HttpxDownstreamClient(transport=httpx.MockTransport(downstream))
    yield client
    asyncio.run(client.aclose())


@pytest.fixture
def client(downstream_client):
    service = CompositeService(downstream_client)
    app.dependency_overrides[get_composite_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_composite_success(client, downstream):
    downstream.add("GET", "https://svc/items", body=[{"id": 7}, {"id": 8}])

    resp = client.post("/api/composite", json={
        "requests": [{"method": "get", "endpoint": "https://svc/items", "returns": {"firstId": "[0].id"}}],
    })

    assert resp.status_code == 200
    assert resp.json() == {"firstId": 7}
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.headers.get("X-Request-ID")


def test_request_id_is_echoed(client, downstream):
    downstream.add("GET", "https://svc/items", body={})

    resp = client.post(
        "/api/composite",
        json={"requests": [{"method": "get", "endpoint": "https://svc/items"}]},
        headers={"X-Request-ID": "abc-123"},
    )

    assert resp.headers["X-Request-ID"] == "abc-123"


def test_empty_requests_rejected(client, downstream):
    resp = client.post("/api/composite", json={"requests": []})

    assert resp.status_code == 400
    assert downstream.calls == []


def test_invalid_shape_rejected_by_validation(client):
    resp = client.post("/api/composite", json={"requests": "not-a-list"})

    assert resp.status_code == 422


def test_authorization_header_forwarded(client, downstream):
    downstream.add("GET", "https://svc/items", body={})

    client.post(
        "/api/composite",
        json={"requests": [{"method": "get", "endpoint": "https://svc/items"}]},
        headers={"Authorization": "Bearer abc.def.ghi"},
    )

    assert downstream.calls[0].headers["Authorization"] == "Bearer abc.def.ghi"


def test_downstream_failure_mirrors_status(client, downstream):
    downstream.add("GET", "https://svc/a", body={"id": 1})
    downstream.add("GET", "https://svc/b", status=503)

    resp = client.post("/api/composite", json={"requests": [
        {"method": "get", "endpoint": "https://svc/a", "returns": {"a": "id"}},
        {"method": "get", "endpoint": "https://svc/b"},
    ]})

    assert resp.status_code == 500
    assert resp.json() == {"a": 1}


def test_debug_output_is_plain_text_with_trace(client, downstream):
    downstream.add("GET", "https://svc/items", body={})

    resp = client.post("/api/composite", json={
        "debug": True,
        "requests": [{"method": "get", "endpoint": "https://svc/items"}],
    })

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text.startswith('[SUCCESS] "GET" "https://svc/items" ended up with 200 OK\n[RESPONSE]\n')


def test_health_probes(client):
    assert client.get("/health/live").json()["status"] == "ok"
    assert client.get("/health/ready").json()["status"] == "ready"


def test_downstream_client_closes_outside_event_loop(downstream):
    downstream_client = HttpxDownstreamClient(transport=httpx.MockTransport(downstream))

    asyncio.run(downstream_client.aclose())

    assert downstream_client.client.is_closed
