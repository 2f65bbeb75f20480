from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from orchestrator.domain.certificates import CertificateDirectory
from orchestrator.domain.executions import InvalidTransitionError
from orchestrator.main import create_app


def _directory_handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get("Authorization") != "Bearer token-1":
        return httpx.Response(401, json={"error": "unauthorized"})
    common_name = request.url.params.get("commonName")
    items = []
    if common_name == "edge-7":
        items = [{"serialNumber": "01", "clientId": "client-7", "commonName": "edge-7", "status": "active"}]
    return httpx.Response(200, json={"items": items, "total": len(items)})


@pytest.fixture
def app(harness):
    harness.certificates = CertificateDirectory(
        base_url="http://directory.test",
        client=httpx.AsyncClient(transport=httpx.MockTransport(_directory_handler)),
    )
    return create_app(harness.build())


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def test_trigger_is_idempotent(client, transport):
    first = client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "c1"})
    second = client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "c1"})

    assert first.status_code == 200
    body = first.json()
    assert body["status"] == "Pending"
    assert body["scriptId"] == "s1"
    assert body["clientId"] == "c1"
    assert "createdAt" in body
    assert second.json()["id"] == body["id"]
    assert len(transport.executions) == 1


def test_trigger_resolves_common_name(client, transport):
    response = client.post(
        "/api/trigger-execution",
        json={"scriptId": "s1", "commonName": "edge-7"},
        headers={"Authorization": "Bearer token-1"},
    )

    assert response.status_code == 200
    assert response.json()["clientId"] == "client-7"
    assert transport.executions[0].client_id == "client-7"


def test_trigger_with_unknown_common_name(client):
    response = client.post(
        "/api/trigger-execution",
        json={"scriptId": "s1", "commonName": "nobody"},
        headers={"Authorization": "Bearer token-1"},
    )

    assert response.status_code == 404
    assert response.json()["retryable"] is False


def test_trigger_requires_a_target(client):
    response = client.post("/api/trigger-execution", json={"scriptId": "s1"})

    assert response.status_code == 422


def test_directory_failure_is_bad_gateway(client):
    response = client.get("/api/certificates", params={"commonName": "edge-7"})

    assert response.status_code == 502


def test_certificate_search(client):
    response = client.get(
        "/api/certificates",
        params={"commonName": "edge-7"},
        headers={"Authorization": "Bearer token-1"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["clientId"] == "client-7"
    assert body["items"][0]["serialNumber"] == "01"


def test_unreachable_client_surfaces_as_failed_execution(client, transport):
    transport.unreachable.add("offline")

    response = client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "offline"})

    assert response.status_code == 200
    assert response.json()["status"] == "Failed"
    assert response.json()["errorKind"] == "ClientUnreachable"


def test_get_execution(client):
    created = client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "c1"}).json()

    found = client.get(f"/api/execution/{created['id']}")
    missing = client.get("/api/execution/does-not-exist")

    assert found.status_code == 200
    assert found.json()["id"] == created["id"]
    assert missing.status_code == 404
    assert "does-not-exist" in missing.json()["detail"]


def test_list_executions_filters_and_validates(client):
    for script_id, client_id in (("s1", "c1"), ("s1", "c2"), ("s2", "c1")):
        client.post("/api/trigger-execution", json={"scriptId": script_id, "clientId": client_id})

    everything = client.get("/api/executions").json()
    s1 = client.get("/api/executions", params={"scriptId": "s1", "pageSize": 1}).json()
    pending = client.get("/api/executions", params={"status": "Pending", "clientId": "c1"}).json()
    beyond = client.get("/api/executions", params={"page": 9}).json()
    bad_status = client.get("/api/executions", params={"status": "Exploded"})
    bad_page = client.get("/api/executions", params={"page": 0})

    assert everything["total"] == 3
    assert s1["total"] == 2
    assert len(s1["items"]) == 1
    assert pending["total"] == 2
    assert beyond == {"items": [], "total": 3}
    assert bad_status.status_code == 422
    assert bad_page.status_code == 422


def test_output_endpoint(client, app):
    execution = client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "c1"}).json()
    events = app.state.container.execution_events()

    client.portal.call(events.output, execution["id"], "hello\n")
    client.portal.call(events.output, execution["id"], "world\n")
    running = client.get(f"/api/execution/{execution['id']}/output", params={"maxChunks": 1}).json()
    client.portal.call(events.finished, execution["id"], 0)
    done = client.get(
        f"/api/execution/{execution['id']}/output",
        params={"fromSequence": running["nextSequence"]},
    ).json()
    invalid = client.get(f"/api/execution/{execution['id']}/output", params={"fromSequence": -1})

    assert [chunk["payload"] for chunk in running["chunks"]] == ["hello\n"]
    assert running["chunks"][0]["sequenceNumber"] == 0
    assert running["complete"] is False
    assert running["nextSequence"] == 1
    assert [chunk["payload"] for chunk in done["chunks"]] == ["world\n"]
    assert done["complete"] is True
    assert done["exitCode"] == 0
    assert invalid.status_code == 422


def test_cancel_and_transitions(client, transport):
    execution = client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "c1"}).json()

    cancelled = client.post(f"/api/execution/{execution['id']}/cancel")
    again = client.post(f"/api/execution/{execution['id']}/cancel")
    transitions = client.get(f"/api/execution/{execution['id']}/transitions").json()

    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "Cancelled"
    assert again.status_code == 409
    assert transitions["executionId"] == execution["id"]
    assert [(t["fromStatus"], t["toStatus"]) for t in transitions["transitions"]] == [("Pending", "Cancelled")]
    assert len(transport.aborts) == 1


def test_client_update_endpoints(client, transport):
    created = client.post("/api/trigger-client-update", json={"clientId": "c1", "targetVersion": "2.0.1"})
    job = created.json()
    fetched = client.get(f"/api/client-update/{job['id']}")
    missing = client.get("/api/client-update/nope")

    assert created.status_code == 200
    assert job["status"] == "Queued"
    assert job["targetVersion"] == "2.0.1"
    assert fetched.json()["id"] == job["id"]
    assert missing.status_code == 404
    assert transport.updates[0].job_id == job["id"]


def test_health_and_connected_clients(client):
    health = client.get("/api/health").json()
    connected = client.get("/api/clients/connected").json()

    assert health["status"] == "ok"
    assert health["connectedClients"] == 0
    assert connected == {"clients": []}


def test_invariant_faults_are_retryable(app):
    @app.get("/boom")
    async def boom():
        raise InvalidTransitionError("e1", "Succeeded", "Running")

    with TestClient(app) as test_client:
        response = test_client.get("/boom")

    assert response.status_code == 503
    assert response.json()["retryable"] is True


def test_execution_statistics_and_trigger_type_filter(client, app):
    client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "c1"})
    client.post("/api/trigger-execution", json={"scriptId": "s1", "clientId": "c2"})
    events = app.state.container.execution_events()
    submitted = client.portal.call(events.submitted, "s1", "c1", 1)

    stats = client.get("/api/executions/statistics").json()
    c2_stats = client.get("/api/executions/statistics", params={"clientId": "c2"}).json()
    pulled = client.get("/api/executions", params={"triggerType": "ClientPull"}).json()
    bad_trigger = client.get("/api/executions", params={"triggerType": "Cron"})

    assert stats["total"] == 3
    assert stats["byStatus"]["Pending"] == 2
    assert stats["byStatus"]["Failed"] == 1
    assert stats["byStatus"]["Succeeded"] == 0
    assert stats["byTriggerType"] == {"UiPush": 2, "ClientPull": 1}
    assert c2_stats["total"] == 1
    assert c2_stats["byStatus"]["Pending"] == 1
    assert pulled["total"] == 1
    assert pulled["items"][0]["id"] == submitted.id
    assert pulled["items"][0]["triggerType"] == "ClientPull"
    assert bad_trigger.status_code == 422
