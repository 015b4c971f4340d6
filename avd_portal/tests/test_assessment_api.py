from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
import requests

from avd_portal.adapters.assessment_api import AssessmentApiClient
from avd_portal.domain.errors import NotFoundError, TransportError
from avd_portal.domain.models import AssessmentConfig, RunState
from avd_portal.services.manifest_loader import ResultManifestLoader
from avd_portal.services.status_poller import PollState, StatusPoller


# -----------------------------
# Test doubles
# -----------------------------
@dataclass
class FakeResponse:
    status_code: int = 200
    payload: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self.payload is None:
            raise json.JSONDecodeError("Expecting value", self.text, 0)
        return self.payload


@dataclass
class FakeHttpSession:
    responses: list = field(default_factory=list)
    requests: list = field(default_factory=list)

    def request(self, method, url, timeout=None, **kwargs):
        self.requests.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def make_client(*responses) -> tuple[AssessmentApiClient, FakeHttpSession]:
    http = FakeHttpSession(responses=list(responses))
    return AssessmentApiClient("http://backend.test/", timeout_seconds=7, session=http), http


# -----------------------------
# Routes and parsing
# -----------------------------
def test_health_parses_capabilities():
    client, http = make_client(
        FakeResponse(payload={"status": "healthy", "tenantId": "t-1", "scriptExists": True,
                              "storageConfigured": True, "identityConfigured": False})
    )

    health = client.health()

    assert health.is_healthy
    assert health.tenant_id == "t-1"
    assert health.script_exists and health.storage_configured and not health.identity_configured
    assert http.requests[0]["method"] == "GET"
    assert http.requests[0]["url"] == "http://backend.test/api/health"
    assert http.requests[0]["timeout"] == 7


def test_start_assessment_posts_json_payload():
    client, http = make_client(FakeResponse(payload={"runId": "run-1"}))
    config = AssessmentConfig(tenant_id="t-1", subscription_ids=frozenset({"s2", "s1"}))

    assert client.start_assessment(config) == {"runId": "run-1"}

    sent = http.requests[0]
    assert sent["method"] == "POST"
    assert sent["url"] == "http://backend.test/api/assess"
    assert sent["json"]["tenantId"] == "t-1"
    assert set(sent["json"]["subscriptionIds"]) == {"s1", "s2"}


def test_status_manifest_runs_and_subscriptions():
    client, http = make_client(
        FakeResponse(payload={"status": "running", "elapsedSeconds": 33}),
        FakeResponse(payload={"files": [{"name": "r.html", "size": 100, "url": "https://s/r.html"}]}),
        FakeResponse(payload={"runs": [{"runId": "run-2", "files": 1, "totalSize": 100}]}),
        FakeResponse(payload={"subscriptions": [{"id": "s1", "name": "Prod"}]}),
    )

    st = client.get_status("run-2")
    manifest = client.get_results("run-2")
    runs = client.list_runs()
    subs = client.list_subscriptions()

    assert st.state is RunState.RUNNING and st.elapsed_seconds == 33
    assert manifest.run_id == "run-2" and manifest.has_viewable_report()
    assert runs[0].run_id == "run-2" and runs[0].total_size == 100
    assert subs[0].name == "Prod"
    assert [r["url"] for r in http.requests] == [
        "http://backend.test/api/assess/run-2",
        "http://backend.test/api/results/run-2",
        "http://backend.test/api/runs",
        "http://backend.test/api/subscriptions",
    ]


def test_delete_uses_delete_verb():
    client, http = make_client(FakeResponse(payload={"success": True}))

    client.delete_run("run-3")

    assert http.requests[0]["method"] == "DELETE"
    assert http.requests[0]["url"] == "http://backend.test/api/runs/run-3"


# -----------------------------
# Error mapping
# -----------------------------
@pytest.mark.parametrize("call", ["get_status", "get_results", "delete_run"])
def test_404_on_run_routes_is_not_found(call):
    client, _ = make_client(FakeResponse(status_code=404, payload={"error": "no such run"}))

    with pytest.raises(NotFoundError) as exc:
        getattr(client, call)("run-x")
    assert exc.value.run_id == "run-x"


def test_404_on_collection_route_is_transport_error():
    client, _ = make_client(FakeResponse(status_code=404, text="not here"))

    with pytest.raises(TransportError) as exc:
        client.list_runs()
    assert exc.value.status_code == 404


def test_server_error_is_transport_error():
    client, _ = make_client(FakeResponse(status_code=503, text="busy"))

    with pytest.raises(TransportError) as exc:
        client.get_status("run-1")
    assert exc.value.status_code == 503


def test_network_failure_is_transport_error():
    client, _ = make_client(requests.ConnectionError("refused"))

    with pytest.raises(TransportError):
        client.health()


def test_undecodable_body_is_transport_error():
    client, _ = make_client(FakeResponse(payload=None, text="<html>proxy</html>"))

    with pytest.raises(TransportError):
        client.list_runs()


def test_refused_delete_is_reported():
    client, _ = make_client(FakeResponse(payload={"success": False, "error": "locked"}))

    with pytest.raises(TransportError, match="locked"):
        client.delete_run("run-3")


def test_missing_run_id_in_submit_response_is_passed_through():
    client, _ = make_client(FakeResponse(payload={"error": "no capacity"}))
    config = AssessmentConfig(tenant_id="t-1", subscription_ids=frozenset({"s1"}))

    assert client.start_assessment(config) == {"error": "no capacity"}


@pytest.mark.parametrize(
    "call, payload",
    [
        (lambda c: c.get_results("run-1"), {"files": 5}),
        (lambda c: c.get_results("run-1"), {"files": True}),
        (lambda c: c.list_runs(), {"runs": 7}),
        (lambda c: c.list_subscriptions(), {"subscriptions": 1.5}),
    ],
)
def test_badly_shaped_body_is_transport_error(call, payload):
    client, _ = make_client(FakeResponse(payload=payload))

    with pytest.raises(TransportError, match="unexpected response shape"):
        call(client)


def test_badly_shaped_manifest_does_not_wedge_the_poller(scheduler):
    client, _ = make_client(
        FakeResponse(payload={"status": "completed", "elapsedSeconds": 40}),
        FakeResponse(payload={"files": 5}),
        FakeResponse(payload={"status": "completed", "elapsedSeconds": 43}),
        FakeResponse(payload={"files": [{"name": "r.html", "size": 10, "url": "https://s/r.html"}]}),
    )
    poller = StatusPoller(api=client, manifest_loader=ResultManifestLoader(api=client), scheduler=scheduler)
    poller.start("run-1")

    scheduler.tick()
    assert poller.state is PollState.STARTED
    assert len(scheduler.active) == 1

    scheduler.tick()
    snap = poller.snapshot()
    assert snap.state is PollState.COMPLETED
    assert snap.manifest.has_viewable_report()
    assert scheduler.active == []
