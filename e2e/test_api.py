"""API endpoint tests.

The app is built with create_app(services) so every test controls the
wiring: a scripted model, an in-memory backend, and the real log store and
health table. No API keys, no Chroma on disk.
"""

import json

import pytest
from fastapi.testclient import TestClient

from core.container import build_services
from llm.base import LLMClient
from logstore.engine import IndexedLogStore
from main import create_app
from schemas.chat import ModelTurn
from schemas.documents import RetrievedDocument
from settings import Settings

VERDICT = {
    "failureType": "Gateway Timeout",
    "rootCauseHypothesis": "The payment gateway refuses connections.",
    "investigationQuery": "status_code:504 AND metric:latency",
    "evidence": {"searchLogs": "Found 15 matches"},
    "responsibleTeam": "Network Operations",
    "remediationSteps": ["Fail over traffic to the standby gateway region."],
    "requiresEscalation": True,
    "citations": ["not-from-the-model"],
}

BODY = {"serviceName": "payment-service", "issue": "ERROR: ECONNREFUSED at /payment-gateway"}


class StubLLM(LLMClient):
    def __init__(self, reply: str = json.dumps(VERDICT)):
        self.reply = reply

    async def complete(self, system: str, user: str) -> str:
        return self.reply

    async def chat(self, messages, tools, temperature=0.0) -> ModelTurn:
        return ModelTurn(text=self.reply)


class FailingLLM(StubLLM):
    async def chat(self, messages, tools, temperature=0.0) -> ModelTurn:
        raise RuntimeError("provider returned 503")


class MemoryBackend:
    def __init__(self, docs=None):
        self.docs = docs if docs is not None else [
            RetrievedDocument(
                id="payment-service_alert_3",
                text="## Alert: Gateway Timeout",
                metadata={"service_name": "payment-service"},
            )
        ]

    def similarity_search(self, query, top_k, min_score=None, metadata_filter=None):
        return self.docs[:top_k]

    def count(self):
        return len(self.docs)


def make_client(llm: LLMClient | None = None, backend=None) -> TestClient:
    services = build_services(
        Settings(),
        llm=llm or StubLLM(),
        backend=backend or MemoryBackend(),
        store=IndexedLogStore(initial_scenario="healthy"),
    )
    return TestClient(create_app(services))


@pytest.fixture
def client():
    return make_client()


def test_health(client):
    res = client.get("/health")
    assert res.json()["status"] == "ok"


# ── /api/incident ─────────────────────────────────────────────────────────────

class TestAnalyzeIncident:
    def test_returns_camel_case_verdict(self, client):
        res = client.post("/api/incident", json=BODY)
        assert res.status_code == 200
        data = res.json()
        assert data["failureType"] == "Gateway Timeout"
        assert data["requiresEscalation"] is True
        assert data["citations"] == ["payment-service"]

    def test_per_request_config_is_accepted(self, client):
        res = client.post("/api/incident", json={**BODY, "config": {"topK": 1, "strictMetadataFiltering": True}})
        assert res.status_code == 200

    def test_missing_issue_is_rejected(self, client):
        res = client.post("/api/incident", json={"serviceName": "payment-service"})
        assert res.status_code == 422

    def test_invalid_config_is_rejected(self, client):
        res = client.post("/api/incident", json={**BODY, "config": {"topK": 0}})
        assert res.status_code == 422

    def test_no_runbooks_is_a_fallback_not_an_error(self):
        res = make_client(backend=MemoryBackend(docs=[])).post("/api/incident", json=BODY)
        assert res.status_code == 200
        assert res.json()["failureType"] == "AGENT_FAILURE"
        assert res.json()["rootCauseHypothesis"] == "No relevant runbooks found for service: payment-service"

    def test_model_failure_maps_to_502(self):
        res = make_client(llm=FailingLLM()).post("/api/incident", json=BODY)
        assert res.status_code == 502
        assert "provider returned 503" in res.json()["detail"]


# ── /api/analyze/stream ───────────────────────────────────────────────────────

class TestAnalyzeStream:
    def test_streams_events_then_result(self, client):
        res = client.post("/api/analyze/stream", json=BODY)
        assert res.status_code == 200
        lines = [json.loads(line) for line in res.text.splitlines() if line.strip()]

        assert all(line["type"] == "agent_event" for line in lines[:-1])
        assert lines[0]["stage"] == "retrieve"
        assert lines[-1]["type"] == "result"
        assert lines[-1]["failureType"] == "Gateway Timeout"

    def test_failure_ends_with_error_line(self):
        res = make_client(llm=FailingLLM()).post("/api/analyze/stream", json=BODY)
        last = json.loads(res.text.strip().splitlines()[-1])
        assert last == {"type": "error", "detail": "provider returned 503"}


# ── Simulation ────────────────────────────────────────────────────────────────

class TestSimulation:
    def test_chaos_switch(self, client):
        res = client.post("/api/incident/simulate", params={"service": "payment-service", "healthy": False})
        assert res.json() == {
            "service": "payment-service",
            "healthy": False,
            "message": "Service payment-service is now DOWN",
        }
        res = client.post("/api/incident/simulate", params={"service": "payment-service", "healthy": True})
        assert res.json()["message"] == "Service payment-service is now UP"

    def test_chaos_switch_requires_params(self, client):
        assert client.post("/api/incident/simulate").status_code == 422

    def test_load_scenario(self, client):
        res = client.post("/api/scenarios/payment-500-npe")
        data = res.json()
        assert data["known"] is True
        assert data["records"] == 50
        assert data["scenario"] == "payment-500-npe"
        assert data["generation"] == 2

    def test_unknown_scenario_empties_the_store(self, client):
        data = client.post("/api/scenarios/not-a-scenario").json()
        assert data["known"] is False
        assert data["records"] == 0

    def test_list_scenarios(self, client):
        data = client.get("/api/scenarios").json()
        assert "payment-gateway-timeout" in data["scenarios"]
        assert data["current"] == "healthy"
