from __future__ import annotations

import threading
from datetime import date, timedelta
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.readings import ReadingStore
from services.gemini import GeminiInsightCapability
from services.insights import InsightOrchestrator
from settings import get_settings

AUTH_A = {"Authorization": "Bearer token-a"}
AUTH_B = {"Authorization": "Bearer token-b"}


class ScriptedCapability:
    def __init__(self, response: str = "Usage is stable.\n1. Tip one.\n2. Tip two.\n3. Tip three.") -> None:
        self.response = response
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.response


class HangingCapability:
    def __init__(self) -> None:
        self.release = threading.Event()

    def generate(self, prompt: str) -> str:
        self.release.wait(timeout=5)
        return "too late"


@pytest.fixture(autouse=True)
def api_tokens(monkeypatch) -> Iterator[None]:
    monkeypatch.setenv("API_TOKENS", "token-a:owner-a,token-b:owner-b")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_client() -> Iterator[Callable[..., TestClient]]:
    clients: list[TestClient] = []

    def factory(capability=None, timeout_seconds: float = 2.0) -> TestClient:
        orchestrator = InsightOrchestrator(
            capability or ScriptedCapability(),
            timeout_seconds=timeout_seconds,
        )
        client = TestClient(create_app(store=ReadingStore(), orchestrator=orchestrator))
        client.__enter__()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def api_client(make_client) -> TestClient:
    return make_client()


def _create(client: TestClient, headers=AUTH_A, **overrides) -> dict:
    body = {"date": "2024-01-01", "type": "electricity", "usage": 10.0}
    body.update(overrides)
    response = client.post("/readings", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "token-a"}, {"Authorization": "Bearer nope"}],
)
def test_readings_require_valid_bearer_token(api_client: TestClient, headers) -> None:
    response = api_client.get("/readings", headers=headers)

    assert response.status_code == 401
    assert response.json()["detail"].startswith("Unauthorized")


def test_create_and_list_readings(api_client: TestClient) -> None:
    created = _create(api_client, notes="meter A")

    assert created["type"] == "electricity"
    assert created["owner_id"] == "owner-a"
    assert created["notes"] == "meter A"

    response = api_client.get(
        "/readings", params={"start": "2024-01-01", "end": "2024-01-31"}, headers=AUTH_A
    )
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [created["id"]]

    other_owner = api_client.get(
        "/readings", params={"start": "2024-01-01", "end": "2024-01-31"}, headers=AUTH_B
    )
    assert other_owner.json() == []


def test_list_defaults_to_recent_window(api_client: TestClient) -> None:
    _create(api_client, date="2020-01-01")
    recent = _create(api_client, date=date.today().isoformat())

    response = api_client.get("/readings", headers=AUTH_A)

    assert [item["id"] for item in response.json()] == [recent["id"]]


def test_create_reports_every_validation_error(api_client: TestClient) -> None:
    future = (date.today() + timedelta(days=3)).isoformat()

    response = api_client.post(
        "/readings",
        json={"date": future, "type": "solar", "usage": -1},
        headers=AUTH_A,
    )

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == [
        "Date cannot be in the future",
        "Valid utility type is required (electricity, gas, or water)",
        "Usage must be a positive number",
    ]


def test_create_reports_malformed_values_together(api_client: TestClient) -> None:
    response = api_client.post(
        "/readings",
        json={"date": "not-a-date", "type": "solar", "usage": "lots"},
        headers=AUTH_A,
    )

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == [
        "Date must use the YYYY-MM-DD format",
        "Valid utility type is required (electricity, gas, or water)",
        "Usage must be a positive number",
    ]


def test_update_reports_malformed_date_in_error_list(api_client: TestClient) -> None:
    created = _create(api_client)

    response = api_client.patch(
        f"/readings/{created['id']}", json={"date": "yesterday"}, headers=AUTH_A
    )

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["Date must use the YYYY-MM-DD format"]


def test_update_and_delete_reading(api_client: TestClient) -> None:
    created = _create(api_client)

    patched = api_client.patch(
        f"/readings/{created['id']}", json={"usage": 11.5}, headers=AUTH_A
    )
    assert patched.status_code == 200
    assert patched.json()["usage"] == 11.5
    assert patched.json()["date"] == "2024-01-01"

    invalid = api_client.patch(f"/readings/{created['id']}", json={"usage": 0}, headers=AUTH_A)
    assert invalid.status_code == 422

    foreign = api_client.delete(f"/readings/{created['id']}", headers=AUTH_B)
    assert foreign.status_code == 404

    deleted = api_client.delete(f"/readings/{created['id']}", headers=AUTH_A)
    assert deleted.status_code == 204

    missing = api_client.patch(f"/readings/{created['id']}", json={"usage": 2}, headers=AUTH_A)
    assert missing.status_code == 404


def test_statistics_endpoint(api_client: TestClient) -> None:
    _create(api_client, date="2024-01-01", type="electricity", usage=10)
    _create(api_client, date="2024-01-01", type="gas", usage=5)
    _create(api_client, date="2024-01-02", type="electricity", usage=12)

    response = api_client.get(
        "/readings/statistics",
        params={"start": "2024-01-01", "end": "2024-01-02"},
        headers=AUTH_A,
    )

    assert response.status_code == 200
    assert response.json() == {
        "totalElectricity": 22.0,
        "totalGas": 5.0,
        "totalWater": 0.0,
        "avgElectricity": 11.0,
        "avgGas": 2.5,
        "avgWater": 0.0,
        "periodDays": 2,
    }


def test_reversed_range_is_rejected(api_client: TestClient) -> None:
    response = api_client.get(
        "/readings/statistics",
        params={"start": "2024-02-01", "end": "2024-01-01"},
        headers=AUTH_A,
    )

    assert response.status_code == 400


def test_chart_endpoint_omits_missing_utilities(api_client: TestClient) -> None:
    _create(api_client, date="2024-01-02", type="water", usage=120)
    _create(api_client, date="2024-01-01", type="gas", usage=5)

    response = api_client.get(
        "/readings/chart",
        params={"start": "2024-01-01", "end": "2024-01-31"},
        headers=AUTH_A,
    )

    assert response.json() == [
        {"date": "2024-01-01", "gas": 5.0},
        {"date": "2024-01-02", "water": 120.0},
    ]


def test_chart_rejects_unknown_type_filter(api_client: TestClient) -> None:
    response = api_client.get("/readings/chart", params={"type": "solar"}, headers=AUTH_A)

    assert response.status_code == 400


def _energy_data() -> list[dict]:
    return [
        {"id": "r1", "date": "2024-01-01", "type": "electricity", "usage": 10, "notes": None},
        {"id": "r2", "date": "2024-01-02", "type": "gas", "usage": 4.5, "notes": "cold snap"},
    ]


def test_insights_success(make_client) -> None:
    capability = ScriptedCapability()
    client = make_client(capability)

    response = client.post("/insights", json={"energyData": _energy_data()}, headers=AUTH_A)

    assert response.status_code == 200
    payload = response.json()
    assert set(payload) == {"summary", "recommendations", "generatedAt"}
    assert payload["summary"] == "Usage is stable."
    assert payload["recommendations"] == ["Tip one.", "Tip two.", "Tip three."]
    assert '"notes": "cold snap"' in capability.prompts[0]


def test_insights_requires_auth(api_client: TestClient) -> None:
    response = api_client.post("/insights", json={"energyData": _energy_data()})

    assert response.status_code == 401


@pytest.mark.parametrize(
    "kwargs",
    [
        {"content": b"not json", "headers": {"Content-Type": "application/json"}},
        {"json": {"energyData": "nope"}},
        {"json": {"readings": []}},
    ],
)
def test_insights_malformed_body_is_bad_request(api_client: TestClient, kwargs) -> None:
    headers = {**AUTH_A, **kwargs.pop("headers", {})}

    response = api_client.post("/insights", headers=headers, **kwargs)

    assert response.status_code == 400


def test_insights_empty_data_never_calls_capability(make_client) -> None:
    capability = ScriptedCapability()
    client = make_client(capability)

    response = client.post("/insights", json={"energyData": []}, headers=AUTH_A)

    assert response.status_code == 400
    assert capability.prompts == []


def test_insights_timeout_returns_gateway_timeout(make_client) -> None:
    capability = HangingCapability()
    client = make_client(capability, timeout_seconds=0.05)

    try:
        response = client.post("/insights", json={"energyData": _energy_data()}, headers=AUTH_A)
    finally:
        capability.release.set()

    assert response.status_code == 504
    assert "timeout" in response.json()["detail"].lower()


def test_insights_unconfigured_backend_is_server_error(make_client) -> None:
    client = make_client(GeminiInsightCapability(api_key=None))

    response = client.post("/insights", json={"energyData": _energy_data()}, headers=AUTH_A)

    assert response.status_code == 500
    assert response.json()["detail"] == "Server configuration error"


def test_lifespan_shuts_down_orchestrator() -> None:
    orchestrator = InsightOrchestrator(ScriptedCapability(), timeout_seconds=1.0)
    app = create_app(store=ReadingStore(), orchestrator=orchestrator)

    with TestClient(app):
        assert orchestrator.closed is False

    assert orchestrator.closed is True
