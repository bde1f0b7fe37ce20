"""Tests for API endpoints (fake providers, in-memory sprites, tmp output dir)."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from seasonscape.dependencies import get_coordinator, get_job_registry, get_orchestrator
from seasonscape.engine.events import JobRegistry
from seasonscape.engine.pipeline import PipelineCoordinator
from seasonscape.main import app
from seasonscape.providers.errors import ServerError
from seasonscape.providers.orchestrator import ProviderOrchestrator
from seasonscape.utils.cache import TTLCache
from tests.conftest import FAKE_IMAGE, PLANT_DATA, ScriptedAdapter

LAYOUT = [
    {"plantRef": "rose", "gridX": 20, "gridY": 20},
    {"plantRef": "holly", "gridX": 10, "gridY": 5, "scale": 1.5},
    {"plantRef": "fern", "gridX": 30, "gridY": 12},
]


@pytest.fixture
def adapters():
    return [ScriptedAdapter("A", [FAKE_IMAGE])]


@pytest.fixture
def client(adapters, compositor, image_store, sleeper):
    orchestrator = ProviderOrchestrator(adapters, image_store, sleep=sleeper)
    coordinator = PipelineCoordinator(compositor, image_store, TTLCache(0), orchestrator=orchestrator)
    registry = JobRegistry()

    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    app.dependency_overrides[get_job_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["providersConfigured"] == ["A"]


def test_calendar_days_wrap_around(client):
    response = client.post(
        "/api/calendar/days",
        json={"startDay": 350, "endDay": 10, "imageCount": 3, "plants": PLANT_DATA},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["isWrapAround"]
    assert data["totalDays"] == 26
    assert [d["dayOfYear"] for d in data["days"]] == [350, 363, 10]
    assert data["days"][0]["season"] == "winter"
    assert data["days"][0]["blooming"] == ["Winter Holly"]
    assert data["days"][2]["date"] == "2024-01-10"


def test_calendar_days_without_plants(client):
    response = client.post("/api/calendar/days", json={"startDay": 1, "endDay": 365})
    assert response.status_code == 200
    assert all(d["blooming"] == [] for d in response.json()["days"])


def test_calendar_days_counts_only_placed_plants(client):
    body = {"startDay": 350, "endDay": 10, "imageCount": 3, "plants": PLANT_DATA}
    layout = [{"plantRef": "fern", "gridX": 1, "gridY": 1}]
    response = client.post("/api/calendar/days", json={**body, "layout": layout})
    assert response.status_code == 200
    assert all(d["blooming"] == [] for d in response.json()["days"])

    response = client.post("/api/calendar/days", json={**body, "layout": LAYOUT})
    assert response.json()["days"][0]["blooming"] == ["Winter Holly"]


def test_calendar_days_invalid_range(client):
    response = client.post("/api/calendar/days", json={"startDay": 0, "endDay": 10})
    assert response.status_code == 400


def visualize_body(**overrides):
    body = {"layout": LAYOUT, "plants": PLANT_DATA, "startDay": 350, "endDay": 10, "imageCount": 2}
    body.update(overrides)
    return body


def test_visualize_start_and_poll(client, adapters):
    response = client.post("/api/visualize", json=visualize_body())
    assert response.status_code == 202
    job_id = response.json()["jobId"]

    # TestClient runs background tasks before returning
    response = client.get(f"/api/visualize/{job_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["counts"]["completed"] == 2
    assert list(data["images"]) == ["350", "10"]
    assert all(r["enhanced"] for r in data["results"])
    assert all(r["imageUrl"].startswith("/generated/garden-enhanced-") for r in data["results"])
    assert len(adapters[0].calls) == 2


def test_visualize_poll_since(client):
    job_id = client.post("/api/visualize", json=visualize_body(enhance=False)).json()["jobId"]
    full = client.get(f"/api/visualize/{job_id}").json()["events"]
    tail = client.get(f"/api/visualize/{job_id}", params={"since": 2}).json()["events"]
    assert tail == full[2:]


@pytest.mark.parametrize("adapters", [[ScriptedAdapter("A", [ServerError("boom")])]])
def test_visualize_degrades_to_composites(client):
    job_id = client.post("/api/visualize", json=visualize_body(imageCount=1)).json()["jobId"]
    result = client.get(f"/api/visualize/{job_id}").json()["results"][0]
    assert result["status"] == "completed"
    assert not result["enhanced"]
    assert result["imageUrl"] == result["compositeUrl"]
    assert result["error"]
    assert "boom" not in result["error"]


def test_visualize_invalid_range(client):
    response = client.post("/api/visualize", json=visualize_body(startDay=400))
    assert response.status_code == 400


def test_visualize_unknown_job(client):
    assert client.get("/api/visualize/nope").status_code == 404
    assert client.post("/api/visualize/nope/cancel").status_code == 404


def test_cancel_finished_job_is_noop(client):
    job_id = client.post("/api/visualize", json=visualize_body(enhance=False)).json()["jobId"]
    response = client.post(f"/api/visualize/{job_id}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "completed"


def enhance_body(**overrides):
    body = {"layout": LAYOUT, "plants": PLANT_DATA, "dayOfYear": 190}
    body.update(overrides)
    return body


def test_enhance_success(client, adapters):
    response = client.post("/api/enhance", json=enhance_body(prompt="make it real"))
    assert response.status_code == 200
    data = response.json()
    assert data["enhanced"]
    assert data["season"] == "summer"
    assert data["blooming"] == ["Rose 'Peace'"]
    assert data["compositeUrl"] != data["imageUrl"]
    assert adapters[0].calls == [("reference", "make it real")]


@pytest.mark.parametrize("adapters", [[ScriptedAdapter("A", [FAKE_IMAGE], api_key="")]])
def test_enhance_not_configured(client):
    response = client.post("/api/enhance", json=enhance_body())
    assert response.status_code == 503


@pytest.mark.parametrize("adapters", [[ScriptedAdapter("A", [ServerError("boom")])]])
def test_enhance_exhausted_returns_composite_url(client):
    response = client.post("/api/enhance", json=enhance_body())
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["compositeUrl"].startswith("/generated/garden-composite-")
    assert "boom" not in detail["message"]


def test_enhance_rejects_bad_day(client):
    assert client.post("/api/enhance", json=enhance_body(dayOfYear=366)).status_code == 422
